"""
Tests for settlement models.

Covers database constraints, defaults, properties and the status graph
declared on SettlementRecord.
"""

import uuid

import pytest
from django.db import IntegrityError, transaction
from django_fsm import TransitionNotAllowed

from settlements.models import PayeeAccount, SettlementRecord, WebhookEvent
from settlements.models.webhook_event import MAX_WEBHOOK_RETRIES
from settlements.state_machines import (
    PayoutMode,
    SettlementStatus,
    WebhookEventStatus,
)
from settlements.tests.factories import (
    PayeeAccountFactory,
    SettlementRecordFactory,
    WebhookEventFactory,
)


# =============================================================================
# PayeeAccount Tests
# =============================================================================


class TestPayeeAccountModel:
    """Tests for PayeeAccount model."""

    def test_defaults(self, db, payee):
        """A fresh account has no Stripe account and no capabilities."""
        account = PayeeAccount.objects.create(user=payee)

        assert isinstance(account.pk, uuid.UUID)
        assert account.stripe_account_id is None
        assert account.charges_enabled is False
        assert account.payouts_enabled is False
        assert account.has_external_account is False
        assert account.is_eligible is False

    def test_is_eligible_requires_both_flags(self, db):
        assert PayeeAccountFactory().is_eligible is True
        assert PayeeAccountFactory(charges_enabled=False).is_eligible is False
        assert PayeeAccountFactory(payouts_enabled=False).is_eligible is False

    def test_not_onboarded_is_never_eligible(self, db):
        """Flags alone do not make a payee eligible without an account."""
        account = PayeeAccountFactory(
            not_onboarded=True,
            charges_enabled=True,
            payouts_enabled=True,
        )

        assert account.is_eligible is False

    def test_stripe_account_id_unique(self, db):
        PayeeAccountFactory(stripe_account_id="acct_dup")

        with pytest.raises(IntegrityError), transaction.atomic():
            PayeeAccountFactory(stripe_account_id="acct_dup")

    def test_one_account_per_user(self, db, payee):
        PayeeAccount.objects.create(user=payee)

        with pytest.raises(IntegrityError), transaction.atomic():
            PayeeAccount.objects.create(user=payee)


# =============================================================================
# SettlementRecord Tests
# =============================================================================


class TestSettlementRecordModel:
    """Tests for SettlementRecord fields and constraints."""

    def test_defaults(self, db):
        record = SettlementRecordFactory()

        assert record.status == SettlementStatus.PENDING
        assert record.payout_mode == PayoutMode.DEFERRED
        assert record.transfer_ref is None
        assert record.is_transferred is False
        assert record.awaits_payout is False

    def test_awaits_payout(self, db):
        """Only completed deferred records without a transfer await payout."""
        assert SettlementRecordFactory(completed=True).awaits_payout is True
        assert SettlementRecordFactory(transferred=True).awaits_payout is False
        assert (
            SettlementRecordFactory(
                completed=True,
                payout_mode=PayoutMode.DESTINATION,
            ).awaits_payout
            is False
        )
        assert SettlementRecordFactory(failed=True).awaits_payout is False

    def test_split_must_sum_to_amount(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            SettlementRecordFactory(
                amount_cents=10000,
                platform_fee_cents=1500,
                payee_payout_cents=8000,
            )

    def test_charge_ref_unique(self, db):
        SettlementRecordFactory(charge_ref="pi_same")

        with pytest.raises(IntegrityError), transaction.atomic():
            SettlementRecordFactory(charge_ref="pi_same")

    def test_one_active_record_per_engagement(self, db, engagement):
        """A pending record blocks a second pending or completed one."""
        SettlementRecordFactory(engagement=engagement)

        with pytest.raises(IntegrityError), transaction.atomic():
            SettlementRecordFactory(engagement=engagement)

        with pytest.raises(IntegrityError), transaction.atomic():
            SettlementRecordFactory(engagement=engagement, completed=True)

    def test_failed_records_do_not_block(self, db, engagement):
        """An engagement can be retried after failed attempts."""
        SettlementRecordFactory(engagement=engagement, failed=True)
        SettlementRecordFactory(engagement=engagement, failed=True)

        record = SettlementRecordFactory(engagement=engagement)

        assert SettlementRecord.objects.filter(engagement=engagement).count() == 3
        assert record.status == SettlementStatus.PENDING


class TestSettlementRecordTransitions:
    """Tests for the status graph declared with django-fsm."""

    def test_pending_edges(self, db):
        record = SettlementRecordFactory()

        targets = {t.target for t in record.get_available_status_transitions()}

        assert targets == {SettlementStatus.COMPLETED, SettlementStatus.FAILED}

    @pytest.mark.parametrize("status", [SettlementStatus.COMPLETED, SettlementStatus.FAILED])
    def test_terminal_states_have_no_edges(self, status):
        record = SettlementRecord(status=status)

        assert list(record.get_available_status_transitions()) == []

    def test_complete_from_failed_not_allowed(self):
        record = SettlementRecord(status=SettlementStatus.FAILED)

        with pytest.raises(TransitionNotAllowed):
            record.complete()

    def test_status_is_protected(self, db):
        """Status cannot be assigned directly once set."""
        record = SettlementRecordFactory()

        with pytest.raises(AttributeError):
            record.status = SettlementStatus.COMPLETED


# =============================================================================
# WebhookEvent Tests
# =============================================================================


class TestWebhookEventModel:
    """Tests for WebhookEvent helpers."""

    def test_stripe_event_id_unique(self, db):
        WebhookEventFactory(stripe_event_id="evt_dup")

        with pytest.raises(IntegrityError), transaction.atomic():
            WebhookEventFactory(stripe_event_id="evt_dup")

    def test_mark_processing_counts_attempts(self, db):
        event = WebhookEventFactory()

        event.mark_processing()

        assert event.status == WebhookEventStatus.PROCESSING
        assert event.retry_count == 1

    def test_mark_processed_clears_error(self, db):
        event = WebhookEventFactory(
            status=WebhookEventStatus.FAILED,
            error_message="boom",
        )

        event.mark_processed()

        assert event.is_processed is True
        assert event.processed_at is not None
        assert event.error_message is None

    def test_can_retry_until_limit(self, db):
        event = WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=1)
        exhausted = WebhookEventFactory(
            status=WebhookEventStatus.FAILED,
            retry_count=MAX_WEBHOOK_RETRIES,
        )

        assert event.can_retry is True
        assert exhausted.can_retry is False

    def test_get_object_id(self, db):
        event = WebhookEventFactory(object_id="pi_abc")

        assert event.get_object_id() == "pi_abc"

    def test_get_object_id_malformed_payload(self, db):
        event = WebhookEvent(stripe_event_id="evt_x", event_type="x", payload={"data": []})

        assert event.get_data_object() == {}
        assert event.get_object_id() is None
