"""
Tests for webhook event handlers.

Handlers are called with stored WebhookEvent rows, as the Celery task does.
"""

from unittest.mock import patch

import pytest

from settlements.models import PayeeAccount, SettlementRecord
from settlements.services import ReconcileAction
from settlements.state_machines import SettlementStatus
from settlements.tests.factories import (
    PayeeAccountFactory,
    SettlementRecordFactory,
    WebhookEventFactory,
)
from settlements.webhooks.handlers import WEBHOOK_HANDLERS, dispatch_webhook


def get_fresh_record(record_id) -> SettlementRecord:
    return SettlementRecord.objects.get(id=record_id)


@pytest.fixture(autouse=True)
def mock_retry_delay():
    with patch("settlements.tasks.retry_payouts_for_payee.delay") as mock:
        yield mock


# =============================================================================
# Registry Tests
# =============================================================================


class TestHandlerRegistry:
    """Tests for the handler registry and dispatch."""

    def test_registered_event_types(self):
        assert set(WEBHOOK_HANDLERS) == {
            "payment_intent.succeeded",
            "payment_intent.payment_failed",
            "payment_intent.canceled",
            "account.updated",
        }

    def test_unknown_event_type_succeeds(self, db):
        """Events we do not handle must not pile up as failures."""
        event = WebhookEventFactory(event_type="customer.created")

        result = dispatch_webhook(event)

        assert result.success is True
        assert result.data is None


# =============================================================================
# Payment Intent Handlers
# =============================================================================


class TestPaymentIntentHandlers:
    """Tests for payment_intent.* handlers."""

    def test_succeeded(self, db):
        record = SettlementRecordFactory()
        event = WebhookEventFactory(object_id=record.charge_ref)

        result = dispatch_webhook(event)

        assert result.success is True
        assert result.data.action == ReconcileAction.TRANSITIONED
        assert get_fresh_record(record.id).status == SettlementStatus.COMPLETED

    def test_succeeded_keeps_latest_charge(self, db):
        record = SettlementRecordFactory()
        event = WebhookEventFactory(
            object_id=record.charge_ref,
            object_extra={"latest_charge": "ch_latest"},
        )

        dispatch_webhook(event)

        assert get_fresh_record(record.id).source_charge_ref == "ch_latest"

    def test_succeeded_on_older_api_version(self, db):
        """Payloads without latest_charge list the charge under charges.data."""
        record = SettlementRecordFactory()
        event = WebhookEventFactory(
            object_id=record.charge_ref,
            object_extra={"charges": {"data": [{"id": "ch_listed"}]}},
        )

        dispatch_webhook(event)

        assert get_fresh_record(record.id).source_charge_ref == "ch_listed"

    def test_payment_failed(self, db):
        record = SettlementRecordFactory()
        event = WebhookEventFactory(
            event_type="payment_intent.payment_failed",
            object_id=record.charge_ref,
            object_extra={"last_payment_error": {"message": "Your card was declined."}},
        )

        result = dispatch_webhook(event)

        assert result.success is True
        assert get_fresh_record(record.id).status == SettlementStatus.FAILED

    def test_canceled(self, db):
        record = SettlementRecordFactory()
        event = WebhookEventFactory(
            event_type="payment_intent.canceled",
            object_id=record.charge_ref,
        )

        dispatch_webhook(event)

        assert get_fresh_record(record.id).status == SettlementStatus.FAILED

    def test_unknown_charge_ref_succeeds(self, db):
        """Charges not opened by this service are acknowledged, not retried."""
        record = SettlementRecordFactory()
        event = WebhookEventFactory(object_id="pi_not_ours")

        result = dispatch_webhook(event)

        assert result.success is True
        assert result.data.action == ReconcileAction.NO_RECORD
        assert get_fresh_record(record.id).status == SettlementStatus.PENDING

    def test_missing_object_id_fails(self, db):
        event = WebhookEventFactory(payload={"id": "evt_bad", "data": {"object": {}}})

        result = dispatch_webhook(event)

        assert result.success is False
        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"


# =============================================================================
# Connected Account Handler
# =============================================================================


class TestAccountUpdatedHandler:
    """Tests for account.updated."""

    def _event(self, account_id, charges_enabled=True, payouts_enabled=True):
        return WebhookEventFactory(
            event_type="account.updated",
            object_id=account_id,
            object_type="account",
            object_extra={
                "charges_enabled": charges_enabled,
                "payouts_enabled": payouts_enabled,
                "details_submitted": True,
            },
        )

    def test_updates_flags(self, payee, mock_retry_delay, django_capture_on_commit_callbacks):
        account = PayeeAccountFactory(user=payee, ineligible=True)

        with django_capture_on_commit_callbacks(execute=True):
            result = dispatch_webhook(self._event(account.stripe_account_id))

        assert result.success is True
        assert result.data.retry_scheduled is True
        fresh = PayeeAccount.objects.get(id=account.id)
        assert fresh.is_eligible is True
        assert fresh.details_submitted is True
        mock_retry_delay.assert_called_once_with(payee.id, source="account_updated")

    def test_unknown_account_succeeds(self, db, mock_retry_delay):
        result = dispatch_webhook(self._event("acct_not_ours"))

        assert result.success is True
        assert result.data is None
        mock_retry_delay.assert_not_called()

    def test_missing_account_id_fails(self, db):
        event = WebhookEventFactory(
            event_type="account.updated",
            payload={"id": "evt_bad", "data": {"object": {"object": "account"}}},
        )

        result = dispatch_webhook(event)

        assert result.success is False
        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"
