"""
Tests for the payout Celery tasks.

Tests cover:
- retry_payouts_for_payee task
- retry_single_payout task
- refresh_payee_eligibility task
- sweep_pending_payouts task
"""

from unittest.mock import patch

import pytest

from settlements.adapters import AccountResult
from settlements.exceptions import StripeAPIUnavailableError
from settlements.models import SettlementRecord
from settlements.tasks import (
    refresh_payee_eligibility,
    retry_payouts_for_payee,
    retry_single_payout,
    sweep_pending_payouts,
)
from settlements.tests.factories import PayeeAccountFactory, SettlementRecordFactory


@pytest.fixture
def mock_retry_delay():
    with patch("settlements.tasks.retry_payouts_for_payee.delay") as mock:
        yield mock


def _owed_record(payee, account, payout_cents=8500):
    return SettlementRecordFactory(
        engagement__payee=payee,
        payee_account=account,
        amount_cents=payout_cents,
        platform_fee_cents=0,
        payee_payout_cents=payout_cents,
        completed=True,
    )


# =============================================================================
# retry_payouts_for_payee Tests
# =============================================================================


class TestRetryPayoutsForPayee:
    """Tests for the retry_payouts_for_payee task."""

    def test_pays_out_and_returns_summary(
        self, payee, eligible_payee_account, mock_stripe_adapter
    ):
        record = _owed_record(payee, eligible_payee_account, 1000)

        result = retry_payouts_for_payee(payee.id, source="test")

        assert result["status"] == "completed"
        assert result["successful_count"] == 1
        assert result["total_amount_transferred"] == 1000
        assert SettlementRecord.objects.get(id=record.id).transfer_ref is not None

    def test_skips_ineligible_payee(self, payee, ineligible_payee_account, mock_stripe_adapter):
        _owed_record(payee, ineligible_payee_account)

        result = retry_payouts_for_payee(payee.id)

        assert result["status"] == "skipped"
        assert result["reason"] == "PAYEE_NOT_ELIGIBLE"
        mock_stripe_adapter.create_transfer.assert_not_called()

    def test_skips_payee_without_account(self, payee, mock_stripe_adapter):
        result = retry_payouts_for_payee(payee.id)

        assert result["status"] == "skipped"
        assert result["reason"] == "PAYEE_NOT_ONBOARDED"


class TestRetrySinglePayout:
    """Tests for the retry_single_payout task."""

    def test_pays_out_record(self, payee, eligible_payee_account, mock_stripe_adapter):
        record = _owed_record(payee, eligible_payee_account)

        result = retry_single_payout(str(record.id))

        assert result["success"] is True
        assert result["record_id"] == str(record.id)


class TestRefreshPayeeEligibility:
    """Tests for the refresh_payee_eligibility task."""

    def test_reports_refreshed_flags(
        self, payee, ineligible_payee_account, mock_stripe_adapter, mock_retry_delay
    ):
        result = refresh_payee_eligibility(payee.id)

        assert result == {
            "payee_id": payee.id,
            "eligible": True,
            "refreshed": True,
            "retry_scheduled": True,
        }


# =============================================================================
# sweep_pending_payouts Tests
# =============================================================================


class TestSweepPendingPayouts:
    """Tests for the periodic payout sweep."""

    def test_queues_eligible_payees(
        self, payee, eligible_payee_account, mock_stripe_adapter, mock_retry_delay
    ):
        """Eligible all along: the sweep queues the retry itself."""
        _owed_record(payee, eligible_payee_account)

        result = sweep_pending_payouts()

        assert result == {"payee_count": 1, "queued_count": 1, "not_eligible_count": 0}
        mock_retry_delay.assert_called_once_with(payee.id, source="sweep")

    def test_newly_eligible_payee_is_nudged_once(
        self,
        payee,
        ineligible_payee_account,
        mock_stripe_adapter,
        mock_retry_delay,
        django_capture_on_commit_callbacks,
    ):
        """The eligibility nudge covers the payee; the sweep does not queue twice."""
        _owed_record(payee, ineligible_payee_account)

        with django_capture_on_commit_callbacks(execute=True):
            result = sweep_pending_payouts()

        assert result["queued_count"] == 1
        mock_retry_delay.assert_called_once_with(payee.id, source="eligibility_check")

    def test_counts_still_ineligible_payees(
        self, payee, ineligible_payee_account, mock_stripe_adapter, mock_retry_delay
    ):
        _owed_record(payee, ineligible_payee_account)
        mock_stripe_adapter.retrieve_account.side_effect = lambda account_id: AccountResult(
            id=account_id
        )

        result = sweep_pending_payouts()

        assert result == {"payee_count": 1, "queued_count": 0, "not_eligible_count": 1}
        mock_retry_delay.assert_not_called()

    def test_stripe_outage_uses_stored_flags(
        self, payee, eligible_payee_account, mock_stripe_adapter, mock_retry_delay
    ):
        _owed_record(payee, eligible_payee_account)
        mock_stripe_adapter.retrieve_account.side_effect = StripeAPIUnavailableError(
            "Could not connect to Stripe. Please retry."
        )

        result = sweep_pending_payouts()

        assert result["queued_count"] == 1
        mock_retry_delay.assert_called_once_with(payee.id, source="sweep")

    def test_one_failing_payee_does_not_stop_sweep(
        self, db, mock_stripe_adapter, mock_retry_delay
    ):
        first = PayeeAccountFactory()
        second = PayeeAccountFactory()
        _owed_record(first.user, first)
        _owed_record(second.user, second)
        mock_retry_delay.side_effect = [ConnectionError("broker down"), None]

        result = sweep_pending_payouts()

        assert result["payee_count"] == 2
        assert result["queued_count"] == 1
        assert mock_retry_delay.call_count == 2

    def test_nothing_owed(self, db, mock_stripe_adapter, mock_retry_delay):
        SettlementRecordFactory()
        SettlementRecordFactory(transferred=True)

        result = sweep_pending_payouts()

        assert result == {"payee_count": 0, "queued_count": 0, "not_eligible_count": 0}
        mock_stripe_adapter.retrieve_account.assert_not_called()
