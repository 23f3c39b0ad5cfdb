"""
Tests for EngagementService.
"""

import uuid

import pytest

from engagements.exceptions import EngagementNotFoundError
from engagements.models import EngagementPaymentStatus
from engagements.services import EngagementService
from engagements.tests.factories import EngagementFactory


@pytest.mark.django_db
class TestGetEngagement:
    """Tests for loading engagements."""

    def test_returns_engagement(self):
        """An existing engagement should be returned with its parties."""
        engagement = EngagementFactory()

        loaded = EngagementService.get_engagement(engagement.id)

        assert loaded.id == engagement.id
        assert loaded.payer_id == engagement.payer_id

    def test_missing_engagement_raises(self):
        """An unknown id should raise EngagementNotFoundError."""
        with pytest.raises(EngagementNotFoundError):
            EngagementService.get_engagement(uuid.uuid4())

    def test_malformed_id_raises_not_found(self):
        """A value that is not a UUID should be treated as not found."""
        with pytest.raises(EngagementNotFoundError):
            EngagementService.get_engagement("not-a-uuid")


@pytest.mark.django_db
class TestPaymentStatusProjection:
    """Tests for mark_paid / mark_payment_failed."""

    def test_mark_paid_sets_status_and_timestamp(self):
        """mark_paid should move an unpaid engagement to paid."""
        engagement = EngagementFactory()

        assert EngagementService.mark_paid(engagement.id) is True

        engagement.refresh_from_db()
        assert engagement.payment_status == EngagementPaymentStatus.PAID
        assert engagement.paid_at is not None

    def test_mark_paid_is_idempotent(self):
        """A second mark_paid should not touch paid_at."""
        engagement = EngagementFactory()
        EngagementService.mark_paid(engagement.id)
        engagement.refresh_from_db()
        first_paid_at = engagement.paid_at

        assert EngagementService.mark_paid(engagement.id) is False

        engagement.refresh_from_db()
        assert engagement.paid_at == first_paid_at

    def test_mark_payment_failed_from_unpaid(self):
        """mark_payment_failed should move an unpaid engagement to failed."""
        engagement = EngagementFactory()

        assert EngagementService.mark_payment_failed(engagement.id) is True

        engagement.refresh_from_db()
        assert engagement.payment_status == EngagementPaymentStatus.FAILED

    def test_mark_payment_failed_never_downgrades_paid(self):
        """A late failure must not overwrite a paid engagement."""
        engagement = EngagementFactory(payment_status=EngagementPaymentStatus.PAID)

        assert EngagementService.mark_payment_failed(engagement.id) is False

        engagement.refresh_from_db()
        assert engagement.payment_status == EngagementPaymentStatus.PAID

    def test_failed_engagement_can_become_paid(self):
        """A successful retry after a failed attempt should mark paid."""
        engagement = EngagementFactory(payment_status=EngagementPaymentStatus.FAILED)

        assert EngagementService.mark_paid(engagement.id) is True
