"""
Engagement service: the collaborator surface settlement calls into.

Settlement only reads engagements and writes their payment status
projection. Both writes are conditional updates so that replays and
out-of-order delivery never regress a paid engagement.

Usage:
    from engagements.services import EngagementService

    engagement = EngagementService.get_engagement(engagement_id)
    EngagementService.mark_paid(engagement_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from core.services import BaseService
from engagements.exceptions import EngagementNotFoundError
from engagements.models import Engagement, EngagementPaymentStatus

if TYPE_CHECKING:
    import uuid


class EngagementService(BaseService):
    """Read access and payment status projection for engagements."""

    @classmethod
    def get_engagement(cls, engagement_id: uuid.UUID | str) -> Engagement:
        """
        Load an engagement with its parties.

        Raises:
            EngagementNotFoundError: If no engagement has this id
        """
        try:
            return Engagement.objects.select_related("payer", "payee").get(
                id=engagement_id
            )
        except (Engagement.DoesNotExist, DjangoValidationError, ValueError) as e:
            raise EngagementNotFoundError(
                f"Engagement {engagement_id} not found",
                details={"engagement_id": str(engagement_id)},
            ) from e

    @classmethod
    def mark_paid(cls, engagement_id: uuid.UUID | str) -> bool:
        """
        Project a successful charge onto the engagement.

        Returns:
            True if the engagement moved to paid, False if it already was
        """
        updated = (
            Engagement.objects.filter(id=engagement_id)
            .exclude(payment_status=EngagementPaymentStatus.PAID)
            .update(
                payment_status=EngagementPaymentStatus.PAID,
                paid_at=timezone.now(),
                updated_at=timezone.now(),
            )
        )
        if updated:
            cls.get_logger().info(
                "Engagement marked paid",
                extra={"engagement_id": str(engagement_id)},
            )
        return bool(updated)

    @classmethod
    def mark_payment_failed(cls, engagement_id: uuid.UUID | str) -> bool:
        """
        Project a failed charge onto the engagement.

        A paid engagement is never downgraded: a later successful attempt
        wins over an earlier failed one.

        Returns:
            True if the engagement moved to failed
        """
        updated = (
            Engagement.objects.filter(
                id=engagement_id,
                payment_status=EngagementPaymentStatus.UNPAID,
            ).update(
                payment_status=EngagementPaymentStatus.FAILED,
                updated_at=timezone.now(),
            )
        )
        if updated:
            cls.get_logger().info(
                "Engagement payment marked failed",
                extra={"engagement_id": str(engagement_id)},
            )
        return bool(updated)
