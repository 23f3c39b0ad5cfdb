"""
State enums for settlement models.

SettlementRecord status (django-fsm):
    pending → completed   (charge succeeded)
    pending → failed      (charge failed or was canceled)

completed and failed are terminal. Whether the payee has been paid is a
separate fact, tracked by SettlementRecord.transfer_ref.

WebhookEvent status:
    pending → processing → processed
    pending → processing → failed → processing (retry)
"""

from django.db import models


class SettlementStatus(models.TextChoices):
    """
    Charge status of a settlement record.

    Terminal states: COMPLETED, FAILED
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"

    @classmethod
    def active(cls) -> list[str]:
        """Statuses that block a new settlement for the same engagement."""
        return [cls.PENDING, cls.COMPLETED]


class PayoutMode(models.TextChoices):
    """
    How the payee share of a charge reaches the payee.

    DESTINATION: Stripe splits funds at charge time (transfer_data).
    DEFERRED: funds land on the platform; a separate transfer pays the payee
        once they are eligible.
    """

    DESTINATION = "destination", "Destination charge"
    DEFERRED = "deferred", "Deferred payout"


class WebhookEventStatus(models.TextChoices):
    """Processing status of a stored Stripe webhook event."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


__all__ = [
    "PayoutMode",
    "SettlementStatus",
    "WebhookEventStatus",
]
