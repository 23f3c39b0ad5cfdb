"""
Engagement model.

An Engagement is the business transaction being paid for (a booked tutoring
session): one payer, one payee, a face amount. Booking and scheduling live
elsewhere; this service only needs the parties, the amount and the payment
status projection that settlement keeps up to date.

Usage:
    from engagements.models import Engagement, EngagementPaymentStatus

    engagement = Engagement.objects.create(
        payer=student,
        payee=tutor,
        amount_cents=10000,
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class EngagementPaymentStatus(models.TextChoices):
    """Payment status projected from the engagement's settlement records."""

    UNPAID = "unpaid", "Unpaid"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"


class Engagement(UUIDPrimaryKeyMixin, BaseModel):
    """
    A paid engagement between a payer and a payee.

    Fields:
        payer: User who is charged
        payee: User who receives the payout
        amount_cents: Face amount in minor currency units
        currency: ISO currency code (lowercase)
        payment_status: unpaid | paid | failed
        paid_at: When the charge for this engagement succeeded
    """

    payer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="engagements_as_payer",
        help_text="User who pays for the engagement",
    )
    payee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="engagements_as_payee",
        help_text="User who receives the payout",
    )
    amount_cents = models.PositiveBigIntegerField(
        help_text="Face amount in minor currency units",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO currency code (lowercase)",
    )
    payment_status = models.CharField(
        max_length=10,
        choices=EngagementPaymentStatus.choices,
        default=EngagementPaymentStatus.UNPAID,
        db_index=True,
        help_text="Payment status projected from settlement",
    )
    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When payment for this engagement succeeded",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Engagement"
        verbose_name_plural = "Engagements"

    def __str__(self) -> str:
        return f"Engagement({self.id}, {self.payment_status})"

    @property
    def is_paid(self) -> bool:
        return self.payment_status == EngagementPaymentStatus.PAID
