"""
PayeeAccount model: a payee's Stripe Connect account and its eligibility.

The flags mirror what Stripe last reported for the connected account. They
are refreshed by PayeeEligibilityGate (on demand, from the sweep, and from
account.updated webhooks).

Usage:
    from settlements.models import PayeeAccount

    account = PayeeAccount.objects.get(user=tutor)
    if account.is_eligible:
        ...  # destination charges and transfers are allowed
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class PayeeAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    Stripe Connect (Express) account of a payee.

    Fields:
        user: Payee this account belongs to
        stripe_account_id: Stripe Account ID (acct_xxx), null until onboarding starts
        charges_enabled: Stripe reports the account can receive charges
        payouts_enabled: Stripe reports the account can receive payouts
        details_submitted: Payee finished the onboarding form
        eligibility_checked_at: When the flags were last refreshed from Stripe

    Properties:
        has_external_account: Onboarding has started (an account exists)
        is_eligible: Both flags true and an account exists
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payee_account",
        help_text="Payee this account belongs to",
    )

    stripe_account_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Account ID (acct_xxx)",
    )

    charges_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled charges for this account",
    )

    payouts_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled payouts for this account",
    )

    details_submitted = models.BooleanField(
        default=False,
        help_text="Whether the payee completed the Stripe onboarding form",
    )

    eligibility_checked_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the flags were last refreshed from Stripe",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payee Account"
        verbose_name_plural = "Payee Accounts"

    def __str__(self) -> str:
        return f"PayeeAccount({self.user_id}, {self.stripe_account_id})"

    @property
    def has_external_account(self) -> bool:
        return bool(self.stripe_account_id)

    @property
    def is_eligible(self) -> bool:
        return (
            self.has_external_account
            and self.charges_enabled
            and self.payouts_enabled
        )
