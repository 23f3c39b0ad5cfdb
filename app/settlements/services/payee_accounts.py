"""
PayeeAccountService: reads and writes of payee Stripe account state.

Eligibility flags are only written under a row lock so that exactly one
concurrent writer observes the not-eligible to eligible edge.
"""

from __future__ import annotations

from dataclasses import dataclass

from django.utils import timezone

from core.services import BaseService
from settlements.models import PayeeAccount


@dataclass
class EligibilityFlagsUpdate:
    """
    Outcome of writing fresh flags onto a PayeeAccount.

    Attributes:
        account: The updated account
        was_eligible: Eligibility before the write
        became_eligible: True only for the not-eligible to eligible edge
    """

    account: PayeeAccount
    was_eligible: bool
    became_eligible: bool


class PayeeAccountService(BaseService):
    """Collaborator surface over PayeeAccount rows."""

    @staticmethod
    def get_payee_account(payee_id: int) -> PayeeAccount | None:
        return PayeeAccount.objects.filter(user_id=payee_id).first()

    @staticmethod
    def get_by_stripe_account_id(stripe_account_id: str) -> PayeeAccount | None:
        return PayeeAccount.objects.filter(stripe_account_id=stripe_account_id).first()

    @staticmethod
    def get_or_create_for_user(user) -> PayeeAccount:
        account, _ = PayeeAccount.objects.get_or_create(user=user)
        return account

    @classmethod
    def attach_stripe_account(
        cls,
        payee_account: PayeeAccount,
        stripe_account_id: str,
    ) -> PayeeAccount:
        """
        Store the Stripe account id if none is stored yet.

        When a concurrent request attached an account first, the stored one
        wins and is returned.
        """
        updated = PayeeAccount.objects.filter(
            id=payee_account.id,
            stripe_account_id__isnull=True,
        ).update(stripe_account_id=stripe_account_id, updated_at=timezone.now())

        payee_account = PayeeAccount.objects.get(id=payee_account.id)
        if not updated and payee_account.stripe_account_id != stripe_account_id:
            cls.get_logger().warning(
                "Payee already had a Stripe account, keeping the stored one",
                extra={
                    "payee_id": payee_account.user_id,
                    "stored_account_id": payee_account.stripe_account_id,
                    "discarded_account_id": stripe_account_id,
                },
            )
        return payee_account

    @classmethod
    def update_eligibility_flags(
        cls,
        payee_account_id,
        *,
        charges_enabled: bool,
        payouts_enabled: bool,
        details_submitted: bool | None = None,
    ) -> EligibilityFlagsUpdate:
        """
        Persist flags reported by Stripe and report the eligibility edge.

        The read-compare-write runs in a transaction with the row locked by
        select_for_update.
        """
        with cls.atomic():
            account = PayeeAccount.objects.select_for_update().get(id=payee_account_id)
            was_eligible = account.is_eligible

            account.charges_enabled = bool(charges_enabled)
            account.payouts_enabled = bool(payouts_enabled)
            if details_submitted is not None:
                account.details_submitted = bool(details_submitted)
            account.eligibility_checked_at = timezone.now()
            account.save(
                update_fields=[
                    "charges_enabled",
                    "payouts_enabled",
                    "details_submitted",
                    "eligibility_checked_at",
                    "updated_at",
                ]
            )

        return EligibilityFlagsUpdate(
            account=account,
            was_eligible=was_eligible,
            became_eligible=account.is_eligible and not was_eligible,
        )
