"""
PayeeOnboardingService: Stripe Connect Express onboarding for payees.

A payee without a connected account gets one created on the first
onboarding request; every request then returns a fresh hosted onboarding
link (Stripe account links are single-use and expire).
"""

from __future__ import annotations

from django.conf import settings

from settlements.adapters import IdempotencyKeyGenerator
from settlements.exceptions import PayeeNotOnboardedError
from settlements.services.base import StripeBackedService
from settlements.services.payee_accounts import PayeeAccountService

ACCOUNT_IDEMPOTENCY_OPERATION = "payee_connect_account"


class PayeeOnboardingService(StripeBackedService):
    """Creates connected accounts and hosted Stripe links for payees."""

    @classmethod
    def create_onboarding_link(
        cls,
        user,
        refresh_url: str | None = None,
        return_url: str | None = None,
    ) -> str:
        """
        Return a Stripe onboarding URL for the user, creating their
        Express account first if needed.

        Raises:
            StripeError: account or link creation failed
        """
        adapter = cls.get_stripe_adapter()
        payee_account = PayeeAccountService.get_or_create_for_user(user)

        if not payee_account.has_external_account:
            account = adapter.create_express_account(
                email=user.email,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    ACCOUNT_IDEMPOTENCY_OPERATION, payee_account.id
                ),
                metadata={"payee_id": str(user.pk)},
            )
            payee_account = PayeeAccountService.attach_stripe_account(
                payee_account, account.id
            )
            cls.get_logger().info(
                "Connected account created for payee",
                extra={"payee_id": user.pk, "stripe_account_id": account.id},
            )

        link = adapter.create_account_link(
            account_id=payee_account.stripe_account_id,
            refresh_url=refresh_url or settings.STRIPE_CONNECT_REFRESH_URL,
            return_url=return_url or settings.STRIPE_CONNECT_RETURN_URL,
        )
        return link.url

    @classmethod
    def create_dashboard_link(cls, user) -> str:
        """
        Return a Stripe Express dashboard login URL.

        Raises:
            PayeeNotOnboardedError: user has no connected account
        """
        payee_account = PayeeAccountService.get_payee_account(user.pk)
        if payee_account is None or not payee_account.has_external_account:
            raise PayeeNotOnboardedError(
                "Payee has not set up a payout account",
                details={"payee_id": user.pk},
            )

        link = cls.get_stripe_adapter().create_login_link(
            payee_account.stripe_account_id
        )
        return link.url
