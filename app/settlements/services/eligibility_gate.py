"""
PayeeEligibilityGate: payee eligibility checks and the payout nudge.

Eligibility means Stripe reports the payee's connected account can receive
both charges and payouts. The gate refreshes the stored flags from Stripe
(on demand, from the sweep, or from account.updated notifications) and, when
a payee newly becomes eligible, schedules PayoutRetryService for them once
the flag write has committed.

Usage:
    from settlements.services import PayeeEligibilityGate

    status = PayeeEligibilityGate.check_and_maybe_trigger_retry(payee_id)
    if status.eligible:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import transaction

from settlements.exceptions import StripeError
from settlements.models import PayeeAccount
from settlements.services.base import StripeBackedService
from settlements.services.payee_accounts import PayeeAccountService

logger = logging.getLogger(__name__)


def schedule_payout_retry(payee_id: int, source: str) -> None:
    """
    Queue retry_payouts_for_payee after the current transaction commits.

    A broker failure is logged and swallowed: the periodic sweep picks the
    payee up later.
    """

    def _nudge() -> None:
        from settlements.tasks import retry_payouts_for_payee

        try:
            retry_payouts_for_payee.delay(payee_id, source=source)
        except Exception:
            logger.error(
                "Failed to schedule payout retry",
                extra={"payee_id": payee_id, "source": source},
                exc_info=True,
            )
        else:
            logger.info(
                "Payout retry scheduled",
                extra={"payee_id": payee_id, "source": source},
            )

    transaction.on_commit(_nudge)


@dataclass
class EligibilityStatus:
    """
    Snapshot of a payee's eligibility.

    Attributes:
        payee_id: Payee user id
        onboarded: Payee has a Stripe connected account
        charges_enabled: Stripe flag
        payouts_enabled: Stripe flag
        refreshed: Flags were just read from Stripe (False means last known)
        retry_scheduled: This check observed the not-eligible to eligible
            edge and queued a payout retry
        checked_at: When the flags were last refreshed
    """

    payee_id: int
    onboarded: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False
    refreshed: bool = False
    retry_scheduled: bool = False
    checked_at: datetime | None = None

    @property
    def eligible(self) -> bool:
        return self.onboarded and self.charges_enabled and self.payouts_enabled

    @classmethod
    def from_account(
        cls,
        account: PayeeAccount,
        refreshed: bool,
        retry_scheduled: bool = False,
    ) -> EligibilityStatus:
        return cls(
            payee_id=account.user_id,
            onboarded=account.has_external_account,
            charges_enabled=account.charges_enabled,
            payouts_enabled=account.payouts_enabled,
            refreshed=refreshed,
            retry_scheduled=retry_scheduled,
            checked_at=account.eligibility_checked_at,
        )


class PayeeEligibilityGate(StripeBackedService):
    """Refreshes payee eligibility and nudges payouts on the eligible edge."""

    @staticmethod
    def is_eligible(payee_id: int) -> bool:
        """Stored eligibility, without asking Stripe."""
        account = PayeeAccountService.get_payee_account(payee_id)
        return account is not None and account.is_eligible

    @classmethod
    def check_and_maybe_trigger_retry(cls, payee_id: int) -> EligibilityStatus:
        """
        Refresh a payee's flags from Stripe and nudge payouts if they just
        became eligible.

        Never raises for Stripe failures: the last known flags are returned
        with refreshed=False. A payee without a Stripe account is reported
        with onboarded=False.
        """
        account = PayeeAccountService.get_payee_account(payee_id)
        if account is None or not account.has_external_account:
            return EligibilityStatus(payee_id=payee_id, onboarded=False)

        adapter = cls.get_stripe_adapter()
        try:
            remote = adapter.retrieve_account(account.stripe_account_id)
        except StripeError as e:
            cls.get_logger().warning(
                "Could not refresh payee eligibility, using stored flags",
                extra={
                    "payee_id": payee_id,
                    "stripe_account_id": account.stripe_account_id,
                    "error": str(e),
                },
            )
            return EligibilityStatus.from_account(account, refreshed=False)

        return cls._apply_flags(
            account,
            charges_enabled=remote.charges_enabled,
            payouts_enabled=remote.payouts_enabled,
            details_submitted=remote.details_submitted,
            source="eligibility_check",
        )

    @classmethod
    def apply_account_update(
        cls,
        stripe_account_id: str,
        charges_enabled: bool,
        payouts_enabled: bool,
        details_submitted: bool | None = None,
    ) -> EligibilityStatus | None:
        """
        Apply flags carried by an account.updated notification.

        Returns None when the Stripe account belongs to no payee.
        """
        account = PayeeAccountService.get_by_stripe_account_id(stripe_account_id)
        if account is None:
            cls.get_logger().info(
                "account.updated for unknown Stripe account",
                extra={"stripe_account_id": stripe_account_id},
            )
            return None

        return cls._apply_flags(
            account,
            charges_enabled=charges_enabled,
            payouts_enabled=payouts_enabled,
            details_submitted=details_submitted,
            source="account_updated",
        )

    @classmethod
    def _apply_flags(
        cls,
        account: PayeeAccount,
        *,
        charges_enabled: bool,
        payouts_enabled: bool,
        details_submitted: bool | None,
        source: str,
    ) -> EligibilityStatus:
        with cls.atomic():
            update = PayeeAccountService.update_eligibility_flags(
                account.id,
                charges_enabled=charges_enabled,
                payouts_enabled=payouts_enabled,
                details_submitted=details_submitted,
            )
            if update.became_eligible:
                schedule_payout_retry(update.account.user_id, source=source)

        log_extra = {
            "payee_id": update.account.user_id,
            "stripe_account_id": update.account.stripe_account_id,
            "charges_enabled": update.account.charges_enabled,
            "payouts_enabled": update.account.payouts_enabled,
            "source": source,
        }
        if update.became_eligible:
            cls.get_logger().info("Payee became eligible", extra=log_extra)
        elif update.was_eligible and not update.account.is_eligible:
            cls.get_logger().warning("Payee lost eligibility", extra=log_extra)
        else:
            cls.get_logger().debug("Payee eligibility refreshed", extra=log_extra)

        return EligibilityStatus.from_account(
            update.account,
            refreshed=True,
            retry_scheduled=update.became_eligible,
        )
