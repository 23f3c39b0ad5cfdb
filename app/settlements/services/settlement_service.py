"""
SettlementService: opens a charge for an engagement and records it.

Flow:
    1. Load the engagement, check the caller is its payer
    2. Check the payee and their Stripe account
    3. Compute the fee split
    4. Open a Stripe PaymentIntent (destination or deferred)
    5. Insert the SettlementRecord in PENDING with the PaymentIntent id

Stripe is called before the record is written. A charge authorization
without a local record is logged at CRITICAL for manual reconciliation;
a local record without a charge can never exist.

Usage:
    from settlements.services import SettlementService
    from settlements.types import Caller

    creation = SettlementService.create_settlement(
        engagement_id=engagement.id,
        amount_cents=10000,
        payee_id=engagement.payee_id,
        caller=Caller.for_user(request.user),
    )
    creation.client_secret  # handed to the payer's client to confirm
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from django.conf import settings
from django.db import DatabaseError

from engagements.services import EngagementService
from settlements.adapters import CreatePaymentIntentParams, IdempotencyKeyGenerator
from settlements.exceptions import (
    ORPHANED_AUTHORIZATION,
    ChargeFailedError,
    DuplicateActiveRecordError,
    PartialFailureError,
    PayeeMismatchError,
    PayeeNotOnboardedError,
    StripeError,
    UnauthorizedCallerError,
)
from settlements.models import SettlementRecord
from settlements.services.base import StripeBackedService
from settlements.services.fee_calculator import FeeCalculator
from settlements.services.payee_accounts import PayeeAccountService
from settlements.services.record_store import SettlementRecordStore
from settlements.state_machines import PayoutMode
from settlements.types import Caller

CHARGE_IDEMPOTENCY_OPERATION = "settlement_charge"


def transfer_group_for(record_id: uuid.UUID | str) -> str:
    """Stripe transfer_group shared by a deferred charge and its payout transfer."""
    return f"settlement_{record_id}"


@dataclass
class SettlementCreation:
    """
    Result of opening a settlement.

    Attributes:
        record: The new PENDING record
        client_secret: PaymentIntent client secret for the payer's client
    """

    record: SettlementRecord
    client_secret: str | None


class SettlementService(StripeBackedService):
    """Opens charges and their settlement records."""

    @classmethod
    def create_settlement(
        cls,
        engagement_id: uuid.UUID | str,
        amount_cents: int,
        payee_id: int,
        caller: Caller,
    ) -> SettlementCreation:
        """
        Open a charge for an engagement and record it in PENDING.

        Raises:
            EngagementNotFoundError: engagement does not exist
            UnauthorizedCallerError: caller is not the engagement's payer
            PayeeMismatchError: payee_id is not the engagement's payee
            PayeeNotOnboardedError: payee has no Stripe account
            InvalidAmountError: amount is not a positive integer
            DuplicateActiveRecordError: engagement already has an active record
            ChargeFailedError: Stripe rejected the PaymentIntent
            PartialFailureError: Stripe outcome unknown, or the record could
                not be written after Stripe accepted the charge
        """
        logger = cls.get_logger()
        log_context = {
            "engagement_id": str(engagement_id),
            "payee_id": payee_id,
            "amount_cents": amount_cents,
            **caller.as_log_context(),
        }

        engagement = EngagementService.get_engagement(engagement_id)

        if caller.is_internal or caller.user_id != engagement.payer_id:
            logger.warning("Settlement requested by a non-payer", extra=log_context)
            raise UnauthorizedCallerError(
                "Only the engagement's payer can pay for it",
                details={"engagement_id": str(engagement.id)},
            )

        if str(payee_id) != str(engagement.payee_id):
            raise PayeeMismatchError(
                "Payee does not match the engagement",
                details={"engagement_id": str(engagement.id), "payee_id": payee_id},
            )

        payee_account = PayeeAccountService.get_payee_account(engagement.payee_id)
        if payee_account is None or not payee_account.has_external_account:
            raise PayeeNotOnboardedError(
                "Payee has not set up a payout account",
                details={"payee_id": engagement.payee_id},
            )

        split = FeeCalculator.calculate(amount_cents)

        if SettlementRecordStore.has_active_record(engagement.id):
            raise DuplicateActiveRecordError(
                "Engagement already has an active settlement",
                details={"engagement_id": str(engagement.id)},
            )

        record_id = uuid.uuid4()
        currency = getattr(settings, "SETTLEMENT_CURRENCY", "usd")
        payout_mode = (
            PayoutMode.DESTINATION if payee_account.is_eligible else PayoutMode.DEFERRED
        )
        log_context.update(
            {
                "record_id": str(record_id),
                "payout_mode": payout_mode,
                "platform_fee_cents": split.platform_fee_cents,
                "payee_payout_cents": split.payee_payout_cents,
            }
        )

        params = CreatePaymentIntentParams(
            amount_cents=split.amount_cents,
            currency=currency,
            idempotency_key=IdempotencyKeyGenerator.generate(
                CHARGE_IDEMPOTENCY_OPERATION, record_id
            ),
            metadata={
                "settlement_record_id": str(record_id),
                "engagement_id": str(engagement.id),
                "payer_id": str(engagement.payer_id),
                "payee_id": str(engagement.payee_id),
                "platform_fee_cents": str(split.platform_fee_cents),
                "payee_payout_cents": str(split.payee_payout_cents),
            },
        )
        if payout_mode == PayoutMode.DESTINATION:
            params.transfer_data = {"destination": payee_account.stripe_account_id}
            if split.platform_fee_cents > 0:
                params.application_fee_amount = split.platform_fee_cents
        else:
            params.transfer_group = transfer_group_for(record_id)

        logger.info("Opening settlement charge", extra=log_context)

        adapter = cls.get_stripe_adapter()
        try:
            intent = adapter.create_payment_intent(params)
        except StripeError as e:
            if e.outcome_unknown:
                logger.critical(
                    "Stripe outcome unknown while opening charge",
                    extra={
                        **log_context,
                        "anomaly": ORPHANED_AUTHORIZATION,
                        "idempotency_key": params.idempotency_key,
                        "error": str(e),
                    },
                )
                raise PartialFailureError(
                    "Payment processor did not confirm the charge. Please retry.",
                    details={"record_id": str(record_id)},
                ) from e

            logger.warning(
                "Stripe rejected settlement charge",
                extra={**log_context, "error": str(e), "stripe_code": e.stripe_code},
            )
            raise ChargeFailedError(
                "Payment processor rejected the charge",
                details={"stripe_code": e.stripe_code},
            ) from e

        try:
            record = SettlementRecordStore.create(
                record_id=record_id,
                engagement_id=engagement.id,
                payee_account_id=payee_account.id,
                split=split,
                charge_ref=intent.id,
                payout_mode=payout_mode,
                currency=currency,
            )
        except (DatabaseError, DuplicateActiveRecordError) as e:
            logger.critical(
                "Orphaned charge authorization: record not written",
                extra={
                    **log_context,
                    "anomaly": ORPHANED_AUTHORIZATION,
                    "charge_ref": intent.id,
                    "error": str(e),
                },
                exc_info=True,
            )
            raise PartialFailureError(
                "Charge was opened but could not be recorded",
                details={"record_id": str(record_id), "charge_ref": intent.id},
            ) from e

        logger.info(
            "Settlement opened",
            extra={**log_context, "charge_ref": intent.id},
        )
        return SettlementCreation(record=record, client_secret=intent.client_secret)
