"""
PayoutRetryService: pays out deferred settlements exactly once.

A deferred record has its charge on the platform account and its payee
share still owed. For each such record the service follows
transfer-then-record:

    1. Re-read transfer_ref; skip if already set
    2. Look in Stripe for a live transfer in the record's transfer group
       and record it if there is one
    3. Otherwise create a Stripe Transfer funded by the record's charge
       (source_transaction), keyed by record id and payout_attempt
    4. Conditionally store transfer_ref (only if still null)

A retry after an unknown outcome reuses the same key, so Stripe replays
the original transfer while the key is live. The transfer-group lookup
covers retries after the key has expired. A definite rejection advances
payout_attempt so the next pass gets a fresh key instead of the cached
error. transfer_ref is the sole guard against a duplicate payout.

Usage:
    from settlements.services import PayoutRetryService
    from settlements.types import Caller

    summary = PayoutRetryService.retry_for_payee(
        payee_id, caller=Caller.internal("sweep")
    )
    summary.successful_count, summary.total_amount_transferred
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from django.db import DatabaseError

from settlements.adapters import IdempotencyKeyGenerator, TransferResult
from settlements.exceptions import (
    DUPLICATE_TRANSFER_SUSPECTED,
    TRANSFER_NOT_RECORDED,
    AlreadyTransferredError,
    NotYetCompletedError,
    PayeeNotEligibleError,
    PayeeNotOnboardedError,
    StripeError,
    UnauthorizedCallerError,
)
from settlements.models import PayeeAccount, SettlementRecord
from settlements.services.base import StripeBackedService
from settlements.services.payee_accounts import PayeeAccountService
from settlements.services.record_store import SettlementRecordStore
from settlements.services.settlement_service import transfer_group_for
from settlements.state_machines import PayoutMode
from settlements.types import Caller

PAYOUT_IDEMPOTENCY_OPERATION = "settlement_payout"
SOURCE_CHARGE_UNKNOWN = "SOURCE_CHARGE_UNKNOWN"


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class PayoutAttempt:
    """
    Outcome of paying out one record.

    Attributes:
        record_id: SettlementRecord id
        success: transfer_ref is recorded and matches the transfer made
        amount_cents: Payee payout amount
        transfer_ref: Stripe Transfer id, when one exists
        error_kind: Error code for failures
        error_message: Human-readable failure reason
    """

    record_id: uuid.UUID
    success: bool
    amount_cents: int
    transfer_ref: str | None = None
    error_kind: str | None = None
    error_message: str | None = None

    def to_dict(self) -> dict:
        return {
            "record_id": str(self.record_id),
            "success": self.success,
            "amount_cents": self.amount_cents,
            "transfer_ref": self.transfer_ref,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
        }


@dataclass
class PayoutRetrySummary:
    """Aggregate of one retry pass over a payee's deferred records."""

    payee_id: int
    results: list[PayoutAttempt] = field(default_factory=list)

    @property
    def successful_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def total_amount_transferred(self) -> int:
        return sum(r.amount_cents for r in self.results if r.success)

    @property
    def failed_errors(self) -> list[str]:
        """Unique failure messages, in first-seen order."""
        errors: list[str] = []
        for result in self.results:
            if not result.success and result.error_message not in errors:
                errors.append(result.error_message)
        return errors

    def to_dict(self) -> dict:
        return {
            "payee_id": self.payee_id,
            "successful_count": self.successful_count,
            "failed_count": self.failed_count,
            "total_amount_transferred": self.total_amount_transferred,
            "failed_errors": self.failed_errors,
            "results": [r.to_dict() for r in self.results],
        }


# =============================================================================
# Payout Retry Service
# =============================================================================


class PayoutRetryService(StripeBackedService):
    """
    Executes deferred payouts.

    Error Handling:
        - Caller, onboarding and eligibility problems raise before any
          record is touched
        - A Stripe failure on one record is reported in its PayoutAttempt;
          the pass continues with the next record
        - A database failure after a successful transfer is logged at
          CRITICAL and reported; the next pass re-records the same transfer
    """

    @classmethod
    def retry_for_payee(cls, payee_id: int, caller: Caller) -> PayoutRetrySummary:
        """
        Pay out every completed, untransferred deferred record of a payee.

        Raises:
            UnauthorizedCallerError: caller is not internal
            PayeeNotOnboardedError: payee has no Stripe account
            PayeeNotEligibleError: payee cannot receive payouts yet
        """
        cls._require_internal(caller, payee_id=payee_id)
        payee_account = cls._get_eligible_payee_account(payee_id)

        cls.get_logger().info(
            "Starting payout retry pass",
            extra={"payee_id": payee_id, **caller.as_log_context()},
        )

        summary = PayoutRetrySummary(payee_id=payee_id)
        for record in SettlementRecordStore.find_completed_without_transfer(payee_id):
            attempt = cls._pay_out(record, payee_account)
            if attempt is not None:
                summary.results.append(attempt)

        cls.get_logger().info(
            "Payout retry pass finished",
            extra={
                "payee_id": payee_id,
                "successful_count": summary.successful_count,
                "failed_count": summary.failed_count,
                "total_amount_transferred": summary.total_amount_transferred,
            },
        )
        return summary

    @classmethod
    def retry_single(cls, record_id: uuid.UUID | str, caller: Caller) -> PayoutAttempt:
        """
        Pay out one record.

        Raises:
            UnauthorizedCallerError: caller is not internal
            SettlementRecordNotFoundError: no such record
            AlreadyTransferredError: payout already executed (or settled by
                a destination charge)
            NotYetCompletedError: charge not completed
            PayeeNotOnboardedError / PayeeNotEligibleError
        """
        cls._require_internal(caller, record_id=record_id)
        record = SettlementRecordStore.get(record_id)

        if not record.awaits_payout:
            if record.is_transferred or record.payout_mode == PayoutMode.DESTINATION:
                raise AlreadyTransferredError(
                    "Settlement record has already been paid out",
                    details={
                        "record_id": str(record.id),
                        "transfer_ref": record.transfer_ref,
                    },
                )
            raise NotYetCompletedError(
                "Charge has not completed, nothing to pay out",
                details={"record_id": str(record.id), "status": record.status},
            )

        payee_account = cls._get_eligible_payee_account(record.engagement.payee_id)
        attempt = cls._pay_out(record, payee_account)
        if attempt is None:
            raise AlreadyTransferredError(
                "Settlement record has already been paid out",
                details={"record_id": str(record.id)},
            )
        return attempt

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _require_internal(caller: Caller, **context) -> None:
        if not caller.is_internal:
            raise UnauthorizedCallerError(
                "Payout retries can only be triggered internally",
                details={k: str(v) for k, v in context.items()},
            )

    @staticmethod
    def _get_eligible_payee_account(payee_id: int) -> PayeeAccount:
        payee_account = PayeeAccountService.get_payee_account(payee_id)
        if payee_account is None or not payee_account.has_external_account:
            raise PayeeNotOnboardedError(
                "Payee has not set up a payout account",
                details={"payee_id": payee_id},
            )
        if not payee_account.is_eligible:
            raise PayeeNotEligibleError(
                "Payee account cannot receive payouts yet",
                details={
                    "payee_id": payee_id,
                    "charges_enabled": payee_account.charges_enabled,
                    "payouts_enabled": payee_account.payouts_enabled,
                },
            )
        return payee_account

    @classmethod
    def _pay_out(
        cls,
        record: SettlementRecord,
        payee_account: PayeeAccount,
    ) -> PayoutAttempt | None:
        """
        Transfer-then-record for one record.

        Returns None when another worker recorded a transfer before this
        one started.
        """
        logger = cls.get_logger()
        log_context = {
            "record_id": str(record.id),
            "payee_id": payee_account.user_id,
            "destination_account": payee_account.stripe_account_id,
            "amount_cents": record.payee_payout_cents,
        }

        state = SettlementRecordStore.get_payout_state(record.id)
        if state is None or state["transfer_ref"]:
            logger.debug("Record already paid out, skipping", extra=log_context)
            return None

        adapter = cls.get_stripe_adapter()
        transfer_group = transfer_group_for(record.id)
        try:
            transfer = cls._find_existing_transfer(
                adapter, transfer_group, payee_account.stripe_account_id
            )
        except StripeError as e:
            return cls._failed_attempt(record, e, log_context, "Transfer lookup failed")

        if transfer is not None:
            log_context["transfer_ref"] = transfer.id
            logger.info("Found earlier transfer for record", extra=log_context)
            return cls._record_transfer(record, transfer, log_context)

        try:
            source_charge = state["source_charge_ref"] or cls._resolve_source_charge(
                adapter, record
            )
        except StripeError as e:
            return cls._failed_attempt(
                record, e, log_context, "Source charge lookup failed"
            )
        if source_charge is None:
            logger.error("PaymentIntent has no charge to fund payout", extra=log_context)
            return PayoutAttempt(
                record_id=record.id,
                success=False,
                amount_cents=record.payee_payout_cents,
                error_kind=SOURCE_CHARGE_UNKNOWN,
                error_message="No charge found for the record's PaymentIntent",
            )

        payout_attempt = state["payout_attempt"]
        idempotency_key = IdempotencyKeyGenerator.generate(
            PAYOUT_IDEMPOTENCY_OPERATION, record.id, attempt=payout_attempt
        )
        log_context["payout_attempt"] = payout_attempt

        try:
            transfer = adapter.create_transfer(
                amount_cents=record.payee_payout_cents,
                destination_account=payee_account.stripe_account_id,
                idempotency_key=idempotency_key,
                currency=record.currency,
                metadata={
                    "settlement_record_id": str(record.id),
                    "engagement_id": str(record.engagement_id),
                },
                transfer_group=transfer_group,
                source_transaction=source_charge,
            )
        except StripeError as e:
            if not e.outcome_unknown:
                SettlementRecordStore.advance_payout_attempt(record.id, payout_attempt)
            return cls._failed_attempt(record, e, log_context, "Payout transfer failed")

        log_context["transfer_ref"] = transfer.id
        log_context["idempotency_key"] = idempotency_key
        return cls._record_transfer(record, transfer, log_context)

    @staticmethod
    def _find_existing_transfer(
        adapter, transfer_group: str, destination_account: str
    ) -> TransferResult | None:
        for transfer in adapter.list_transfers_for_group(transfer_group):
            if transfer.reversed:
                continue
            if transfer.destination_account == destination_account:
                return transfer
        return None

    @staticmethod
    def _resolve_source_charge(adapter, record: SettlementRecord) -> str | None:
        charge_id = adapter.retrieve_payment_intent(record.charge_ref).latest_charge
        if charge_id:
            SettlementRecordStore.set_source_charge_ref(record.id, charge_id)
        return charge_id

    @classmethod
    def _failed_attempt(
        cls,
        record: SettlementRecord,
        error: StripeError,
        log_context: dict,
        message: str,
    ) -> PayoutAttempt:
        log = cls.get_logger().warning if error.is_retryable else cls.get_logger().error
        log(
            f"{message}: {type(error).__name__}",
            extra={
                **log_context,
                "error": str(error),
                "is_retryable": error.is_retryable,
                "outcome_unknown": error.outcome_unknown,
            },
        )
        return PayoutAttempt(
            record_id=record.id,
            success=False,
            amount_cents=record.payee_payout_cents,
            error_kind=error.error_code,
            error_message=error.message,
        )

    @classmethod
    def _record_transfer(
        cls,
        record: SettlementRecord,
        transfer: TransferResult,
        log_context: dict,
    ) -> PayoutAttempt:
        logger = cls.get_logger()

        try:
            stored = SettlementRecordStore.set_transfer_ref(record.id, transfer.id)
        except DatabaseError as e:
            logger.critical(
                "Transfer not recorded",
                extra={**log_context, "anomaly": TRANSFER_NOT_RECORDED},
                exc_info=True,
            )
            return PayoutAttempt(
                record_id=record.id,
                success=False,
                amount_cents=record.payee_payout_cents,
                transfer_ref=transfer.id,
                error_kind=TRANSFER_NOT_RECORDED,
                error_message=f"Transfer {transfer.id} could not be recorded: {e}",
            )

        if not stored:
            current_ref = SettlementRecordStore.get_transfer_ref(record.id)
            if current_ref != transfer.id:
                logger.error(
                    "Record already has a different transfer",
                    extra={
                        **log_context,
                        "anomaly": DUPLICATE_TRANSFER_SUSPECTED,
                        "stored_transfer_ref": current_ref,
                    },
                )
                return PayoutAttempt(
                    record_id=record.id,
                    success=False,
                    amount_cents=record.payee_payout_cents,
                    transfer_ref=transfer.id,
                    error_kind=DUPLICATE_TRANSFER_SUSPECTED,
                    error_message="Record already has a different transfer",
                )
            logger.debug("Transfer already recorded", extra=log_context)

        logger.info("Payout transferred", extra=log_context)
        return PayoutAttempt(
            record_id=record.id,
            success=True,
            amount_cents=record.payee_payout_cents,
            transfer_ref=transfer.id,
        )
