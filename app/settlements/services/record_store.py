"""
SettlementRecordStore: the only code that writes SettlementRecord rows.

All mutations are single conditional UPDATE statements (compare-and-swap):
the WHERE clause carries the expected prior state and the affected row
count tells the caller whether it won. No in-process locks are involved, so
web workers, Celery workers and beat can race freely.

Usage:
    from settlements.services import SettlementRecordStore

    if SettlementRecordStore.transition_status(
        record.id, SettlementStatus.PENDING, SettlementStatus.COMPLETED
    ):
        ...  # this caller performed the transition

    if not SettlementRecordStore.set_transfer_ref(record.id, transfer.id):
        ...  # someone else recorded a transfer first
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from settlements.exceptions import (
    DuplicateActiveRecordError,
    InvalidAmountError,
    InvalidStateTransitionError,
    SettlementRecordNotFoundError,
)
from settlements.models import SettlementRecord
from settlements.state_machines import PayoutMode, SettlementStatus

if TYPE_CHECKING:
    from collections.abc import Iterator

    from settlements.services.fee_calculator import FeeSplit


logger = logging.getLogger(__name__)

DEFAULT_ITERATOR_CHUNK_SIZE = 100


class SettlementRecordStore:
    """Create, read and conditionally update settlement records."""

    # =========================================================================
    # Create
    # =========================================================================

    @staticmethod
    def has_active_record(engagement_id: uuid.UUID | str) -> bool:
        return SettlementRecord.objects.filter(
            engagement_id=engagement_id,
            status__in=SettlementStatus.active(),
        ).exists()

    @classmethod
    def create(
        cls,
        *,
        record_id: uuid.UUID,
        engagement_id: uuid.UUID | str,
        payee_account_id: uuid.UUID | str,
        split: FeeSplit,
        charge_ref: str,
        payout_mode: str,
        currency: str,
    ) -> SettlementRecord:
        """
        Insert a new record in PENDING.

        Raises:
            InvalidAmountError: split does not add up to its amount
            DuplicateActiveRecordError: engagement already has a pending or
                completed record
        """
        if (
            split.amount_cents <= 0
            or split.platform_fee_cents < 0
            or split.payee_payout_cents < 0
            or split.platform_fee_cents + split.payee_payout_cents
            != split.amount_cents
        ):
            raise InvalidAmountError(
                "Fee split does not add up to the charged amount",
                details={
                    "amount_cents": split.amount_cents,
                    "platform_fee_cents": split.platform_fee_cents,
                    "payee_payout_cents": split.payee_payout_cents,
                },
            )

        try:
            with transaction.atomic():
                record = SettlementRecord.objects.create(
                    id=record_id,
                    engagement_id=engagement_id,
                    payee_account_id=payee_account_id,
                    amount_cents=split.amount_cents,
                    platform_fee_cents=split.platform_fee_cents,
                    payee_payout_cents=split.payee_payout_cents,
                    currency=currency,
                    payout_mode=payout_mode,
                    charge_ref=charge_ref,
                    last_transition_at=timezone.now(),
                )
        except IntegrityError as e:
            if cls.has_active_record(engagement_id):
                raise DuplicateActiveRecordError(
                    "Engagement already has an active settlement",
                    details={"engagement_id": str(engagement_id)},
                ) from e
            raise

        logger.info(
            "Settlement record created",
            extra={
                "record_id": str(record.id),
                "engagement_id": str(engagement_id),
                "charge_ref": charge_ref,
                "payout_mode": payout_mode,
                "amount_cents": split.amount_cents,
            },
        )
        return record

    # =========================================================================
    # Read
    # =========================================================================

    @staticmethod
    def get(record_id: uuid.UUID | str) -> SettlementRecord:
        """
        Raises:
            SettlementRecordNotFoundError: no record with this id
        """
        try:
            return SettlementRecord.objects.select_related(
                "engagement",
                "payee_account",
            ).get(id=record_id)
        except (SettlementRecord.DoesNotExist, DjangoValidationError, ValueError) as e:
            raise SettlementRecordNotFoundError(
                f"Settlement record {record_id} not found",
                details={"record_id": str(record_id)},
            ) from e

    @staticmethod
    def find_by_charge_ref(charge_ref: str) -> SettlementRecord | None:
        return (
            SettlementRecord.objects.select_related("engagement", "payee_account")
            .filter(charge_ref=charge_ref)
            .first()
        )

    @staticmethod
    def find_completed_without_transfer(
        payee_id: int | None = None,
    ) -> Iterator[SettlementRecord]:
        """
        Lazily iterate deferred records whose charge completed but whose
        payout has not been executed, oldest first.

        The iterator reads in chunks and can be abandoned and restarted at
        any point; records paid out in the meantime simply drop out.
        """
        queryset = SettlementRecord.objects.filter(
            status=SettlementStatus.COMPLETED,
            transfer_ref__isnull=True,
            payout_mode=PayoutMode.DEFERRED,
        )
        if payee_id is not None:
            queryset = queryset.filter(engagement__payee_id=payee_id)

        chunk_size = getattr(
            settings,
            "SETTLEMENT_PAYOUT_SWEEP_BATCH_SIZE",
            DEFAULT_ITERATOR_CHUNK_SIZE,
        )
        return (
            queryset.select_related("payee_account")
            .order_by("created_at", "id")
            .iterator(chunk_size=chunk_size)
        )

    @staticmethod
    def payees_awaiting_payout() -> list[int]:
        """Distinct payee user ids that have at least one deferred payout outstanding."""
        return list(
            SettlementRecord.objects.filter(
                status=SettlementStatus.COMPLETED,
                transfer_ref__isnull=True,
                payout_mode=PayoutMode.DEFERRED,
            )
            .order_by()
            .values_list("engagement__payee_id", flat=True)
            .distinct()
        )

    # =========================================================================
    # Conditional Updates
    # =========================================================================

    @staticmethod
    def _check_edge(from_status: str, to_status: str) -> None:
        current = SettlementRecord(status=from_status)
        targets = {t.target for t in current.get_available_status_transitions()}
        if to_status not in targets:
            raise InvalidStateTransitionError(
                f"Cannot transition settlement record from {from_status} to {to_status}",
                details={"from_status": from_status, "to_status": to_status},
            )

    @classmethod
    def transition_status(
        cls,
        record_id: uuid.UUID | str,
        from_status: str,
        to_status: str,
    ) -> bool:
        """
        Move a record from from_status to to_status if it is still in from_status.

        Returns:
            True if this call performed the transition, False if the record
            was not in from_status (already moved, or missing)

        Raises:
            InvalidStateTransitionError: edge not declared on SettlementRecord
        """
        cls._check_edge(from_status, to_status)

        now = timezone.now()
        updated = SettlementRecord.objects.filter(
            id=record_id,
            status=from_status,
        ).update(
            status=to_status,
            last_transition_at=now,
            updated_at=now,
        )

        if updated:
            logger.info(
                "Settlement record transitioned",
                extra={
                    "record_id": str(record_id),
                    "from_status": from_status,
                    "to_status": to_status,
                },
            )
        return bool(updated)

    @staticmethod
    def set_transfer_ref(record_id: uuid.UUID | str, transfer_ref: str) -> bool:
        """
        Record the payout transfer if none is recorded yet.

        Returns:
            True if this call stored transfer_ref, False if one was already set
        """
        now = timezone.now()
        updated = SettlementRecord.objects.filter(
            id=record_id,
            transfer_ref__isnull=True,
        ).update(
            transfer_ref=transfer_ref,
            transferred_at=now,
            updated_at=now,
        )
        return bool(updated)

    @staticmethod
    def get_transfer_ref(record_id: uuid.UUID | str) -> str | None:
        return (
            SettlementRecord.objects.filter(id=record_id)
            .values_list("transfer_ref", flat=True)
            .first()
        )

    @staticmethod
    def get_payout_state(record_id: uuid.UUID | str) -> dict | None:
        """Current transfer_ref, source_charge_ref and payout_attempt, read fresh."""
        return (
            SettlementRecord.objects.filter(id=record_id)
            .values("transfer_ref", "source_charge_ref", "payout_attempt")
            .first()
        )

    @staticmethod
    def set_source_charge_ref(record_id: uuid.UUID | str, charge_id: str) -> bool:
        """
        Remember the Stripe Charge that funds the record's payout.

        Returns:
            True if this call stored it, False if one was already set
        """
        updated = SettlementRecord.objects.filter(
            id=record_id,
            source_charge_ref__isnull=True,
        ).update(source_charge_ref=charge_id, updated_at=timezone.now())
        return bool(updated)

    @staticmethod
    def advance_payout_attempt(record_id: uuid.UUID | str, from_attempt: int) -> bool:
        """
        Move to the next payout idempotency key after Stripe rejected a transfer.

        Only untransferred records still on from_attempt advance, so two
        workers failing the same attempt move the key once.
        """
        updated = SettlementRecord.objects.filter(
            id=record_id,
            payout_attempt=from_attempt,
            transfer_ref__isnull=True,
        ).update(payout_attempt=from_attempt + 1, updated_at=timezone.now())
        return bool(updated)
