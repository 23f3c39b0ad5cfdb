"""
EventReconciler: applies Stripe charge notifications to settlement records.

    payment_intent.succeeded       pending → completed
    payment_intent.payment_failed  pending → failed
    payment_intent.canceled        pending → failed

Every transition is a conditional update from PENDING, so redelivered and
out-of-order notifications are no-ops. The engagement's payment status is
projected in the same transaction as the record transition.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from core.services import BaseService
from engagements.services import EngagementService
from settlements.exceptions import CHARGE_SUCCEEDED_AFTER_FAILURE
from settlements.models import SettlementRecord
from settlements.services.eligibility_gate import schedule_payout_retry
from settlements.services.record_store import SettlementRecordStore
from settlements.state_machines import PayoutMode, SettlementStatus

CHARGE_SUCCEEDED = "payment_intent.succeeded"
CHARGE_FAILED = "payment_intent.payment_failed"
CHARGE_CANCELED = "payment_intent.canceled"

TARGET_STATUS_BY_EVENT = {
    CHARGE_SUCCEEDED: SettlementStatus.COMPLETED,
    CHARGE_FAILED: SettlementStatus.FAILED,
    CHARGE_CANCELED: SettlementStatus.FAILED,
}


class ReconcileAction:
    TRANSITIONED = "transitioned"
    NO_RECORD = "no_record"
    ALREADY_APPLIED = "already_applied"
    ANOMALY = "anomaly"
    IGNORED = "ignored"


@dataclass
class ReconcileOutcome:
    """What a charge notification did to local state."""

    action: str
    record_id: uuid.UUID | None = None
    status: str | None = None

    @property
    def transitioned(self) -> bool:
        return self.action == ReconcileAction.TRANSITIONED


class EventReconciler(BaseService):
    """Advances SettlementRecord status from charge notifications."""

    @classmethod
    def reconcile_charge_event(
        cls,
        event_type: str,
        charge_ref: str,
        event_id: str | None = None,
        source_charge_ref: str | None = None,
    ) -> ReconcileOutcome:
        """
        Apply one charge notification.

        Args:
            event_type: Stripe event type
            charge_ref: PaymentIntent id from the event's data.object
            event_id: Stripe event id, for logs only
            source_charge_ref: Charge id (ch_xxx) of a succeeded intent; kept
                on the record to fund a deferred payout

        Returns:
            ReconcileOutcome. Unknown charge refs and replays are successful
            no-ops; only database errors propagate.
        """
        logger = cls.get_logger()
        log_context = {
            "event_type": event_type,
            "charge_ref": charge_ref,
            "stripe_event_id": event_id,
        }

        target_status = TARGET_STATUS_BY_EVENT.get(event_type)
        if target_status is None:
            logger.debug("Event type does not affect settlements", extra=log_context)
            return ReconcileOutcome(action=ReconcileAction.IGNORED)

        record = SettlementRecordStore.find_by_charge_ref(charge_ref)
        if record is None:
            logger.info("No settlement record for charge", extra=log_context)
            return ReconcileOutcome(action=ReconcileAction.NO_RECORD)

        log_context["record_id"] = str(record.id)

        with cls.atomic():
            if target_status == SettlementStatus.COMPLETED and source_charge_ref:
                SettlementRecordStore.set_source_charge_ref(record.id, source_charge_ref)
            transitioned = SettlementRecordStore.transition_status(
                record.id,
                SettlementStatus.PENDING,
                target_status,
            )
            if transitioned:
                if target_status == SettlementStatus.COMPLETED:
                    EngagementService.mark_paid(record.engagement_id)
                    if (
                        record.payout_mode == PayoutMode.DEFERRED
                        and record.payee_account.is_eligible
                    ):
                        schedule_payout_retry(
                            record.engagement.payee_id,
                            source="charge_completed",
                        )
                else:
                    EngagementService.mark_payment_failed(record.engagement_id)

        if transitioned:
            logger.info(
                "Charge notification applied",
                extra={**log_context, "status": target_status},
            )
            return ReconcileOutcome(
                action=ReconcileAction.TRANSITIONED,
                record_id=record.id,
                status=target_status,
            )

        current_status = (
            SettlementRecord.objects.filter(id=record.id)
            .values_list("status", flat=True)
            .first()
        )

        if (
            target_status == SettlementStatus.COMPLETED
            and current_status == SettlementStatus.FAILED
        ):
            logger.error(
                "Charge succeeded on a record already marked failed",
                extra={
                    **log_context,
                    "anomaly": CHARGE_SUCCEEDED_AFTER_FAILURE,
                    "current_status": current_status,
                },
            )
            return ReconcileOutcome(
                action=ReconcileAction.ANOMALY,
                record_id=record.id,
                status=current_status,
            )

        logger.debug(
            "Charge notification already applied",
            extra={**log_context, "current_status": current_status},
        )
        return ReconcileOutcome(
            action=ReconcileAction.ALREADY_APPLIED,
            record_id=record.id,
            status=current_status,
        )
