"""
Celery tasks for settlement processing.

This module provides async tasks for:
- Processing stored Stripe webhook events
- Retrying failed webhook events and resetting stuck ones
- Executing deferred payouts (per payee or per record)
- Refreshing payee eligibility
- The periodic payout sweep

Usage:
    from settlements.tasks import process_webhook_event

    # Queue a webhook for async processing
    process_webhook_event.delay(str(webhook_event.id))

    # Pay out everything owed to a payee
    from settlements.tasks import retry_payouts_for_payee
    retry_payouts_for_payee.delay(payee_id, source="operator")

Periodic schedules (sweep, webhook retry, stuck cleanup) are registered with
django-celery-beat by migration 0002_add_settlement_schedules.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from settlements.exceptions import (
    PayeeNotEligibleError,
    PayeeNotOnboardedError,
)
from settlements.models import WebhookEvent
from settlements.models.webhook_event import MAX_WEBHOOK_RETRIES
from settlements.state_machines import WebhookEventStatus
from settlements.types import Caller

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

STUCK_PROCESSING_THRESHOLD_MINUTES = 30
WEBHOOK_RETRY_BATCH_SIZE = 100
UNQUEUED_GRACE_MINUTES = 5


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Process a stored Stripe webhook event.

    This task:
    1. Loads the WebhookEvent by ID
    2. Skips it if already processed
    3. Marks it as processing
    4. Dispatches to the registered handler
    5. Marks it processed or failed

    Raises:
        Exception: Re-raised to trigger Celery retry
    """
    from settlements.webhooks.handlers import dispatch_webhook

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    logger.info(
        "Processing webhook event",
        extra={"webhook_event_id": str(webhook_event_id)},
    )

    try:
        webhook_event = WebhookEvent.objects.get(id=webhook_event_id)
    except WebhookEvent.DoesNotExist:
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    if webhook_event.is_processed:
        logger.info(
            "WebhookEvent already processed, skipping",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        return {
            "status": "already_processed",
            "webhook_event_id": str(webhook_event_id),
        }

    webhook_event.mark_processing()
    webhook_event.save()

    logger.info(
        f"Dispatching webhook: {webhook_event.event_type}",
        extra={
            "webhook_event_id": str(webhook_event_id),
            "stripe_event_id": webhook_event.stripe_event_id,
            "event_type": webhook_event.event_type,
            "retry_count": webhook_event.retry_count,
        },
    )

    try:
        with transaction.atomic():
            result = dispatch_webhook(webhook_event)

        if result.success:
            webhook_event.mark_processed()
            webhook_event.save()
            logger.info(
                "Webhook processed successfully",
                extra={
                    "webhook_event_id": str(webhook_event_id),
                    "stripe_event_id": webhook_event.stripe_event_id,
                },
            )
            return {
                "status": "processed",
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
            }

        error_msg = result.error or "Handler returned failure"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()
        logger.warning(
            f"Webhook handler failed: {error_msg}",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
                "error_code": result.error_code,
            },
        )
        return {
            "status": "handler_failed",
            "webhook_event_id": str(webhook_event_id),
            "error": error_msg,
        }

    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()

        logger.exception(
            "Webhook processing failed with exception",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        raise


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Re-queue failed webhook events that have retries left, and stored events
    that were never queued (broker down when the webhook arrived).

    Scheduled every 5 minutes by celery-beat.
    """
    unqueued_before = timezone.now() - timedelta(minutes=UNQUEUED_GRACE_MINUTES)
    failed_webhooks = WebhookEvent.objects.filter(
        Q(status=WebhookEventStatus.FAILED)
        | Q(status=WebhookEventStatus.PENDING, created_at__lt=unqueued_before),
        retry_count__lt=MAX_WEBHOOK_RETRIES,
    ).order_by("created_at")[:WEBHOOK_RETRY_BATCH_SIZE]

    queued_count = 0
    for webhook in failed_webhooks:
        try:
            process_webhook_event.delay(str(webhook.id))
        except Exception as e:
            logger.error(
                f"Failed to queue webhook for retry: {e}",
                extra={"webhook_event_id": str(webhook.id)},
            )
            continue

        queued_count += 1
        logger.info(
            "Queued failed webhook for retry",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
                "retry_count": webhook.retry_count,
            },
        )

    logger.info(
        f"Queued {queued_count} failed webhooks for retry",
        extra={"queued_count": queued_count},
    )
    return {"queued_count": queued_count}


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """
    Reset webhook events stuck in PROCESSING (worker crashed) to FAILED so
    that retry_failed_webhooks picks them up.
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)

    stuck_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )

    reset_count = 0
    for webhook in stuck_webhooks:
        stuck_since = webhook.updated_at
        webhook.mark_failed("Processing timed out - reset for retry")
        webhook.save()
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
                "stuck_since": stuck_since.isoformat(),
            },
        )

    if reset_count > 0:
        logger.info(
            f"Reset {reset_count} stuck webhooks",
            extra={"reset_count": reset_count},
        )

    return {"reset_count": reset_count}


# =============================================================================
# Payout Tasks
# =============================================================================


@shared_task(acks_late=True)
def retry_payouts_for_payee(payee_id: int, source: str = "task") -> dict:
    """
    Pay out every deferred record owed to a payee.

    Queued on the payee's not-eligible to eligible edge and by the sweep.
    A payee who is not (or no longer) eligible is skipped, not retried.
    """
    from settlements.services import PayoutRetryService

    try:
        summary = PayoutRetryService.retry_for_payee(
            payee_id, caller=Caller.internal(source)
        )
    except (PayeeNotOnboardedError, PayeeNotEligibleError) as e:
        logger.info(
            "Payout retry skipped",
            extra={"payee_id": payee_id, "source": source, "reason": e.error_code},
        )
        return {"status": "skipped", "payee_id": payee_id, "reason": e.error_code}

    return {"status": "completed", **summary.to_dict()}


@shared_task(acks_late=True)
def retry_single_payout(record_id: str, source: str = "task") -> dict:
    """Pay out one deferred record."""
    from settlements.services import PayoutRetryService

    attempt = PayoutRetryService.retry_single(record_id, caller=Caller.internal(source))
    return attempt.to_dict()


@shared_task
def refresh_payee_eligibility(payee_id: int) -> dict:
    """Refresh a payee's eligibility flags from Stripe."""
    from settlements.services import PayeeEligibilityGate

    status = PayeeEligibilityGate.check_and_maybe_trigger_retry(payee_id)
    return {
        "payee_id": payee_id,
        "eligible": status.eligible,
        "refreshed": status.refreshed,
        "retry_scheduled": status.retry_scheduled,
    }


@shared_task
def sweep_pending_payouts() -> dict:
    """
    Periodic sweep over payees with outstanding deferred payouts.

    For each payee the eligibility flags are refreshed first. A payee who
    just became eligible already gets a retry from the eligibility nudge;
    one who was eligible all along (missed nudge, earlier transient
    failure) is queued here.

    Scheduled every 15 minutes by celery-beat.
    """
    from settlements.services import PayeeEligibilityGate, SettlementRecordStore

    payee_ids = SettlementRecordStore.payees_awaiting_payout()

    queued_count = 0
    not_eligible_count = 0
    for payee_id in payee_ids:
        try:
            status = PayeeEligibilityGate.check_and_maybe_trigger_retry(payee_id)
            if not status.eligible:
                not_eligible_count += 1
                continue
            if not status.retry_scheduled:
                retry_payouts_for_payee.delay(payee_id, source="sweep")
            queued_count += 1
        except Exception:
            logger.error(
                "Payout sweep failed for payee",
                extra={"payee_id": payee_id},
                exc_info=True,
            )

    logger.info(
        "Payout sweep finished",
        extra={
            "payee_count": len(payee_ids),
            "queued_count": queued_count,
            "not_eligible_count": not_eligible_count,
        },
    )
    return {
        "payee_count": len(payee_ids),
        "queued_count": queued_count,
        "not_eligible_count": not_eligible_count,
    }
