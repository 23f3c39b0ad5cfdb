"""
Webhook event handlers for Stripe events.

Handlers are registered per event type and return a ServiceResult. A
failed result marks the stored WebhookEvent failed so that
retry_failed_webhooks picks it up; an exception does the same and lets
Celery retry with backoff.

Usage:
    from settlements.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from core.services import ServiceResult
from settlements.models import WebhookEvent
from settlements.services import EventReconciler, PayeeEligibilityGate

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Usage:
        @register_handler("payment_intent.succeeded")
        def handle_payment_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
            ...
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to its handler.

    Unknown event types succeed without doing anything, so Stripe events we
    do not subscribe to on purpose never pile up as failures.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return handler(webhook_event)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


def _reconcile_charge(
    webhook_event: WebhookEvent,
    source_charge_ref: str | None = None,
) -> ServiceResult:
    payment_intent_id = webhook_event.get_object_id()

    if not payment_intent_id:
        logger.error(
            f"{webhook_event.event_type}: Could not extract payment_intent_id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    outcome = EventReconciler.reconcile_charge_event(
        webhook_event.event_type,
        payment_intent_id,
        event_id=webhook_event.stripe_event_id,
        source_charge_ref=source_charge_ref,
    )
    return ServiceResult.success(outcome)


def _latest_charge_id(data_object: dict) -> str | None:
    latest_charge = data_object.get("latest_charge")
    if isinstance(latest_charge, dict):
        return latest_charge.get("id")
    if latest_charge:
        return latest_charge
    # API versions before 2022-11-15 list charges instead
    charges = (data_object.get("charges") or {}).get("data") or []
    return charges[0].get("id") if charges else None


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """Charge succeeded: pending record → completed, engagement paid."""
    return _reconcile_charge(
        webhook_event,
        source_charge_ref=_latest_charge_id(webhook_event.get_data_object()),
    )


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Charge failed: pending record → failed."""
    reason = (
        webhook_event.get_data_object().get("last_payment_error") or {}
    ).get("message")
    if reason:
        logger.info(
            "Payment failed",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "reason": reason,
            },
        )
    return _reconcile_charge(webhook_event)


@register_handler("payment_intent.canceled")
def handle_payment_intent_canceled(webhook_event: WebhookEvent) -> ServiceResult:
    return _reconcile_charge(webhook_event)


# =============================================================================
# Connected Account Handler
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Apply a connected account's capability flags.

    A payee who becomes eligible here gets their deferred payouts queued
    by PayeeEligibilityGate.
    """
    data_object = webhook_event.get_data_object()
    account_id = data_object.get("id")

    if not account_id:
        logger.error(
            "account.updated: Could not extract account_id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract account_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    status = PayeeEligibilityGate.apply_account_update(
        stripe_account_id=account_id,
        charges_enabled=bool(data_object.get("charges_enabled", False)),
        payouts_enabled=bool(data_object.get("payouts_enabled", False)),
        details_submitted=data_object.get("details_submitted"),
    )
    return ServiceResult.success(status)
