"""
Stripe webhook endpoint.

The view only verifies, stores and queues. State changes happen in the
process_webhook_event Celery task, so Stripe gets its 2xx quickly and a
stored event survives worker crashes.

Usage:
    # In settlements/urls.py
    from settlements.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe-webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from settlements.adapters import StripeAdapter
from settlements.exceptions import InvalidSignatureError
from settlements.models import WebhookEvent
from settlements.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive and queue Stripe webhook events.

    Returns:
        - 200: Event stored (new, duplicate, or irrelevant to settlements)
        - 400: Missing or invalid signature, or malformed event

    Nothing is read or written before the signature checks out.
    Redelivered events collapse onto the existing WebhookEvent row.
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return HttpResponse("Missing signature", status=400)

    try:
        event_data = StripeAdapter.verify_webhook_signature(payload, signature)
    except InvalidSignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": str(e)},
        )
        return HttpResponse("Invalid signature", status=400)
    except ValueError as e:
        logger.warning(
            "Webhook payload could not be parsed",
            extra={"error": str(e)},
        )
        return HttpResponse("Invalid payload", status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return HttpResponse("Invalid event", status=400)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={
            "stripe_event_id": stripe_event_id,
            "event_type": event_type,
        },
    )

    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created:
        if webhook_event.is_processed:
            logger.info(
                "Webhook already processed, returning success",
                extra={"stripe_event_id": stripe_event_id},
            )
            return HttpResponse("Already processed", status=200)

        logger.info(
            f"Webhook already exists with status: {webhook_event.status}",
            extra={"stripe_event_id": stripe_event_id},
        )

    try:
        from settlements.tasks import process_webhook_event

        process_webhook_event.delay(str(webhook_event.id))
        logger.info(
            "Webhook queued for processing",
            extra={
                "stripe_event_id": stripe_event_id,
                "webhook_event_id": str(webhook_event.id),
            },
        )
    except Exception as e:
        # Stored row is picked up by retry_failed_webhooks
        logger.error(
            f"Failed to queue webhook: {type(e).__name__}",
            extra={"stripe_event_id": stripe_event_id},
            exc_info=True,
        )

    return HttpResponse("Accepted", status=200)
