"""
WebhookEvent model: durable record of each verified Stripe notification.

The webhook view stores the event and answers 200; a Celery worker applies
it. The unique stripe_event_id makes redelivered events collapse onto one
row, and failed rows are picked up again by retry_failed_webhooks.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from settlements.state_machines import WebhookEventStatus

MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Stored Stripe webhook event.

    Processing Flow:
        1. View verifies the Stripe signature
        2. get_or_create by stripe_event_id (duplicates collapse)
        3. Already PROCESSED -> 200, nothing queued
        4. Otherwise queue process_webhook_event and answer 200
        5. Worker sets PROCESSING, dispatches, sets PROCESSED or FAILED
        6. FAILED rows are retried until MAX_WEBHOOK_RETRIES

    Fields:
        stripe_event_id: Unique Stripe Event ID (evt_xxx)
        event_type: Stripe event type
        payload: Full event JSON
        status: Processing status
        processed_at: When processing succeeded
        error_message: Last failure reason
        retry_count: Number of processing attempts
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'payment_intent.succeeded')",
    )

    payload = models.JSONField(
        help_text="Full webhook payload from Stripe (JSON)",
    )

    # ==========================================================================
    # Processing Status
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Current processing status",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message if processing failed",
    )

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
            models.Index(fields=["status", "retry_count"], name="webhook_status_retry_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def can_retry(self) -> bool:
        return (
            self.status == WebhookEventStatus.FAILED
            and self.retry_count < MAX_WEBHOOK_RETRIES
        )

    # ==========================================================================
    # Helper Methods (do not save; caller saves)
    # ==========================================================================

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_data_object(self) -> dict:
        """
        Return payload.data.object, the Stripe object the event is about.

        Returns an empty dict for malformed payloads.
        """
        try:
            obj = self.payload.get("data", {}).get("object", {})
        except (AttributeError, TypeError):
            return {}
        return obj if isinstance(obj, dict) else {}

    def get_object_id(self) -> str | None:
        return self.get_data_object().get("id")
