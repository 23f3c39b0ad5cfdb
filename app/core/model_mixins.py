"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class Engagement(UUIDPrimaryKeyMixin, BaseModel):
        amount_cents = models.BigIntegerField()
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    The id can be generated before the row exists, which lets callers hand
    it to external systems (idempotency keys, processor metadata) ahead of
    the insert:

        record_id = uuid.uuid4()
        ...call Stripe with record_id in metadata...
        SettlementRecord.objects.create(id=record_id, ...)

    Fields:
        id: UUIDField as primary key (auto-generated)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier (UUID v4)",
    )

    class Meta:
        abstract = True
