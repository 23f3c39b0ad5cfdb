"""
Django admin configuration for engagements.
"""

from django.contrib import admin

from engagements.models import Engagement


@admin.register(Engagement)
class EngagementAdmin(admin.ModelAdmin):
    """Engagements with their payment status projection (read-only)."""

    list_display = (
        "id",
        "payer",
        "payee",
        "amount_cents",
        "currency",
        "payment_status",
        "paid_at",
        "created_at",
    )
    list_filter = ("payment_status", "currency")
    search_fields = ("id", "payer__email", "payee__email")
    raw_id_fields = ("payer", "payee")
    readonly_fields = ("payment_status", "paid_at", "created_at", "updated_at")
