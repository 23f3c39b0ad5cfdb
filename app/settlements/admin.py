"""
Settlement admin configuration.

Settlement records are an audit trail: read-only, never deleted. Status and
transfer_ref only change through the services.
"""

from django.contrib import admin

from settlements.models import PayeeAccount, SettlementRecord, WebhookEvent


@admin.register(SettlementRecord)
class SettlementRecordAdmin(admin.ModelAdmin):
    """Read-only view of charge-and-split attempts."""

    list_display = [
        "id",
        "engagement",
        "status",
        "payout_mode",
        "amount_cents",
        "platform_fee_cents",
        "payee_payout_cents",
        "transfer_ref",
        "created_at",
    ]
    list_filter = ["status", "payout_mode", "currency", "created_at"]
    search_fields = ["id", "charge_ref", "transfer_ref", "engagement__id"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "engagement", "payee_account", "status", "payout_mode"),
            },
        ),
        (
            "Amounts",
            {
                "fields": (
                    "amount_cents",
                    "platform_fee_cents",
                    "payee_payout_cents",
                    "currency",
                ),
            },
        ),
        (
            "Stripe",
            {
                "fields": (
                    "charge_ref",
                    "source_charge_ref",
                    "transfer_ref",
                    "payout_attempt",
                ),
            },
        ),
        (
            "Timestamps",
            {
                "fields": (
                    "created_at",
                    "updated_at",
                    "last_transition_at",
                    "transferred_at",
                ),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(PayeeAccount)
class PayeeAccountAdmin(admin.ModelAdmin):
    """Payee Stripe Connect accounts and their last known eligibility."""

    list_display = [
        "id",
        "user",
        "stripe_account_id",
        "charges_enabled",
        "payouts_enabled",
        "details_submitted",
        "eligibility_checked_at",
    ]
    list_filter = ["charges_enabled", "payouts_enabled", "details_submitted"]
    search_fields = ["id", "stripe_account_id", "user__email"]
    raw_id_fields = ["user"]
    readonly_fields = [
        "id",
        "charges_enabled",
        "payouts_enabled",
        "details_submitted",
        "eligibility_checked_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Stored Stripe webhook events.

    Only status, retry_count and error_message are editable, so an operator
    can requeue an exhausted event by resetting it to failed.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "processed_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "stripe_event_id", "event_type", "status")}),
        ("Processing", {"fields": ("processed_at", "retry_count")}),
        ("Error Info", {"fields": ("error_message",), "classes": ("collapse",)}),
        ("Payload", {"fields": ("payload",), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
