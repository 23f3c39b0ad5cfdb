"""
Serializers for the settlement API.

Request serializers check shape and redirect hosts; amounts, ownership and
eligibility are validated by the services so that they surface with
settlement error codes.
"""

from __future__ import annotations

from django.conf import settings
from django.utils.http import url_has_allowed_host_and_scheme
from rest_framework import serializers

from settlements.models import SettlementRecord

# Stripe rejects charges above eight digits in minor units
MAX_CHARGE_AMOUNT_CENTS = 99_999_999


# =============================================================================
# Requests
# =============================================================================


class CreateSettlementSerializer(serializers.Serializer):
    """Payer's request to pay for an engagement."""

    engagement_id = serializers.UUIDField(help_text="Engagement being paid for")
    amount_cents = serializers.IntegerField(
        max_value=MAX_CHARGE_AMOUNT_CENTS,
        help_text="Amount to charge in minor currency units",
    )
    payee_id = serializers.IntegerField(help_text="Engagement's payee user id")


class OnboardingLinkRequestSerializer(serializers.Serializer):
    """Redirect targets must be on a host in SETTLEMENT_REDIRECT_ALLOWED_HOSTS."""

    refresh_url = serializers.URLField(
        required=False,
        help_text="Where Stripe sends the payee if the link expired",
    )
    return_url = serializers.URLField(
        required=False,
        help_text="Where Stripe sends the payee after onboarding",
    )

    def validate_refresh_url(self, value):
        return self._allowed_redirect(value)

    def validate_return_url(self, value):
        return self._allowed_redirect(value)

    @staticmethod
    def _allowed_redirect(value: str) -> str:
        if not url_has_allowed_host_and_scheme(
            value,
            allowed_hosts=set(settings.SETTLEMENT_REDIRECT_ALLOWED_HOSTS),
            require_https=not settings.DEBUG,
        ):
            raise serializers.ValidationError("Redirect host is not allowed.")
        return value


# =============================================================================
# Responses
# =============================================================================


class SettlementRecordSerializer(serializers.ModelSerializer):
    """Read-only view of a settlement record."""

    engagement_id = serializers.UUIDField(read_only=True)
    is_transferred = serializers.BooleanField(read_only=True)

    class Meta:
        model = SettlementRecord
        fields = [
            "id",
            "engagement_id",
            "status",
            "payout_mode",
            "amount_cents",
            "platform_fee_cents",
            "payee_payout_cents",
            "currency",
            "charge_ref",
            "transfer_ref",
            "is_transferred",
            "created_at",
            "last_transition_at",
            "transferred_at",
        ]
        read_only_fields = fields


class SettlementCreatedSerializer(serializers.Serializer):
    """Response to a successful create: what the payer's client needs to confirm."""

    record_id = serializers.UUIDField()
    client_authorization_handle = serializers.CharField(allow_null=True)
    status = serializers.CharField()
    payout_mode = serializers.CharField()
    amount_cents = serializers.IntegerField()
    platform_fee_cents = serializers.IntegerField()
    payee_payout_cents = serializers.IntegerField()
    currency = serializers.CharField()


class PayoutAttemptSerializer(serializers.Serializer):
    record_id = serializers.UUIDField()
    success = serializers.BooleanField()
    amount_cents = serializers.IntegerField()
    transfer_ref = serializers.CharField(allow_null=True)
    error_kind = serializers.CharField(allow_null=True)
    error_message = serializers.CharField(allow_null=True)


class PayoutRetrySummarySerializer(serializers.Serializer):
    payee_id = serializers.IntegerField()
    successful_count = serializers.IntegerField()
    failed_count = serializers.IntegerField()
    total_amount_transferred = serializers.IntegerField()
    failed_errors = serializers.ListField(child=serializers.CharField())
    results = PayoutAttemptSerializer(many=True)


class EligibilityStatusSerializer(serializers.Serializer):
    payee_id = serializers.IntegerField()
    onboarded = serializers.BooleanField()
    eligible = serializers.BooleanField()
    charges_enabled = serializers.BooleanField()
    payouts_enabled = serializers.BooleanField()
    refreshed = serializers.BooleanField()
    retry_scheduled = serializers.BooleanField()
    checked_at = serializers.DateTimeField(allow_null=True)


class LinkSerializer(serializers.Serializer):
    url = serializers.URLField()


class ErrorSerializer(serializers.Serializer):
    error = serializers.CharField()
    error_code = serializers.CharField()
    details = serializers.DictField(required=False)
