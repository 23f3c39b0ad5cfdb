import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("engagements", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PayeeAccount",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "stripe_account_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe Account ID (acct_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "charges_enabled",
                    models.BooleanField(
                        default=False,
                        help_text="Whether Stripe has enabled charges for this account",
                    ),
                ),
                (
                    "payouts_enabled",
                    models.BooleanField(
                        default=False,
                        help_text="Whether Stripe has enabled payouts for this account",
                    ),
                ),
                (
                    "details_submitted",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the payee completed the Stripe onboarding form",
                    ),
                ),
                (
                    "eligibility_checked_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the flags were last refreshed from Stripe",
                        null=True,
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        help_text="Payee this account belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payee_account",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Payee Account",
                "verbose_name_plural": "Payee Accounts",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "stripe_event_id",
                    models.CharField(
                        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe event type (e.g., 'payment_intent.succeeded')",
                        max_length=100,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(help_text="Full webhook payload from Stripe (JSON)"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current processing status",
                        max_length=20,
                    ),
                ),
                (
                    "processed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When event was successfully processed",
                        null=True,
                    ),
                ),
                (
                    "error_message",
                    models.TextField(
                        blank=True,
                        help_text="Error message if processing failed",
                        null=True,
                    ),
                ),
                (
                    "retry_count",
                    models.PositiveSmallIntegerField(
                        default=0, help_text="Number of processing attempts"
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="webhook_status_created_idx",
                    ),
                    models.Index(
                        fields=["status", "retry_count"],
                        name="webhook_status_retry_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SettlementRecord",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Charged amount in minor currency units"
                    ),
                ),
                (
                    "platform_fee_cents",
                    models.PositiveBigIntegerField(
                        help_text="Platform fee in minor currency units"
                    ),
                ),
                (
                    "payee_payout_cents",
                    models.PositiveBigIntegerField(
                        help_text="Payee payout in minor currency units"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Charge status (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "payout_mode",
                    models.CharField(
                        choices=[
                            ("destination", "Destination charge"),
                            ("deferred", "Deferred payout"),
                        ],
                        default="deferred",
                        help_text="How the payee share reaches the payee",
                        max_length=20,
                    ),
                ),
                (
                    "last_transition_at",
                    models.DateTimeField(
                        blank=True, help_text="When status last changed", null=True
                    ),
                ),
                (
                    "charge_ref",
                    models.CharField(
                        help_text="Stripe PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "transfer_ref",
                    models.CharField(
                        blank=True,
                        help_text="Stripe Transfer ID (tr_xxx), set once when the payout is executed",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "transferred_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the payout transfer was recorded",
                        null=True,
                    ),
                ),
                (
                    "engagement",
                    models.ForeignKey(
                        help_text="Engagement this charge pays for",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="settlement_records",
                        to="engagements.engagement",
                    ),
                ),
                (
                    "payee_account",
                    models.ForeignKey(
                        help_text="Payee account captured when the charge was opened",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="settlement_records",
                        to="settlements.payeeaccount",
                    ),
                ),
            ],
            options={
                "verbose_name": "Settlement Record",
                "verbose_name_plural": "Settlement Records",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["engagement", "status"],
                        name="settle_engagement_status_idx",
                    ),
                    models.Index(
                        condition=models.Q(
                            ("status", "completed"), ("transfer_ref__isnull", True)
                        ),
                        fields=["status"],
                        name="settle_completed_untransf_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_cents__gt", 0)),
                        name="settlement_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            (
                                "amount_cents",
                                models.F("platform_fee_cents")
                                + models.F("payee_payout_cents"),
                            )
                        ),
                        name="settlement_split_sums_to_amount",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["pending", "completed"])),
                        fields=("engagement",),
                        name="settlement_one_active_per_engagement",
                    ),
                ],
            },
        ),
    ]
