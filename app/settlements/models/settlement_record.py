"""
SettlementRecord model: one charge-and-split attempt for an engagement.

A record answers two independent questions:
    - Did the charge succeed?       status (pending → completed | failed)
    - Has the payee been paid?      transfer_ref (null until a transfer exists)

Both are only ever changed through conditional updates in
SettlementRecordStore; the FSM transitions below declare which status edges
exist.

Usage:
    from settlements.services import SettlementRecordStore

    record = SettlementRecordStore.get(record_id)
    if record.awaits_payout:
        ...
"""

from __future__ import annotations

from django.db import models
from django.db.models import F, Q
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from settlements.state_machines import PayoutMode, SettlementStatus


class SettlementRecord(UUIDPrimaryKeyMixin, BaseModel):
    """
    Authoritative local record of a charge and its fee split.

    Fields:
        engagement: Engagement being paid for
        payee_account: Payee Stripe account the payout goes to
        amount_cents: Charged amount (platform_fee_cents + payee_payout_cents)
        platform_fee_cents: Platform share
        payee_payout_cents: Payee share
        currency: ISO currency code (lowercase)
        status: Charge status (managed by FSM, protected)
        payout_mode: destination charge or deferred transfer
        charge_ref: Stripe PaymentIntent ID (pi_xxx), immutable
        transfer_ref: Stripe Transfer ID (tr_xxx), set once
        source_charge_ref: Stripe Charge ID (ch_xxx) passed as the transfer's
            source_transaction
        payout_attempt: Payout idempotency key generation
        last_transition_at: When status last changed
        transferred_at: When transfer_ref was recorded

    Invariants (enforced by the database):
        - amount_cents == platform_fee_cents + payee_payout_cents
        - amount_cents > 0
        - at most one pending or completed record per engagement
        - charge_ref and transfer_ref are unique

    Note:
        Records are never deleted. The protected status field cannot be
        reloaded with refresh_from_db(); fetch a new instance instead.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    engagement = models.ForeignKey(
        "engagements.Engagement",
        on_delete=models.PROTECT,
        related_name="settlement_records",
        help_text="Engagement this charge pays for",
    )

    payee_account = models.ForeignKey(
        "settlements.PayeeAccount",
        on_delete=models.PROTECT,
        related_name="settlement_records",
        help_text="Payee account captured when the charge was opened",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Charged amount in minor currency units",
    )

    platform_fee_cents = models.PositiveBigIntegerField(
        help_text="Platform fee in minor currency units",
    )

    payee_payout_cents = models.PositiveBigIntegerField(
        help_text="Payee payout in minor currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=SettlementStatus.PENDING,
        choices=SettlementStatus.choices,
        db_index=True,
        protected=True,
        help_text="Charge status (managed by FSM)",
    )

    payout_mode = models.CharField(
        max_length=20,
        choices=PayoutMode.choices,
        default=PayoutMode.DEFERRED,
        help_text="How the payee share reaches the payee",
    )

    last_transition_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When status last changed",
    )

    # ==========================================================================
    # Stripe References
    # ==========================================================================

    charge_ref = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    transfer_ref = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Transfer ID (tr_xxx), set once when the payout is executed",
    )

    transferred_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payout transfer was recorded",
    )

    source_charge_ref = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe Charge ID (ch_xxx) whose funds back a deferred payout",
    )

    payout_attempt = models.PositiveIntegerField(
        default=1,
        help_text="Generation of the payout idempotency key, advanced after a rejected transfer",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Settlement Record"
        verbose_name_plural = "Settlement Records"
        indexes = [
            models.Index(
                fields=["engagement", "status"],
                name="settle_engagement_status_idx",
            ),
            models.Index(
                fields=["status"],
                condition=Q(status=SettlementStatus.COMPLETED, transfer_ref__isnull=True),
                name="settle_completed_untransf_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="settlement_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(
                    amount_cents=F("platform_fee_cents") + F("payee_payout_cents")
                ),
                name="settlement_split_sums_to_amount",
            ),
            models.UniqueConstraint(
                fields=["engagement"],
                condition=Q(
                    status__in=[SettlementStatus.PENDING, SettlementStatus.COMPLETED]
                ),
                name="settlement_one_active_per_engagement",
            ),
        ]

    def __str__(self) -> str:
        return f"SettlementRecord({self.id}, {self.status}, {self.charge_ref})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_transferred(self) -> bool:
        return self.transfer_ref is not None

    @property
    def awaits_payout(self) -> bool:
        """Charge collected on the platform but payee not yet paid."""
        return (
            self.status == SettlementStatus.COMPLETED
            and self.payout_mode == PayoutMode.DEFERRED
            and self.transfer_ref is None
        )

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================
    # Declares the status graph. Persisted changes go through
    # SettlementRecordStore.transition_status(), a conditional UPDATE.

    @transition(
        field=status,
        source=SettlementStatus.PENDING,
        target=SettlementStatus.COMPLETED,
    )
    def complete(self):
        """Charge succeeded. Transition: PENDING -> COMPLETED"""

    @transition(
        field=status,
        source=SettlementStatus.PENDING,
        target=SettlementStatus.FAILED,
    )
    def fail(self):
        """Charge failed or was canceled. Transition: PENDING -> FAILED"""
