"""
Factory Boy factories for settlement test data.

Usage:
    from settlements.tests.factories import (
        PayeeAccountFactory,
        SettlementRecordFactory,
        WebhookEventFactory,
    )

    # Eligible payee account
    account = PayeeAccountFactory(user=tutor)

    # Payee still onboarding
    account = PayeeAccountFactory(user=tutor, ineligible=True)

    # Completed deferred charge awaiting payout
    record = SettlementRecordFactory(completed=True)
"""

import uuid

import factory
from django.utils import timezone

from engagements.tests.factories import EngagementFactory
from settlements.models import PayeeAccount, SettlementRecord, WebhookEvent
from settlements.state_machines import (
    PayoutMode,
    SettlementStatus,
    WebhookEventStatus,
)


class PayeeAccountFactory(factory.django.DjangoModelFactory):
    """
    Factory for PayeeAccount.

    Default creates an onboarded, eligible account. One account per user.
    """

    class Meta:
        model = PayeeAccount
        django_get_or_create = ("user",)
        skip_postgeneration_save = True

    user = factory.SubFactory("authentication.tests.factories.UserFactory")
    stripe_account_id = factory.Sequence(lambda n: f"acct_test{n:06d}")
    charges_enabled = True
    payouts_enabled = True
    details_submitted = True
    eligibility_checked_at = factory.LazyFunction(timezone.now)

    class Params:
        ineligible = factory.Trait(
            charges_enabled=False,
            payouts_enabled=False,
            details_submitted=False,
        )
        not_onboarded = factory.Trait(
            stripe_account_id=None,
            charges_enabled=False,
            payouts_enabled=False,
            details_submitted=False,
            eligibility_checked_at=None,
        )


class SettlementRecordFactory(factory.django.DjangoModelFactory):
    """
    Factory for SettlementRecord.

    Default creates a PENDING deferred record for 10000 cents at 15%.

    Example:
        record = SettlementRecordFactory(engagement=engagement)
        record = SettlementRecordFactory(completed=True, payee_payout_cents=1000,
                                         platform_fee_cents=0, amount_cents=1000)
        record = SettlementRecordFactory(transferred=True)
    """

    class Meta:
        model = SettlementRecord
        skip_postgeneration_save = True

    engagement = factory.SubFactory(EngagementFactory)
    payee_account = factory.LazyAttribute(
        lambda o: PayeeAccountFactory(user=o.engagement.payee)
    )
    amount_cents = 10000
    platform_fee_cents = 1500
    payee_payout_cents = 8500
    currency = "usd"
    status = SettlementStatus.PENDING
    payout_mode = PayoutMode.DEFERRED
    charge_ref = factory.Sequence(lambda n: f"pi_test_{n}_{uuid.uuid4().hex[:8]}")
    last_transition_at = factory.LazyFunction(timezone.now)

    class Params:
        completed = factory.Trait(status=SettlementStatus.COMPLETED)
        failed = factory.Trait(status=SettlementStatus.FAILED)
        transferred = factory.Trait(
            status=SettlementStatus.COMPLETED,
            transfer_ref=factory.Sequence(lambda n: f"tr_test_{n}_{uuid.uuid4().hex[:8]}"),
            transferred_at=factory.LazyFunction(timezone.now),
        )


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for WebhookEvent.

    Default creates a PENDING payment_intent.succeeded event. Pass object_id
    to point the payload at an existing charge.

    Example:
        event = WebhookEventFactory(object_id=record.charge_ref)
        event = WebhookEventFactory(
            status=WebhookEventStatus.FAILED,
            error_message="Processing error",
            retry_count=3,
        )
    """

    class Meta:
        model = WebhookEvent
        skip_postgeneration_save = True

    class Params:
        object_id = factory.LazyFunction(lambda: f"pi_{uuid.uuid4().hex}")
        object_type = "payment_intent"
        object_extra = factory.LazyFunction(dict)

    stripe_event_id = factory.Sequence(lambda n: f"evt_test_{n}_{uuid.uuid4().hex[:8]}")
    event_type = "payment_intent.succeeded"
    payload = factory.LazyAttribute(
        lambda o: {
            "id": o.stripe_event_id,
            "type": o.event_type,
            "data": {
                "object": {
                    "id": o.object_id,
                    "object": o.object_type,
                    **o.object_extra,
                }
            },
        }
    )
    status = WebhookEventStatus.PENDING
    retry_count = 0
