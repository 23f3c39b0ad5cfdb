"""
Factory Boy factories for engagements.
"""

import factory

from authentication.tests.factories import UserFactory
from engagements.models import Engagement, EngagementPaymentStatus


class EngagementFactory(factory.django.DjangoModelFactory):
    """
    Factory for Engagement.

    Examples:
        engagement = EngagementFactory()
        engagement = EngagementFactory(payee=tutor, amount_cents=5000)
    """

    class Meta:
        model = Engagement
        skip_postgeneration_save = True

    payer = factory.SubFactory(UserFactory)
    payee = factory.SubFactory(UserFactory)
    amount_cents = 10000
    currency = "usd"
    payment_status = EngagementPaymentStatus.UNPAID
