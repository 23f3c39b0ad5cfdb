"""
Shared base for services that call Stripe.
"""

from __future__ import annotations

from core.services import BaseService
from settlements.adapters import StripeAdapter


class StripeBackedService(BaseService):
    """
    BaseService with an injectable Stripe adapter.

    Tests swap the adapter with set_stripe_adapter(mock) and reset it with
    set_stripe_adapter(None).
    """

    _stripe_adapter: type | None = None

    @classmethod
    def get_stripe_adapter(cls) -> type:
        """Get the Stripe adapter class."""
        return cls._stripe_adapter or StripeAdapter

    @classmethod
    def set_stripe_adapter(cls, adapter: type | None) -> None:
        """Set the Stripe adapter class (for testing)."""
        cls._stripe_adapter = adapter
