"""
Adapters for external services used by settlement.

All Stripe calls go through StripeAdapter.
"""

from settlements.adapters.stripe_adapter import (
    AccountResult,
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    LinkResult,
    PaymentIntentResult,
    StripeAdapter,
    TransferResult,
)

__all__ = [
    "AccountResult",
    "CreatePaymentIntentParams",
    "IdempotencyKeyGenerator",
    "LinkResult",
    "PaymentIntentResult",
    "StripeAdapter",
    "TransferResult",
]
