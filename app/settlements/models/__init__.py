"""
Settlement domain models.

- SettlementRecord: one charge-and-split attempt for an engagement
- PayeeAccount: payee's Stripe Connect account and eligibility flags
- WebhookEvent: verified Stripe notifications awaiting or done processing
"""

from settlements.models.payee_account import PayeeAccount
from settlements.models.settlement_record import SettlementRecord
from settlements.models.webhook_event import WebhookEvent

__all__ = [
    "PayeeAccount",
    "SettlementRecord",
    "WebhookEvent",
]
