"""
State enums for settlement models.
"""

from settlements.state_machines.states import (
    PayoutMode,
    SettlementStatus,
    WebhookEventStatus,
)

__all__ = [
    "PayoutMode",
    "SettlementStatus",
    "WebhookEventStatus",
]
