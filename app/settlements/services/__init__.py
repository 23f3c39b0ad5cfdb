"""
Settlement services.

- FeeCalculator: platform / payee split of an amount
- SettlementRecordStore: conditional reads and writes of SettlementRecord
- SettlementService: opens charges (create_settlement)
- EventReconciler: applies charge notifications
- PayoutRetryService: executes deferred payouts exactly once
- PayeeEligibilityGate: eligibility refresh and payout nudge
- PayeeAccountService / PayeeOnboardingService: payee Stripe accounts
"""

from settlements.services.eligibility_gate import (
    EligibilityStatus,
    PayeeEligibilityGate,
    schedule_payout_retry,
)
from settlements.services.event_reconciler import (
    EventReconciler,
    ReconcileAction,
    ReconcileOutcome,
)
from settlements.services.fee_calculator import FeeCalculator, FeeSplit
from settlements.services.onboarding import PayeeOnboardingService
from settlements.services.payee_accounts import PayeeAccountService
from settlements.services.payout_retry import (
    PayoutAttempt,
    PayoutRetryService,
    PayoutRetrySummary,
)
from settlements.services.record_store import SettlementRecordStore
from settlements.services.settlement_service import (
    SettlementCreation,
    SettlementService,
)

__all__ = [
    "EligibilityStatus",
    "EventReconciler",
    "FeeCalculator",
    "FeeSplit",
    "PayeeAccountService",
    "PayeeEligibilityGate",
    "PayeeOnboardingService",
    "PayoutAttempt",
    "PayoutRetryService",
    "PayoutRetrySummary",
    "ReconcileAction",
    "ReconcileOutcome",
    "SettlementCreation",
    "SettlementRecordStore",
    "SettlementService",
    "schedule_payout_retry",
]
