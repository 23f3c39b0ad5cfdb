"""
Settlements: marketplace payment settlement engine.

Collects a payment from a payer, splits it into a platform fee and a payee
payout, and makes sure the payee is eventually paid even if they could not
receive funds when the charge happened.

Components (settlements.services):
    FeeCalculator             - fee split for an amount
    SettlementRecordStore     - authoritative local record, conditional writes
    SettlementService         - opens a charge and its pending record
    EventReconciler           - applies Stripe charge events to records
    PayoutRetryService        - transfers collected-but-unpaid payouts
    PayeeEligibilityGate      - refreshes payee eligibility, nudges retries
    PayeeOnboardingService    - Stripe Connect onboarding and dashboard links
"""
