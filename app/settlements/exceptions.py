"""
Settlement exceptions.

Every settlement error subclasses one of the core categories, so the API
layer can map it to a status code without knowing the concrete class.

Exception Hierarchy:
    ValidationError (400)
    ├── InvalidAmountError - Amount is not a positive integer
    ├── PayeeMismatchError - payee_id is not the engagement's payee
    ├── PayeeNotOnboardedError - Payee has no Stripe account
    └── PayeeNotEligibleError - Payee account cannot receive payouts yet
    PermissionDeniedError (403)
    └── UnauthorizedCallerError - Caller may not perform the operation
    NotFoundError (404)
    └── SettlementRecordNotFoundError
    ConflictError (409)
    ├── DuplicateActiveRecordError - Engagement already has an active record
    ├── AlreadyTransferredError - Payout already executed
    ├── NotYetCompletedError - Charge not completed, nothing to pay out
    └── InvalidStateTransitionError - Edge not in the record state machine
    ExternalServiceError (502)
    ├── PartialFailureError - Stripe and the database disagree
    ├── ChargeFailedError - Stripe rejected the charge
    └── StripeError - Base for all Stripe errors
        ├── StripeCardDeclinedError (permanent)
        ├── StripeInsufficientFundsError (permanent)
        ├── StripeInvalidAccountError (permanent)
        ├── StripeInvalidRequestError (permanent)
        │   └── InvalidSignatureError - Webhook signature rejected
        ├── StripeRateLimitError (transient)
        ├── StripeAPIUnavailableError (transient, outcome unknown)
        └── StripeTimeoutError (transient, outcome unknown)

Anomaly codes are logged, not raised: they mark states that need an operator
but must not crash the request that noticed them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Anomaly Codes (logged with extra={"anomaly": ...})
# =============================================================================

DUPLICATE_TRANSFER_SUSPECTED = "DUPLICATE_TRANSFER_SUSPECTED"
ORPHANED_AUTHORIZATION = "ORPHANED_AUTHORIZATION"
CHARGE_SUCCEEDED_AFTER_FAILURE = "CHARGE_SUCCEEDED_AFTER_FAILURE"
TRANSFER_NOT_RECORDED = "TRANSFER_NOT_RECORDED"


# =============================================================================
# Validation
# =============================================================================


class InvalidAmountError(ValidationError):
    """Raised when an amount is not a positive integer of minor units."""

    default_error_code: str = "INVALID_AMOUNT"


class PayeeMismatchError(ValidationError):
    default_error_code: str = "PAYEE_MISMATCH"


class PayeeNotOnboardedError(ValidationError):
    """
    Raised when the payee has no Stripe connected account.

    Nothing can be charged on their behalf until they start onboarding.
    """

    default_error_code: str = "PAYEE_NOT_ONBOARDED"


class PayeeNotEligibleError(ValidationError):
    """
    Raised when a payout is requested for a payee whose Stripe account
    cannot yet receive charges and payouts.
    """

    default_error_code: str = "PAYEE_NOT_ELIGIBLE"


# =============================================================================
# Authorization / Lookup
# =============================================================================


class UnauthorizedCallerError(PermissionDeniedError):
    """
    Raised when the caller is not allowed to perform the operation.

    Examples: a user who is not the engagement's payer opening a charge, or
    a non-internal caller triggering payout retries.
    """

    default_error_code: str = "UNAUTHORIZED_CALLER"


class SettlementRecordNotFoundError(NotFoundError):
    default_error_code: str = "SETTLEMENT_RECORD_NOT_FOUND"


# =============================================================================
# Conflicts
# =============================================================================


class DuplicateActiveRecordError(ConflictError):
    """
    Raised when an engagement already has a pending or completed record.

    A new attempt is only allowed after the previous record failed.
    """

    default_error_code: str = "DUPLICATE_ACTIVE_RECORD"


class AlreadyTransferredError(ConflictError):
    default_error_code: str = "ALREADY_TRANSFERRED"


class NotYetCompletedError(ConflictError):
    default_error_code: str = "NOT_YET_COMPLETED"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when code asks for a status edge the record state machine does
    not declare (e.g. failed → completed).

    This is a programming error, unlike a conditional update that simply
    finds the record already moved, which returns False.
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


# =============================================================================
# External
# =============================================================================


class PartialFailureError(ExternalServiceError):
    """
    Raised when Stripe and the local database may disagree.

    Either Stripe accepted an operation whose local write then failed, or a
    Stripe call ended without a definite answer. The failure is logged at
    CRITICAL with enough context for manual reconciliation.
    """

    default_error_code: str = "PARTIAL_FAILURE"


class ChargeFailedError(ExternalServiceError):
    """Raised when Stripe definitively rejected opening a charge."""

    default_error_code: str = "CHARGE_FAILED"


class StripeError(ExternalServiceError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's error code, if any
        decline_code: Card decline code, if any
        is_retryable: Transient error, safe to retry with the same
            idempotency key
        outcome_unknown: The request may have been applied on Stripe's side
            even though we got no answer

    Example:
        try:
            StripeAdapter.create_transfer(params, idempotency_key=key)
        except StripeError as e:
            if e.is_retryable:
                ...  # leave for the next sweep, same key
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False
    outcome_unknown: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """Card was declined by the issuing bank; decline_code has the reason."""

    default_error_code: str = "CARD_DECLINED"


class StripeInsufficientFundsError(StripeError):
    default_error_code: str = "INSUFFICIENT_FUNDS"


class StripeInvalidAccountError(StripeError):
    """
    The destination connected account is missing, restricted or unable to
    receive transfers. Needs the payee (or an operator) to fix the account.
    """

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Usually a bug on our side; the same request will never succeed.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


class InvalidSignatureError(StripeInvalidRequestError):
    """Webhook payload failed Stripe signature verification."""

    default_error_code: str = "INVALID_SIGNATURE"


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with the same idempotency key)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe. The request was rejected, not applied."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe could not be reached or answered with a server error.

    The request may or may not have been applied.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True
    outcome_unknown: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out (STRIPE_API_TIMEOUT_SECONDS).

    The operation may have succeeded on Stripe's side. Retrying with the
    same idempotency key returns the original result if it did.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True
    outcome_unknown: bool = True


__all__ = [
    "DUPLICATE_TRANSFER_SUSPECTED",
    "ORPHANED_AUTHORIZATION",
    "CHARGE_SUCCEEDED_AFTER_FAILURE",
    "TRANSFER_NOT_RECORDED",
    "InvalidAmountError",
    "PayeeMismatchError",
    "PayeeNotOnboardedError",
    "PayeeNotEligibleError",
    "UnauthorizedCallerError",
    "SettlementRecordNotFoundError",
    "DuplicateActiveRecordError",
    "AlreadyTransferredError",
    "NotYetCompletedError",
    "InvalidStateTransitionError",
    "PartialFailureError",
    "ChargeFailedError",
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInsufficientFundsError",
    "StripeInvalidAccountError",
    "StripeInvalidRequestError",
    "InvalidSignatureError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
]
