"""
Stripe API adapter for settlement operations.

Every Stripe call made by the settlement engine goes through StripeAdapter
so that timeouts, idempotency keys, logging and error translation are
handled in one place.

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)

Usage:
    from settlements.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=10000,
            currency="usd",
            idempotency_key=IdempotencyKeyGenerator.generate("settlement_charge", record_id),
            application_fee_amount=1500,
            transfer_data={"destination": "acct_xxx"},
        )
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from settlements.exceptions import (
    InvalidSignatureError,
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreatePaymentIntentParams:
    """
    Parameters for creating a Stripe PaymentIntent.

    Attributes:
        amount_cents: Charge amount in smallest currency unit
        currency: ISO 4217 currency code
        idempotency_key: Unique key for idempotent creation
        metadata: Key-value pairs to attach to the PaymentIntent
        payment_method_types: Allowed payment methods (default: ['card'])
        application_fee_amount: Platform fee kept on a destination charge
        transfer_data: Destination charge target ({"destination": "acct_xxx"})
        transfer_group: Groups the charge with later transfers
    """

    amount_cents: int
    currency: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)
    payment_method_types: list[str] = field(default_factory=lambda: ["card"])
    application_fee_amount: int | None = None
    transfer_data: dict[str, Any] | None = None
    transfer_group: str | None = None

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")
        if self.application_fee_amount is not None and self.transfer_data is None:
            raise ValueError("application_fee_amount requires transfer_data")


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (requires_payment_method, succeeded, etc.)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret the payer's client uses to confirm the charge
        latest_charge: Charge ID (ch_xxx) once the intent has been confirmed
        metadata: Attached metadata
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    latest_charge: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransferResult:
    """
    Result from Stripe Transfer operations.

    Attributes:
        id: Transfer ID (tr_xxx)
        amount_cents: Amount transferred in cents
        currency: Currency code
        destination_account: Destination Stripe account ID
        transfer_group: Transfer group the transfer belongs to
        reversed: Transfer was fully reversed
        metadata: Attached metadata
        raw_response: Full Stripe response dict
    """

    id: str
    amount_cents: int
    currency: str
    destination_account: str
    transfer_group: str | None = None
    reversed: bool = False
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class AccountResult:
    """
    Result from Stripe Account operations.

    Attributes:
        id: Account ID (acct_xxx)
        charges_enabled: Account can accept charges
        payouts_enabled: Account can receive payouts
        details_submitted: Onboarding form completed
        raw_response: Full Stripe response dict
    """

    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class LinkResult:
    """Hosted Stripe URL (onboarding account link or Express dashboard login link)."""

    url: str
    expires_at: int | None = None


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Keys are deterministic: the same operation on the same entity always
    yields the same key, so a retry after a timeout replays the original
    Stripe result instead of creating a second charge or transfer.

    Example:
        key = IdempotencyKeyGenerator.generate("settlement_payout", record.id)
        # "settlement_payout:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods - no instance state is maintained.
    Thread-safe for use from Celery workers.

    Every operation:
    - applies STRIPE_API_TIMEOUT_SECONDS through the SDK's RequestsClient
    - logs start and completion with duration_ms
    - translates Stripe SDK errors into settlements.exceptions.StripeError
      subclasses (see _handle_stripe_error)
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key and timeout."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Charges and Transfers
    # =========================================================================

    @classmethod
    def create_payment_intent(
        cls,
        params: CreatePaymentIntentParams,
    ) -> PaymentIntentResult:
        """
        Create a Stripe PaymentIntent.

        With transfer_data set this is a destination charge: Stripe moves
        amount - application_fee_amount to the connected account when the
        charge succeeds. Without it the funds stay on the platform.

        Raises:
            StripeInvalidAccountError: Destination account unusable
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_payment_intent",
            "amount_cents": params.amount_cents,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
            "destination_charge": params.transfer_data is not None,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent_params: dict[str, Any] = {
                "amount": params.amount_cents,
                "currency": params.currency,
                "metadata": params.metadata,
                "payment_method_types": params.payment_method_types,
            }
            if params.transfer_data is not None:
                intent_params["transfer_data"] = params.transfer_data
            if params.application_fee_amount is not None:
                intent_params["application_fee_amount"] = params.application_fee_amount
            if params.transfer_group:
                intent_params["transfer_group"] = params.transfer_group

            intent = stripe.PaymentIntent.create(
                idempotency_key=params.idempotency_key,
                **intent_params,
            )

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "payment_intent_id": intent.id,
                    "status": intent.status,
                    "duration_ms": duration_ms,
                },
            )

            return PaymentIntentResult(
                id=intent.id,
                status=intent.status,
                amount_cents=intent.amount,
                currency=intent.currency,
                client_secret=intent.client_secret,
                metadata=dict(intent.metadata or {}),
                raw_response=intent.to_dict(),
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def retrieve_payment_intent(cls, payment_intent_id: str) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent by ID.

        Raises:
            StripeInvalidRequestError: PaymentIntent not found
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_payment_intent",
            "payment_intent_id": payment_intent_id,
        }

        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)

            duration_ms = (time.time() - start_time) * 1000
            logger.debug(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "status": intent.status,
                    "duration_ms": duration_ms,
                },
            )

            latest_charge = intent.latest_charge
            if latest_charge is not None and not isinstance(latest_charge, str):
                latest_charge = latest_charge.id

            return PaymentIntentResult(
                id=intent.id,
                status=intent.status,
                amount_cents=intent.amount,
                currency=intent.currency,
                client_secret=intent.client_secret,
                latest_charge=latest_charge,
                metadata=dict(intent.metadata or {}),
                raw_response=intent.to_dict(),
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def create_transfer(
        cls,
        amount_cents: int,
        destination_account: str,
        idempotency_key: str,
        currency: str = "usd",
        metadata: dict[str, str] | None = None,
        transfer_group: str | None = None,
        source_transaction: str | None = None,
    ) -> TransferResult:
        """
        Create a transfer from the platform balance to a connected account.

        With source_transaction (a ch_xxx charge id) the transfer is funded
        by that charge and can be created before its funds are available.

        Raises:
            StripeInvalidAccountError: Invalid destination account
            StripeInvalidRequestError: Invalid parameters (e.g. platform balance)
            StripeAPIUnavailableError / StripeTimeoutError: outcome unknown
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_transfer",
            "amount_cents": amount_cents,
            "destination_account": destination_account,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            transfer_params: dict[str, Any] = {
                "amount": amount_cents,
                "currency": currency,
                "destination": destination_account,
                "metadata": metadata or {},
            }
            if transfer_group:
                transfer_params["transfer_group"] = transfer_group
            if source_transaction:
                transfer_params["source_transaction"] = source_transaction

            transfer = stripe.Transfer.create(
                idempotency_key=idempotency_key,
                **transfer_params,
            )

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "transfer_id": transfer.id,
                    "duration_ms": duration_ms,
                },
            )

            return cls._transfer_result(transfer)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def list_transfers_for_group(
        cls,
        transfer_group: str,
        limit: int = 10,
    ) -> list[TransferResult]:
        """
        List the transfers Stripe holds for a transfer group.

        Used before creating a payout transfer, so a transfer that exists
        on Stripe but was never recorded locally is found instead of
        repeated.
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "list_transfers_for_group",
            "transfer_group": transfer_group,
        }

        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            transfers = stripe.Transfer.list(
                transfer_group=transfer_group,
                limit=min(limit, 100),
            )

            duration_ms = (time.time() - start_time) * 1000
            logger.debug(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "count": len(transfers.data),
                    "duration_ms": duration_ms,
                },
            )

            return [cls._transfer_result(transfer) for transfer in transfers.data]

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @staticmethod
    def _transfer_result(transfer) -> TransferResult:
        return TransferResult(
            id=transfer.id,
            amount_cents=transfer.amount,
            currency=transfer.currency,
            destination_account=transfer.destination,
            transfer_group=transfer.transfer_group,
            reversed=bool(transfer.reversed),
            metadata=dict(transfer.metadata or {}),
            raw_response=transfer.to_dict(),
        )

    # =========================================================================
    # Connected Accounts
    # =========================================================================

    @classmethod
    def retrieve_account(cls, account_id: str) -> AccountResult:
        """
        Retrieve a connected account's capability flags.

        Raises:
            StripeInvalidAccountError: Account not found
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_account",
            "account_id": account_id,
        }

        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            account = stripe.Account.retrieve(account_id)

            duration_ms = (time.time() - start_time) * 1000
            logger.debug(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "charges_enabled": account.charges_enabled,
                    "payouts_enabled": account.payouts_enabled,
                    "duration_ms": duration_ms,
                },
            )

            return cls._account_result(account)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def create_express_account(
        cls,
        email: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> AccountResult:
        """Create an Express connected account with card payments and transfers requested."""
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_express_account",
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            account = stripe.Account.create(
                type="express",
                email=email,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            )

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "account_id": account.id,
                    "duration_ms": duration_ms,
                },
            )

            return cls._account_result(account)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def create_account_link(
        cls,
        account_id: str,
        refresh_url: str,
        return_url: str,
    ) -> LinkResult:
        """Create a hosted onboarding link for a connected account."""
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_account_link",
            "account_id": account_id,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            link = stripe.AccountLink.create(
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            )

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={**log_context, "duration_ms": duration_ms},
            )

            return LinkResult(url=link.url, expires_at=link.expires_at)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def create_login_link(cls, account_id: str) -> LinkResult:
        """Create a single-use Express dashboard login link."""
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_login_link",
            "account_id": account_id,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            link = stripe.Account.create_login_link(account_id)

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={**log_context, "duration_ms": duration_ms},
            )

            return LinkResult(url=link.url)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @staticmethod
    def _account_result(account) -> AccountResult:
        return AccountResult(
            id=account.id,
            charges_enabled=bool(account.charges_enabled),
            payouts_enabled=bool(account.payouts_enabled),
            details_submitted=bool(account.details_submitted),
            raw_response=account.to_dict(),
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header value

        Returns:
            Parsed event dict

        Raises:
            InvalidSignatureError: Signature does not match STRIPE_WEBHOOK_SECRET
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
            return event.to_dict()
        except stripe.SignatureVerificationError as e:
            raise InvalidSignatureError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe SDK exceptions to settlement exceptions.

        Always raises. The mapping decides retry behaviour downstream:
        permanent errors are reported, transient ones are left for the next
        attempt with the same idempotency key.
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )

            if decline_code == "insufficient_funds":
                raise StripeInsufficientFundsError(
                    str(error.user_message or error),
                    stripe_code=error.code,
                    decline_code=decline_code,
                ) from error

            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )

            if "account" in str(error).lower():
                raise StripeInvalidAccountError(
                    str(error),
                    stripe_code=error.code,
                ) from error

            raise StripeInvalidRequestError(
                str(error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            message = str(error).lower()
            if "timed out" in message or "timeout" in message:
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe request timed out. Outcome unknown.",
                    stripe_code="timeout",
                ) from error

            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            ) from error
