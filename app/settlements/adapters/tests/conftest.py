"""
Pytest fixtures for Stripe adapter tests.

Sections:
    - Mock Stripe Objects
    - Mock Stripe Error Fixtures
    - Mock Stripe Client Fixtures
"""

from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest
import stripe


# =============================================================================
# Mock Stripe Objects
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with to_dict support."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@pytest.fixture
def mock_payment_intent():
    """Create a mock PaymentIntent response."""

    def _create(
        id: str = "pi_test123456",
        status: str = "requires_payment_method",
        amount: int = 10000,
        currency: str = "usd",
        client_secret: str = "pi_test123456_secret_abc123",
        latest_charge=None,
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "payment_intent",
                "status": status,
                "amount": amount,
                "currency": currency,
                "client_secret": client_secret,
                "latest_charge": latest_charge,
                "metadata": metadata or {},
            }
        )

    return _create


@pytest.fixture
def mock_transfer():
    """Create a mock Transfer response."""

    def _create(
        id: str = "tr_test123456",
        amount: int = 8500,
        currency: str = "usd",
        destination: str = "acct_dest123",
        transfer_group: str | None = None,
        reversed: bool = False,
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "transfer",
                "amount": amount,
                "currency": currency,
                "destination": destination,
                "transfer_group": transfer_group,
                "reversed": reversed,
                "metadata": metadata or {},
            }
        )

    return _create


@pytest.fixture
def mock_account():
    """Create a mock connected Account response."""

    def _create(
        id: str = "acct_test123",
        charges_enabled: bool = True,
        payouts_enabled: bool = True,
        details_submitted: bool = True,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "account",
                "type": "express",
                "charges_enabled": charges_enabled,
                "payouts_enabled": payouts_enabled,
                "details_submitted": details_submitted,
            }
        )

    return _create


# =============================================================================
# Mock Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def card_error():
    """Create a Stripe CardError."""

    def _create(
        message: str = "Your card was declined.",
        code: str = "card_declined",
        decline_code: str | None = "generic_decline",
    ) -> stripe.CardError:
        error = stripe.CardError(message=message, param=None, code=code)
        error.decline_code = decline_code
        return error

    return _create


@pytest.fixture
def invalid_request_error():
    """Create a Stripe InvalidRequestError."""

    def _create(
        message: str = "Invalid payment intent ID",
        param: str | None = "payment_intent",
        code: str = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message=message, param=param, code=code)

    return _create


@pytest.fixture
def rate_limit_error():
    return stripe.RateLimitError(message="Too many requests hit the API too quickly.")


@pytest.fixture
def api_connection_error():
    return stripe.APIConnectionError(message="Could not connect to Stripe.")


@pytest.fixture
def timeout_error():
    """APIConnectionError as raised by the requests client on a read timeout."""
    return stripe.APIConnectionError(
        message="Unexpected error communicating with Stripe. Request timed out."
    )


@pytest.fixture
def api_error():
    return stripe.APIError(message="Something went wrong on Stripe's end.")


@pytest.fixture
def authentication_error():
    return stripe.AuthenticationError(message="Invalid API Key provided.")


@pytest.fixture
def signature_verification_error():
    return stripe.SignatureVerificationError(
        message="Unable to verify webhook signature.",
        sig_header="bad_signature",
    )


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture
def mock_stripe_payment_intent(mock_payment_intent):
    """Mock stripe.PaymentIntent API."""
    with patch("stripe.PaymentIntent") as mock:
        mock.create.return_value = mock_payment_intent()
        yield mock


@pytest.fixture
def mock_stripe_transfer(mock_transfer):
    """Mock stripe.Transfer API."""
    with patch("stripe.Transfer") as mock:
        mock.create.return_value = mock_transfer()
        yield mock


@pytest.fixture
def mock_stripe_account(mock_account):
    """Mock stripe.Account API."""
    with patch("stripe.Account") as mock:
        mock.retrieve.return_value = mock_account()
        mock.create.return_value = mock_account(
            charges_enabled=False,
            payouts_enabled=False,
            details_submitted=False,
        )
        mock.create_login_link.return_value = MockStripeObject(
            {"object": "login_link", "url": "https://connect.stripe.com/express/login"}
        )
        yield mock


@pytest.fixture
def mock_stripe_account_link():
    """Mock stripe.AccountLink API."""
    with patch("stripe.AccountLink") as mock:
        mock.create.return_value = MockStripeObject(
            {
                "object": "account_link",
                "url": "https://connect.stripe.com/setup/e/acct_test123/abc",
                "expires_at": 1700000300,
            }
        )
        yield mock


@pytest.fixture
def mock_stripe_webhook():
    """Mock stripe.Webhook API."""
    with patch("stripe.Webhook") as mock:
        mock.construct_event.return_value = MockStripeObject(
            {
                "id": "evt_test123",
                "type": "payment_intent.succeeded",
                "data": {
                    "object": {
                        "id": "pi_test123",
                        "object": "payment_intent",
                    }
                },
            }
        )
        yield mock


@pytest.fixture
def mock_stripe_http_client():
    """Mock stripe.RequestsClient."""
    with patch("stripe.RequestsClient") as mock:
        yield mock
