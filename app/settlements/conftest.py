"""
Pytest fixtures shared by all settlement tests.

Sections:
    - Parties and Engagements
    - Payee Accounts
    - Stripe Adapter Mock
    - API Clients
"""

import uuid
from unittest.mock import MagicMock

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory
from engagements.tests.factories import EngagementFactory
from settlements.adapters import AccountResult, PaymentIntentResult, TransferResult
from settlements.services.base import StripeBackedService
from settlements.tests.factories import PayeeAccountFactory


# =============================================================================
# Parties and Engagements
# =============================================================================


@pytest.fixture
def payer(db):
    return UserFactory()


@pytest.fixture
def payee(db):
    return UserFactory()


@pytest.fixture
def engagement(db, payer, payee):
    """Unpaid engagement for 10000 cents between payer and payee."""
    return EngagementFactory(payer=payer, payee=payee, amount_cents=10000)


# =============================================================================
# Payee Accounts
# =============================================================================


@pytest.fixture
def eligible_payee_account(db, payee):
    """Onboarded payee account with charges and payouts enabled."""
    return PayeeAccountFactory(user=payee)


@pytest.fixture
def ineligible_payee_account(db, payee):
    """Onboarded payee account that Stripe has not enabled yet."""
    return PayeeAccountFactory(user=payee, ineligible=True)


# =============================================================================
# Stripe Adapter Mock
# =============================================================================


@pytest.fixture
def mock_stripe_adapter():
    """
    Install a mock StripeAdapter on every Stripe-backed service.

    Charges and transfers get unique ids so records never collide on their
    unique refs; retrieve_account reports an eligible account by default.
    Transfer groups start empty and every PaymentIntent has a charge.
    """
    mock_adapter = MagicMock()

    def create_payment_intent(params):
        intent_id = f"pi_mock_{uuid.uuid4().hex[:12]}"
        return PaymentIntentResult(
            id=intent_id,
            status="requires_payment_method",
            amount_cents=params.amount_cents,
            currency=params.currency,
            client_secret=f"{intent_id}_secret_mock",
            metadata=dict(params.metadata),
        )

    def create_transfer(
        amount_cents,
        destination_account,
        idempotency_key,
        currency="usd",
        metadata=None,
        transfer_group=None,
        source_transaction=None,
    ):
        return TransferResult(
            id=f"tr_mock_{uuid.uuid4().hex[:12]}",
            amount_cents=amount_cents,
            currency=currency,
            destination_account=destination_account,
            metadata=metadata or {},
            transfer_group=transfer_group,
        )

    def retrieve_payment_intent(payment_intent_id):
        return PaymentIntentResult(
            id=payment_intent_id,
            status="succeeded",
            amount_cents=0,
            currency="usd",
            latest_charge=f"ch_mock_{uuid.uuid4().hex[:12]}",
        )

    def retrieve_account(account_id):
        return AccountResult(
            id=account_id,
            charges_enabled=True,
            payouts_enabled=True,
            details_submitted=True,
        )

    mock_adapter.create_payment_intent.side_effect = create_payment_intent
    mock_adapter.create_transfer.side_effect = create_transfer
    mock_adapter.list_transfers_for_group.return_value = []
    mock_adapter.retrieve_payment_intent.side_effect = retrieve_payment_intent
    mock_adapter.retrieve_account.side_effect = retrieve_account

    StripeBackedService.set_stripe_adapter(mock_adapter)
    yield mock_adapter
    StripeBackedService.set_stripe_adapter(None)


# =============================================================================
# API Clients
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def payer_client(api_client, payer):
    api_client.force_authenticate(user=payer)
    return api_client


@pytest.fixture
def payee_client(payee):
    client = APIClient()
    client.force_authenticate(user=payee)
    return client
