"""
Pytest fixtures for webhook tests.

Provides Stripe event payloads, stored WebhookEvent rows and mocks for
signature verification and task queuing.
"""

from unittest.mock import patch

import pytest
from django.test import RequestFactory

from settlements.state_machines import WebhookEventStatus
from settlements.tests.factories import WebhookEventFactory


# =============================================================================
# Event Payload Fixtures
# =============================================================================


@pytest.fixture
def payment_intent_event():
    """Build a verified payment_intent.* event dict."""

    def _create(
        charge_ref: str = "pi_test_webhook_123",
        event_type: str = "payment_intent.succeeded",
        event_id: str = "evt_test_webhook_123",
        **object_fields,
    ) -> dict:
        return {
            "id": event_id,
            "type": event_type,
            "data": {
                "object": {
                    "id": charge_ref,
                    "object": "payment_intent",
                    **object_fields,
                }
            },
        }

    return _create


@pytest.fixture
def account_updated_event():
    """Build a verified account.updated event dict."""

    def _create(
        account_id: str = "acct_test123",
        charges_enabled: bool = True,
        payouts_enabled: bool = True,
        event_id: str = "evt_test_account_123",
    ) -> dict:
        return {
            "id": event_id,
            "type": "account.updated",
            "data": {
                "object": {
                    "id": account_id,
                    "object": "account",
                    "charges_enabled": charges_enabled,
                    "payouts_enabled": payouts_enabled,
                    "details_submitted": True,
                }
            },
        }

    return _create


# =============================================================================
# Stored Event Fixtures
# =============================================================================


@pytest.fixture
def pending_webhook_event(db):
    return WebhookEventFactory(stripe_event_id="evt_test_pending")


@pytest.fixture
def processed_webhook_event(db):
    return WebhookEventFactory(
        stripe_event_id="evt_test_processed",
        status=WebhookEventStatus.PROCESSED,
        retry_count=1,
    )


# =============================================================================
# Request and Mock Fixtures
# =============================================================================


@pytest.fixture
def rf():
    return RequestFactory()


@pytest.fixture
def mock_stripe_verify_signature():
    """Mock the Stripe signature verification."""
    with patch(
        "settlements.webhooks.views.StripeAdapter.verify_webhook_signature"
    ) as mock:
        yield mock


@pytest.fixture
def mock_celery_task():
    """Mock the Celery task to prevent actual task execution."""
    with patch("settlements.tasks.process_webhook_event.delay") as mock:
        yield mock
