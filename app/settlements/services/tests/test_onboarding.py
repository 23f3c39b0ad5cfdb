"""
Tests for PayeeOnboardingService.
"""

import pytest

from settlements.adapters import AccountResult, LinkResult
from settlements.exceptions import PayeeNotOnboardedError
from settlements.models import PayeeAccount
from settlements.services import PayeeOnboardingService
from settlements.tests.factories import PayeeAccountFactory


@pytest.fixture
def onboarding_adapter(mock_stripe_adapter):
    mock_stripe_adapter.create_express_account.return_value = AccountResult(
        id="acct_new123"
    )
    mock_stripe_adapter.create_account_link.return_value = LinkResult(
        url="https://connect.stripe.com/setup/e/acct_new123/abc",
        expires_at=1700000300,
    )
    mock_stripe_adapter.create_login_link.return_value = LinkResult(
        url="https://connect.stripe.com/express/login"
    )
    return mock_stripe_adapter


class TestCreateOnboardingLink:
    """Tests for PayeeOnboardingService.create_onboarding_link."""

    def test_creates_account_for_new_payee(self, payee, onboarding_adapter, settings):
        url = PayeeOnboardingService.create_onboarding_link(payee)

        assert url == "https://connect.stripe.com/setup/e/acct_new123/abc"
        account = PayeeAccount.objects.get(user=payee)
        assert account.stripe_account_id == "acct_new123"
        assert account.is_eligible is False

        create_kwargs = onboarding_adapter.create_express_account.call_args.kwargs
        assert create_kwargs["email"] == payee.email
        assert create_kwargs["idempotency_key"].startswith(
            f"payee_connect_account:{account.id}:"
        )
        onboarding_adapter.create_account_link.assert_called_once_with(
            account_id="acct_new123",
            refresh_url=settings.STRIPE_CONNECT_REFRESH_URL,
            return_url=settings.STRIPE_CONNECT_RETURN_URL,
        )

    def test_reuses_existing_account(self, payee, onboarding_adapter):
        account = PayeeAccountFactory(user=payee, ineligible=True)

        PayeeOnboardingService.create_onboarding_link(
            payee,
            refresh_url="https://app.example.com/refresh",
            return_url="https://app.example.com/return",
        )

        onboarding_adapter.create_express_account.assert_not_called()
        onboarding_adapter.create_account_link.assert_called_once_with(
            account_id=account.stripe_account_id,
            refresh_url="https://app.example.com/refresh",
            return_url="https://app.example.com/return",
        )

    def test_keeps_concurrently_attached_account(self, payee, onboarding_adapter):
        """If another request attached an account first, that one is used."""
        account = PayeeAccount.objects.create(user=payee)

        def attach_first(**kwargs):
            PayeeAccount.objects.filter(id=account.id).update(
                stripe_account_id="acct_winner"
            )
            return AccountResult(id="acct_loser")

        onboarding_adapter.create_express_account.side_effect = attach_first

        PayeeOnboardingService.create_onboarding_link(payee)

        assert PayeeAccount.objects.get(id=account.id).stripe_account_id == "acct_winner"
        assert (
            onboarding_adapter.create_account_link.call_args.kwargs["account_id"]
            == "acct_winner"
        )


class TestCreateDashboardLink:
    """Tests for PayeeOnboardingService.create_dashboard_link."""

    def test_returns_login_link(self, payee, eligible_payee_account, onboarding_adapter):
        url = PayeeOnboardingService.create_dashboard_link(payee)

        assert url == "https://connect.stripe.com/express/login"
        onboarding_adapter.create_login_link.assert_called_once_with(
            eligible_payee_account.stripe_account_id
        )

    def test_requires_account(self, payee, onboarding_adapter):
        with pytest.raises(PayeeNotOnboardedError):
            PayeeOnboardingService.create_dashboard_link(payee)

        onboarding_adapter.create_login_link.assert_not_called()
