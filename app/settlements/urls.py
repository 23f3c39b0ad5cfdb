"""
URL configuration for settlements app.

Mounted at /api/v1/settlements/ by config/urls.py.
"""

from django.urls import path

from settlements import views
from settlements.webhooks.views import stripe_webhook

app_name = "settlements"

urlpatterns = [
    path("", views.SettlementCreateView.as_view(), name="create"),
    path("<uuid:record_id>/", views.SettlementDetailView.as_view(), name="detail"),
    path("webhooks/stripe/", stripe_webhook, name="stripe-webhook"),
    path(
        "payee/eligibility/",
        views.PayeeEligibilityView.as_view(),
        name="payee-eligibility",
    ),
    path(
        "payee/onboarding/",
        views.PayeeOnboardingView.as_view(),
        name="payee-onboarding",
    ),
    path(
        "payee/dashboard-link/",
        views.PayeeDashboardLinkView.as_view(),
        name="payee-dashboard-link",
    ),
    path(
        "internal/payees/<int:payee_id>/retry-payouts/",
        views.PayeePayoutRetryView.as_view(),
        name="internal-payee-retry",
    ),
    path(
        "internal/records/<uuid:record_id>/retry-payout/",
        views.RecordPayoutRetryView.as_view(),
        name="internal-record-retry",
    ),
]
