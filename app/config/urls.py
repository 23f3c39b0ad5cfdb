"""
URL configuration for the settlement service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - JWT token endpoints
        token/                     - Obtain access/refresh pair
        token/refresh/             - Refresh access token
    /api/v1/settlements/           - Settlement endpoints
        (POST)                     - Create a settlement (charge + fee split)
        {id}/                      - Settlement record detail
        payee/eligibility/         - Refresh and read payee eligibility
        payee/onboarding/          - Stripe Connect onboarding link
        payee/dashboard-link/      - Stripe Express dashboard link
        internal/payees/{id}/retry-payouts/   - Retry pending payouts (internal)
        internal/records/{id}/retry-payout/   - Retry one payout (internal)
        webhooks/stripe/           - Stripe webhook endpoint (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("settlements/", include("settlements.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Settlement Admin"
admin.site.site_title = "Settlement Admin Portal"
admin.site.index_title = "Settlements"
