"""
DRF views for the settlement API.

Endpoints:
    POST /api/v1/settlements/ - Open a charge for an engagement (payer)
    GET  /api/v1/settlements/<record_id>/ - Read a record (payer or payee)
    GET  /api/v1/settlements/payee/eligibility/ - Refresh own eligibility
    POST /api/v1/settlements/payee/onboarding/ - Stripe onboarding link
    POST /api/v1/settlements/payee/dashboard-link/ - Express dashboard link
    POST /api/v1/settlements/internal/payees/<payee_id>/retry-payouts/
    POST /api/v1/settlements/internal/records/<record_id>/retry-payout/
    POST /api/v1/settlements/webhooks/stripe/ - see settlements.webhooks.views

Security:
    - User endpoints require JWT or session authentication
    - Internal endpoints accept only the X-Internal-Secret header

Service errors are rendered with BaseApplicationError.to_dict(); the HTTP
status follows the error category (see error_response).
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from settlements.exceptions import UnauthorizedCallerError
from settlements.permissions import INTERNAL_SECRET_HEADER, HasInternalSecret
from settlements.serializers import (
    CreateSettlementSerializer,
    EligibilityStatusSerializer,
    ErrorSerializer,
    LinkSerializer,
    OnboardingLinkRequestSerializer,
    PayoutAttemptSerializer,
    PayoutRetrySummarySerializer,
    SettlementCreatedSerializer,
    SettlementRecordSerializer,
)
from settlements.services import (
    PayeeEligibilityGate,
    PayeeOnboardingService,
    PayoutRetryService,
    SettlementRecordStore,
    SettlementService,
)
from settlements.types import Caller

logger = logging.getLogger(__name__)


ERROR_STATUS_BY_CATEGORY: tuple[tuple[type[BaseApplicationError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
)


def error_response(exc: BaseApplicationError) -> Response:
    """Render a service error with the status code of its category."""
    for category, http_status in ERROR_STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            break
    else:
        http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    log = logger.warning if http_status < 500 else logger.error
    log(
        f"Settlement request failed: {exc.error_code}",
        extra={"error_code": exc.error_code, "status_code": http_status},
    )
    return Response(exc.to_dict(), status=http_status)


INTERNAL_SECRET_PARAMETER = OpenApiParameter(
    name=INTERNAL_SECRET_HEADER,
    location=OpenApiParameter.HEADER,
    required=True,
    description="Internal shared secret (SETTLEMENT_INTERNAL_SECRET)",
)


# =============================================================================
# Payer Endpoints
# =============================================================================


class SettlementCreateView(APIView):
    """
    Open a charge for an engagement.

    POST /api/v1/settlements/

    Request body:
        {"engagement_id": "<uuid>", "amount_cents": 10000, "payee_id": 42}

    Returns:
        201 with the PaymentIntent client secret as client_authorization_handle
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_settlement",
        summary="Pay for an engagement",
        request=CreateSettlementSerializer,
        responses={
            201: OpenApiResponse(response=SettlementCreatedSerializer),
            400: OpenApiResponse(
                response=ErrorSerializer,
                description="Invalid amount, payee mismatch or payee not onboarded",
            ),
            403: OpenApiResponse(response=ErrorSerializer, description="Not the payer"),
            404: OpenApiResponse(response=ErrorSerializer, description="Engagement not found"),
            409: OpenApiResponse(
                response=ErrorSerializer,
                description="Engagement already has an active settlement",
            ),
            502: OpenApiResponse(
                response=ErrorSerializer,
                description="Charge rejected or outcome unknown",
            ),
        },
        tags=["Settlements"],
    )
    def post(self, request):
        serializer = CreateSettlementSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            creation = SettlementService.create_settlement(
                engagement_id=serializer.validated_data["engagement_id"],
                amount_cents=serializer.validated_data["amount_cents"],
                payee_id=serializer.validated_data["payee_id"],
                caller=Caller.for_user(request.user),
            )
        except BaseApplicationError as e:
            return error_response(e)

        record = creation.record
        output = SettlementCreatedSerializer(
            {
                "record_id": record.id,
                "client_authorization_handle": creation.client_secret,
                "status": record.status,
                "payout_mode": record.payout_mode,
                "amount_cents": record.amount_cents,
                "platform_fee_cents": record.platform_fee_cents,
                "payee_payout_cents": record.payee_payout_cents,
                "currency": record.currency,
            }
        )
        return Response(output.data, status=status.HTTP_201_CREATED)


class SettlementDetailView(APIView):
    """
    Read a settlement record.

    GET /api/v1/settlements/<record_id>/

    Visible to the engagement's payer and payee.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_settlement",
        summary="Get settlement record",
        responses={
            200: OpenApiResponse(response=SettlementRecordSerializer),
            403: OpenApiResponse(response=ErrorSerializer, description="Not a party"),
            404: OpenApiResponse(response=ErrorSerializer, description="Record not found"),
        },
        tags=["Settlements"],
    )
    def get(self, request, record_id):
        try:
            record = SettlementRecordStore.get(record_id)
            engagement = record.engagement
            if request.user.pk not in (engagement.payer_id, engagement.payee_id):
                raise UnauthorizedCallerError(
                    "Only the engagement's parties can view its settlement",
                    details={"record_id": str(record_id)},
                )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(SettlementRecordSerializer(record).data)


# =============================================================================
# Payee Endpoints
# =============================================================================


class PayeeEligibilityView(APIView):
    """
    Refresh and return the current user's payout eligibility.

    GET /api/v1/settlements/payee/eligibility/

    Becoming eligible here queues payouts for deferred settlements.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="check_payee_eligibility",
        summary="Check payout eligibility",
        responses={200: OpenApiResponse(response=EligibilityStatusSerializer)},
        tags=["Settlements - Payee"],
    )
    def get(self, request):
        eligibility = PayeeEligibilityGate.check_and_maybe_trigger_retry(request.user.pk)
        return Response(EligibilityStatusSerializer(eligibility).data)


class PayeeOnboardingView(APIView):
    """
    Create a Stripe Connect onboarding link for the current user.

    POST /api/v1/settlements/payee/onboarding/

    Request body (optional):
        {"refresh_url": "https://...", "return_url": "https://..."}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_payee_onboarding_link",
        summary="Start payee onboarding",
        request=OnboardingLinkRequestSerializer,
        responses={
            200: OpenApiResponse(response=LinkSerializer),
            502: OpenApiResponse(response=ErrorSerializer, description="Stripe error"),
        },
        tags=["Settlements - Payee"],
    )
    def post(self, request):
        serializer = OnboardingLinkRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            url = PayeeOnboardingService.create_onboarding_link(
                request.user,
                refresh_url=serializer.validated_data.get("refresh_url"),
                return_url=serializer.validated_data.get("return_url"),
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(LinkSerializer({"url": url}).data)


class PayeeDashboardLinkView(APIView):
    """
    Create a Stripe Express dashboard login link for the current user.

    POST /api/v1/settlements/payee/dashboard-link/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_payee_dashboard_link",
        summary="Open payout dashboard",
        request=None,
        responses={
            200: OpenApiResponse(response=LinkSerializer),
            400: OpenApiResponse(response=ErrorSerializer, description="Not onboarded"),
            502: OpenApiResponse(response=ErrorSerializer, description="Stripe error"),
        },
        tags=["Settlements - Payee"],
    )
    def post(self, request):
        try:
            url = PayeeOnboardingService.create_dashboard_link(request.user)
        except BaseApplicationError as e:
            return error_response(e)

        return Response(LinkSerializer({"url": url}).data)


# =============================================================================
# Internal Endpoints
# =============================================================================


class PayeePayoutRetryView(APIView):
    """
    Pay out every deferred settlement owed to a payee.

    POST /api/v1/settlements/internal/payees/<payee_id>/retry-payouts/

    Returns 200 with the per-record summary even when some transfers failed.
    """

    authentication_classes = []
    permission_classes = [HasInternalSecret]

    @extend_schema(
        operation_id="retry_payee_payouts",
        summary="Retry deferred payouts for a payee",
        request=None,
        parameters=[INTERNAL_SECRET_PARAMETER],
        responses={
            200: OpenApiResponse(response=PayoutRetrySummarySerializer),
            400: OpenApiResponse(
                response=ErrorSerializer,
                description="Payee not onboarded or not eligible",
            ),
            403: OpenApiResponse(description="Missing or wrong internal secret"),
        },
        tags=["Settlements - Internal"],
    )
    def post(self, request, payee_id):
        try:
            summary = PayoutRetryService.retry_for_payee(
                payee_id, caller=Caller.internal("operator")
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(PayoutRetrySummarySerializer(summary.to_dict()).data)


class RecordPayoutRetryView(APIView):
    """
    Pay out one deferred settlement.

    POST /api/v1/settlements/internal/records/<record_id>/retry-payout/
    """

    authentication_classes = []
    permission_classes = [HasInternalSecret]

    @extend_schema(
        operation_id="retry_record_payout",
        summary="Retry the payout of one settlement",
        request=None,
        parameters=[INTERNAL_SECRET_PARAMETER],
        responses={
            200: OpenApiResponse(response=PayoutAttemptSerializer),
            400: OpenApiResponse(response=ErrorSerializer),
            403: OpenApiResponse(description="Missing or wrong internal secret"),
            404: OpenApiResponse(response=ErrorSerializer, description="Record not found"),
            409: OpenApiResponse(
                response=ErrorSerializer,
                description="Already transferred or charge not completed",
            ),
        },
        tags=["Settlements - Internal"],
    )
    def post(self, request, record_id):
        try:
            attempt = PayoutRetryService.retry_single(
                record_id, caller=Caller.internal("operator")
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(PayoutAttemptSerializer(attempt.to_dict()).data)
