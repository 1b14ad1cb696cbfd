"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details

The caller's organization arrives in the ``X-Organization-Id`` header and is
trusted as already authorized upstream.
"""

import logging

from django.core.cache import cache
from django.db import OperationalError
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.views import exception_handler as drf_exception_handler

from registrations.conf import get_setting
from registrations.domain import (
    EventId,
    PaymentMethod,
    PaymentStatus,
    Registrant,
    RegistrationStatus,
)
from registrations.domain.errors import ConcurrentModificationError, DomainError, ErrorCode
from registrations.handlers.serializers import (
    AvailabilitySerializer,
    PaymentCreateSerializer,
    PaymentListQuerySerializer,
    PaymentSerializer,
    PriceQuoteSerializer,
    PricingTierCreateSerializer,
    PricingTierSerializer,
    RefundCreateSerializer,
    RegistrationCancelSerializer,
    RegistrationCreateSerializer,
    RegistrationListQuerySerializer,
    RegistrationSerializer,
)
from registrations.notifications import SignalNotifier
from registrations.services import (
    PaymentLedger,
    PricingService,
    RefundProcessor,
    RegistrationService,
    TierInput,
)
from registrations.services.identifiers import parse_id
from registrations.signals import availability_cache_key
from registrations.stores.django_store import DjangoRegistrationStore, is_retryable
from registrations.stores.interfaces import RegistrationFilters

logger = logging.getLogger(__name__)

ORGANIZATION_HEADER = "X-Organization-Id"

ERROR_STATUS = {
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.REGISTRATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.PAYMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.PRICING_TIER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_IDENTIFIER: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_AMOUNT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_TIER: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CAPACITY_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_REGISTRATION: status.HTTP_409_CONFLICT,
    ErrorCode.REGISTRATION_CLOSED: status.HTTP_409_CONFLICT,
    ErrorCode.CONCURRENT_MODIFICATION: status.HTTP_409_CONFLICT,
    ErrorCode.OVERPAYMENT_REJECTED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.REFUND_EXCEEDS_BALANCE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.PRICING_UNRESOLVED: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def error_response(error: DomainError) -> Response:
    http_status = ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST)
    if http_status >= status.HTTP_409_CONFLICT:
        logger.info("Request rejected: %s (entity=%s)", error, error.entity_id)
    return Response(
        {
            "error": {
                "code": error.code.value,
                "message": error.message,
                "entity_id": error.entity_id,
            }
        },
        status=http_status,
    )


def validation_error_response(errors) -> Response:
    return Response(
        {"error": {"code": "VALIDATION_ERROR", "message": "Invalid request", "fields": errors}},
        status=status.HTTP_400_BAD_REQUEST,
    )


def exception_handler(exc: Exception, context: dict) -> Response | None:
    """Answer lock contention outside a store transaction as a retryable conflict."""
    if isinstance(exc, OperationalError) and is_retryable(exc):
        logger.warning("Request aborted by lock contention: %s", exc)
        return error_response(ConcurrentModificationError())
    return drf_exception_handler(exc, context)


def organization_id(request: Request) -> str:
    return request.headers.get(ORGANIZATION_HEADER, "")


def _store() -> DjangoRegistrationStore:
    return DjangoRegistrationStore()


def registration_service() -> RegistrationService:
    return RegistrationService(_store(), notifier=SignalNotifier())


def pricing_service() -> PricingService:
    return PricingService(_store())


def payment_ledger() -> PaymentLedger:
    return PaymentLedger(_store())


def refund_processor() -> RefundProcessor:
    return RefundProcessor(_store())


class EventAvailabilityView(APIView):
    """Handler for GET /api/events/{event_id}/availability"""

    def get(self, request: Request, event_id: str) -> Response:
        org_id = organization_id(request)
        try:
            key = availability_cache_key(parse_id(EventId, event_id, "event").value)
        except DomainError as exc:
            return error_response(exc)
        cached = cache.get(key)
        if cached is not None and cached["organization_id"] == org_id:
            return Response(cached["data"])

        try:
            availability = registration_service().get_availability(org_id, event_id)
        except DomainError as exc:
            return error_response(exc)

        data = dict(AvailabilitySerializer(availability).data)
        cache.set(
            key,
            {"organization_id": org_id, "data": data},
            get_setting("AVAILABILITY_CACHE_TIMEOUT"),
        )
        return Response(data)


class PriceQuoteView(APIView):
    """Handler for GET /api/events/{event_id}/price-quote"""

    def get(self, request: Request, event_id: str) -> Response:
        audience = request.query_params.get("audience", "general")
        try:
            quote = pricing_service().quote_price(organization_id(request), event_id, audience)
        except DomainError as exc:
            return error_response(exc)
        return Response(PriceQuoteSerializer(quote).data)


class PricingTierListView(APIView):
    """Handler for GET/POST /api/events/{event_id}/pricing-tiers"""

    def get(self, request: Request, event_id: str) -> Response:
        include_inactive = request.query_params.get("include_inactive") in ("1", "true")
        try:
            tiers = pricing_service().list_tiers(
                organization_id(request), event_id, include_inactive=include_inactive
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(PricingTierSerializer(tiers, many=True).data)

    def post(self, request: Request, event_id: str) -> Response:
        serializer = PricingTierCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            tier = pricing_service().create_tier(
                organization_id(request), event_id, TierInput(**serializer.validated_data)
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(PricingTierSerializer(tier).data, status=status.HTTP_201_CREATED)


class PricingTierDetailView(APIView):
    """Handler for PATCH /api/pricing-tiers/{tier_id}"""

    def patch(self, request: Request, tier_id: str) -> Response:
        serializer = PricingTierCreateSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            tier = pricing_service().update_tier(
                organization_id(request), tier_id, serializer.validated_data
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(PricingTierSerializer(tier).data)


class PricingTierDeactivateView(APIView):
    """Handler for POST /api/pricing-tiers/{tier_id}/deactivate"""

    def post(self, request: Request, tier_id: str) -> Response:
        try:
            tier = pricing_service().deactivate_tier(organization_id(request), tier_id)
        except DomainError as exc:
            return error_response(exc)
        return Response(PricingTierSerializer(tier).data)


class RegistrationListView(APIView):
    """Handler for GET/POST /api/events/{event_id}/registrations"""

    def get(self, request: Request, event_id: str) -> Response:
        query = RegistrationListQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return validation_error_response(query.errors)
        params = query.validated_data
        filters = RegistrationFilters(
            statuses=tuple(RegistrationStatus(value) for value in params.get("status", [])),
            waitlist_only=params["waitlist"],
            query=params["q"].strip(),
            sort_by=params["sort_by"],
            descending=params["order"] == "desc",
        )
        try:
            page = registration_service().list_registrations(
                organization_id(request),
                event_id,
                filters,
                limit=params.get("limit"),
                offset=params["offset"],
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(
            {
                "items": RegistrationSerializer(page.items, many=True).data,
                "total": page.total,
            }
        )

    def post(self, request: Request, event_id: str) -> Response:
        serializer = RegistrationCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        registrant = Registrant(
            name=data["name"],
            email=data["email"],
            phone=data.get("phone") or None,
            is_member=data["is_member"],
            athlete_id=data.get("athlete_id"),
        )
        try:
            registration = registration_service().create_registration(
                organization_id(request), event_id, registrant, data.get("requested_at")
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(RegistrationSerializer(registration).data, status=status.HTTP_201_CREATED)


class RegistrationDetailView(APIView):
    """Handler for GET /api/registrations/{registration_id}"""

    def get(self, request: Request, registration_id: str) -> Response:
        try:
            registration = registration_service().get_registration(
                organization_id(request), registration_id
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(RegistrationSerializer(registration).data)


class RegistrationCancelView(APIView):
    """Handler for POST /api/registrations/{registration_id}/cancel"""

    def post(self, request: Request, registration_id: str) -> Response:
        serializer = RegistrationCancelSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            result = registration_service().cancel_registration(
                organization_id(request),
                registration_id,
                reason=serializer.validated_data["reason"],
            )
        except DomainError as exc:
            return error_response(exc)
        promoted = result.promoted
        return Response(
            {
                "success": True,
                "registration": RegistrationSerializer(result.registration).data,
                "promoted": RegistrationSerializer(promoted).data if promoted else None,
            }
        )


class PaymentListView(APIView):
    """Handler for GET/POST /api/registrations/{registration_id}/payments"""

    def get(self, request: Request, registration_id: str) -> Response:
        query = PaymentListQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return validation_error_response(query.errors)
        params = query.validated_data
        try:
            page = payment_ledger().list_payments(
                organization_id(request),
                registration_id=registration_id,
                statuses=tuple(PaymentStatus(value) for value in params.get("status", [])),
                methods=tuple(PaymentMethod(value) for value in params.get("method", [])),
                limit=params.get("limit"),
                offset=params["offset"],
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(
            {"items": PaymentSerializer(page.items, many=True).data, "total": page.total}
        )

    def post(self, request: Request, registration_id: str) -> Response:
        serializer = PaymentCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        try:
            result = payment_ledger().record_payment(
                organization_id(request),
                registration_id,
                amount=data["amount"],
                method=PaymentMethod(data["method"]),
                payment_date=data.get("payment_date"),
                receipt_number=data["receipt_number"],
                notes=data["notes"],
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(
            {
                "payment": PaymentSerializer(result.payment).data,
                "status": result.registration.payment_status.value,
                "paid_amount": result.registration.paid_amount.amount,
            },
            status=status.HTTP_201_CREATED,
        )


class RefundView(APIView):
    """Handler for POST /api/payments/{payment_id}/refunds"""

    def post(self, request: Request, payment_id: str) -> Response:
        serializer = RefundCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            result = refund_processor().process_refund(
                organization_id(request),
                payment_id,
                serializer.validated_data["refund_amount"],
                reason=serializer.validated_data["reason"],
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(
            {
                "success": True,
                "new_paid_amount": result.new_paid_amount.amount,
                "payment": PaymentSerializer(result.payment).data,
            }
        )
