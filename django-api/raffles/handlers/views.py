"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from raffles.domain.errors import DomainError, ErrorKind
from raffles.handlers.serializers import (
    HoldSerializer,
    OwnershipInfoSerializer,
    PurchaseRequestSerializer,
    ReconcileReportSerializer,
    ReleaseRequestSerializer,
    ReserveRequestSerializer,
    TicketStatsSerializer,
    TicketStatusesSerializer,
)
from raffles.services import (
    InventoryService,
    PurchaseService,
    Reconciler,
    ReservationService,
)
from raffles.stores import DjangoOrderLedger, DjangoTicketStore

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.STORE_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(error: DomainError) -> Response:
    body = {"code": error.code.value, "message": error.message}
    numbers = getattr(error, "numbers", None)
    if numbers and error.kind is ErrorKind.CONFLICT:
        body["ticket_numbers"] = numbers
    return Response(body, status=STATUS_BY_KIND[error.kind])


def inventory_service() -> InventoryService:
    return InventoryService(DjangoTicketStore())


def reservation_service() -> ReservationService:
    return ReservationService(DjangoTicketStore())


def purchase_service() -> PurchaseService:
    return PurchaseService(DjangoTicketStore(), DjangoOrderLedger())


def reconciler() -> Reconciler:
    return Reconciler(DjangoTicketStore(), DjangoOrderLedger())


def user_id_of(request: Request) -> str:
    return str(request.user.pk)


class TicketStatusView(APIView):
    """Handler for GET /api/competitions/{competition_id}/tickets"""

    permission_classes = [AllowAny]

    def get(self, request: Request, competition_id: str) -> Response:
        try:
            statuses = inventory_service().get_statuses(competition_id)
        except DomainError as e:
            return error_response(e)
        return Response(TicketStatusesSerializer(statuses).data)


class TicketAvailabilityView(APIView):
    """Handler for GET /api/competitions/{competition_id}/tickets/{number}/availability"""

    permission_classes = [AllowAny]

    def get(self, request: Request, competition_id: str, number: int) -> Response:
        try:
            available = inventory_service().is_available(competition_id, number)
        except DomainError as e:
            return error_response(e)
        return Response({"ticket_number": number, "available": available})


class ReservationView(APIView):
    """Handler for POST /api/competitions/{competition_id}/reservations"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request, competition_id: str) -> Response:
        serializer = ReserveRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            hold = reservation_service().reserve(
                competition_id,
                serializer.validated_data["ticket_numbers"],
                user_id_of(request),
            )
        except DomainError as e:
            return error_response(e)
        return Response(HoldSerializer(hold).data, status=status.HTTP_201_CREATED)


class ReleaseView(APIView):
    """Handler for POST /api/competitions/{competition_id}/reservations/release"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request, competition_id: str) -> Response:
        serializer = ReleaseRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            released = reservation_service().release(
                competition_id,
                serializer.validated_data["ticket_numbers"],
                user_id_of(request),
            )
        except DomainError as e:
            return error_response(e)
        return Response({"released": released})


class PurchaseView(APIView):
    """Handler for POST /api/competitions/{competition_id}/purchases"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request, competition_id: str) -> Response:
        serializer = PurchaseRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            applied = purchase_service().purchase(
                competition_id,
                serializer.validated_data["ticket_numbers"],
                user_id_of(request),
                serializer.validated_data["order_id"],
            )
        except DomainError as e:
            return error_response(e)
        return Response(
            {
                "order_id": serializer.validated_data["order_id"],
                "ticket_numbers": sorted(set(serializer.validated_data["ticket_numbers"])),
                "applied": applied,
            },
            status=status.HTTP_201_CREATED if applied else status.HTTP_200_OK,
        )


class TicketOwnerView(APIView):
    """Handler for GET /api/competitions/{competition_id}/tickets/{number}/owner"""

    permission_classes = [IsAdminUser]

    def get(self, request: Request, competition_id: str, number: int) -> Response:
        try:
            info = reconciler().owner_of(competition_id, number)
        except DomainError as e:
            return error_response(e)
        return Response(OwnershipInfoSerializer(info).data)


class CompetitionStatsView(APIView):
    """Handler for GET /api/competitions/{competition_id}/stats"""

    permission_classes = [IsAdminUser]

    def get(self, request: Request, competition_id: str) -> Response:
        try:
            stats = reconciler().stats(competition_id)
        except DomainError as e:
            return error_response(e)
        return Response(TicketStatsSerializer(stats).data)


class ReconcileView(APIView):
    """Handler for POST /api/competitions/{competition_id}/reconcile"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request, competition_id: str) -> Response:
        try:
            report = reconciler().reconcile(competition_id)
        except DomainError as e:
            return error_response(e)
        logger.info(f"Reconcile of competition {competition_id} requested by {request.user}")
        return Response(ReconcileReportSerializer(report).data)


class InitializeTicketsView(APIView):
    """Handler for POST /api/competitions/{competition_id}/initialize"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request, competition_id: str) -> Response:
        try:
            created = inventory_service().initialize(competition_id)
        except DomainError as e:
            return error_response(e)
        return Response({"created": created}, status=status.HTTP_201_CREATED)


class ResetTicketsView(APIView):
    """Handler for POST /api/competitions/{competition_id}/reset"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request, competition_id: str) -> Response:
        try:
            total = inventory_service().reset(competition_id)
        except DomainError as e:
            return error_response(e)
        logger.info(f"Ticket reset of competition {competition_id} requested by {request.user}")
        return Response({"total_tickets": total})
