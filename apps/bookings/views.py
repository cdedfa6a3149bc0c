"""API views for quotes and reservations."""

from __future__ import annotations

from rest_framework import mixins, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .application.command_handlers import GuestInfo
from .application.quotes import QuoteRequest
from .dependencies import build_quote_service, build_reservation_service
from .models import Quote, Reservation
from .serializers import (
    QuoteRequestSerializer,
    QuoteSerializer,
    ReservationCancelSerializer,
    ReservationConfirmSerializer,
    ReservationCreateSerializer,
    ReservationSerializer,
)


class QuoteViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Создание и просмотр котировок."""

    queryset = Quote.objects.select_related("property").all()
    serializer_class = QuoteSerializer
    lookup_value_regex = "[0-9a-f-]{36}"

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        quote = build_quote_service().generate_quote(QuoteRequest(**serializer.validated_data))
        return Response(QuoteSerializer(quote).data, status=status.HTTP_201_CREATED)


class ReservationViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Бронирования: создание из котировки, подтверждение оплаты, отмена."""

    queryset = Reservation.objects.select_related("property", "guest", "quote").all()
    serializer_class = ReservationSerializer
    lookup_value_regex = "[0-9a-f-]{36}"

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = ReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        reservation = build_reservation_service().create(
            data["quote_id"],
            GuestInfo(
                email=data["email"],
                first_name=data["first_name"],
                last_name=data["last_name"],
                phone=data["phone"],
            ),
            special_requests=data["special_requests"],
        )
        return Response(self._read(reservation.pk), status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        serializer = ReservationConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reservation = build_reservation_service().confirm(pk, serializer.validated_data["payment_reference"])
        return Response(self._read(reservation.pk))

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        serializer = ReservationCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = build_reservation_service().cancel(pk, serializer.validated_data["reason"])
        data = self._read(result.reservation.pk)
        data["refund_amount"] = result.refund_amount
        return Response(data)

    def _read(self, reservation_id) -> dict:
        return ReservationSerializer(self.get_queryset().get(pk=reservation_id)).data
