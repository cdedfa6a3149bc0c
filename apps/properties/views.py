"""API views for property availability and calendars."""

from __future__ import annotations

from rest_framework import views  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.availability import load_property
from apps.bookings.dependencies import build_availability_checker
from apps.bookings.domain.entities import GuestCount
from apps.bookings.serializers import StayQuerySerializer

from .calendar import CalendarStore
from .serializers import CalendarDaySerializer, CalendarRangeSerializer


class PropertyCalendarMixin:
    """Вспомогательный миксин для получения объекта из URL."""

    property_lookup_url_kwarg = "property_id"

    def initial(self, request, *args, **kwargs):  # type: ignore
        super().initial(request, *args, **kwargs)
        self.property_object = load_property(kwargs.get(self.property_lookup_url_kwarg))


class PropertyAvailabilityView(PropertyCalendarMixin, views.APIView):
    """Проверка доступности дат с альтернативными окнами."""

    def get(self, request, property_id: int):  # type: ignore
        serializer = StayQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = build_availability_checker().check(
            self.property_object,
            data["check_in"],
            data["check_out"],
            GuestCount(adults=data["adults"], children=data["children"]),
        )
        return Response(result.to_dict())


class PropertyCalendarView(PropertyCalendarMixin, views.APIView):
    """Публичный календарь объекта."""

    def get(self, request, property_id: int):  # type: ignore
        serializer = CalendarRangeSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        days = CalendarStore().get_days(
            self.property_object.pk,
            serializer.validated_data["start"],
            serializer.validated_data["end"],
        )
        return Response({
            "property_id": self.property_object.pk,
            "currency": self.property_object.currency,
            "base_price": self.property_object.base_price,
            "days": CalendarDaySerializer(days, many=True).data,
        })
