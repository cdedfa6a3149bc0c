"""Search endpoint."""

from __future__ import annotations

from rest_framework import views  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.domain.entities import GuestCount
from apps.bookings.serializers import StayQuerySerializer

from .dependencies import build_search_aggregator


class SearchView(views.APIView):
    """Поиск доступных объектов всех арендодателей с ценами."""

    def get(self, request):  # type: ignore
        serializer = StayQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        guests = GuestCount(adults=data["adults"], children=data["children"])
        results = build_search_aggregator().search(data["check_in"], data["check_out"], guests)
        return Response({
            "check_in": data["check_in"].isoformat(),
            "check_out": data["check_out"].isoformat(),
            "guests": guests.total,
            "count": len(results),
            "results": [result.to_dict() for result in results],
        })
