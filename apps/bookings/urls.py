"""URL routing for quotes and reservations."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import QuoteViewSet, ReservationViewSet

router = DefaultRouter()
router.register(r"quotes", QuoteViewSet, basename="quote")
router.register(r"reservations", ReservationViewSet, basename="reservation")

urlpatterns = [
    path("", include(router.urls)),
]
