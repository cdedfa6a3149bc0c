"""URL routing for the properties domain."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import PropertyAvailabilityView, PropertyCalendarView

urlpatterns = [
    path(
        "<int:property_id>/availability/",
        PropertyAvailabilityView.as_view(),
        name="property-availability",
    ),
    path(
        "<int:property_id>/calendar/",
        PropertyCalendarView.as_view(),
        name="property-calendar",
    ),
]
