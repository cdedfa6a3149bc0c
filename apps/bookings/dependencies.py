"""Wiring of the booking services.

Views and tasks ask for their collaborators here instead of building them,
so the PMS adapter is passed explicitly through the object graph.
"""

from __future__ import annotations

from apps.pms.dependencies import build_pms_adapter
from apps.properties.calendar import CalendarStore

from .application.command_handlers import ReservationService
from .application.quotes import QuoteService
from .availability import AvailabilityChecker


def build_availability_checker() -> AvailabilityChecker:
    return AvailabilityChecker(CalendarStore())


def build_quote_service() -> QuoteService:
    calendar = CalendarStore()
    return QuoteService(
        checker=AvailabilityChecker(calendar),
        calendar=calendar,
        pms_adapter=build_pms_adapter(),
    )


def build_reservation_service() -> ReservationService:
    return ReservationService(CalendarStore())
