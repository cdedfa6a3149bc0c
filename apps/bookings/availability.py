"""Availability checker.

Validates a requested stay against the property's rules and its calendar,
in a fixed order that stops at the first failure:

1. property exists and is active (tenant included)
2. check-in before check-out, check-in not in the past
3. nights >= min nights (check-in day override, else the property's)
4. nights <= max nights
5. guests <= capacity
6. no booked/blocked day in [check-in, check-out)

A calendar conflict comes back with up to three alternative windows of the
same length. Alternatives are advisory, nothing is held for them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, List, Optional, Set, Tuple

from django.utils import timezone  # type: ignore

from apps.properties.calendar import CalendarStore
from apps.properties.models import Property
from shared.domain.value_objects import DateRange

from .domain.entities import GuestCount
from .exceptions import BookingError, InvalidDates, NotFound, RuleViolation, Unavailable

logger = logging.getLogger(__name__)

MAX_ALTERNATIVES = 3
ALTERNATIVE_SEARCH_DAYS = 30


@dataclass(frozen=True)
class AlternativeWindow:
    check_in: date
    check_out: date
    estimated_price: int
    currency: str

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def to_dict(self) -> dict:
        return {
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "estimated_price": self.estimated_price,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    error: Optional[BookingError] = None
    alternatives: Tuple[AlternativeWindow, ...] = field(default_factory=tuple)

    @property
    def reason(self) -> str:
        return self.error.message if self.error else ""

    def raise_for_failure(self) -> None:
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict:
        data = {"available": self.available}
        if not self.available:
            data["reason"] = self.reason
            data["code"] = self.error.code
            data["alternatives"] = [alternative.to_dict() for alternative in self.alternatives]
        return data


AVAILABLE = AvailabilityResult(available=True)


def load_property(property_id) -> Property:
    """Active property of an active tenant, or NotFound."""
    prop = (
        Property.objects.select_related("tenant")
        .filter(pk=property_id, status=Property.Status.ACTIVE)
        .first()
    )
    if prop is None or not prop.tenant.is_active:
        raise NotFound(f"Property {property_id} not found.")
    return prop


def validate_rules(
    prop: Property,
    check_in: date,
    check_out: date,
    guests: GuestCount,
    today: date,
    min_nights_override: Optional[int] = None,
) -> None:
    """Steps 2-5; raises the first violated rule."""
    if check_in >= check_out:
        raise InvalidDates("Check-out must be after check-in.")
    if check_in < today:
        raise InvalidDates("Check-in date cannot be in the past.")

    nights = (check_out - check_in).days
    min_nights = min_nights_override or prop.min_nights
    if nights < min_nights:
        raise RuleViolation(f"Minimum stay is {min_nights} nights.", min_nights=min_nights)
    if nights > prop.max_nights:
        raise RuleViolation(f"Maximum stay is {prop.max_nights} nights.", max_nights=prop.max_nights)
    if guests.total > prop.max_guests:
        raise RuleViolation(
            f"Property accommodates up to {prop.max_guests} guests.",
            max_guests=prop.max_guests,
        )


def first_conflict(window: DateRange, unavailable: Set[date]) -> Optional[date]:
    for night in window.nights():
        if night in unavailable:
            return night
    return None


def propose_alternatives(
    prop: Property,
    window: DateRange,
    unavailable: Set[date],
    limit: int = MAX_ALTERNATIVES,
) -> List[AlternativeWindow]:
    """Open windows of the same length starting 1..30 days after check-in."""
    alternatives = []
    nights = len(window)
    for offset in range(1, ALTERNATIVE_SEARCH_DAYS + 1):
        candidate = window.shift(offset)
        if first_conflict(candidate, unavailable) is None:
            alternatives.append(AlternativeWindow(
                check_in=candidate.start_date,
                check_out=candidate.end_date,
                estimated_price=prop.base_price * nights,
                currency=prop.currency,
            ))
            if len(alternatives) >= limit:
                break
    return alternatives


class AvailabilityChecker:
    """Checks a stay against property rules and the calendar store."""

    def __init__(self, calendar: Optional[CalendarStore] = None):
        self.calendar = calendar or CalendarStore()

    def check(
        self,
        prop: Property,
        check_in: date,
        check_out: date,
        guests: GuestCount,
        today: Optional[date] = None,
        with_alternatives: bool = True,
    ) -> AvailabilityResult:
        today = today or timezone.localdate()

        min_nights_override = None
        if check_in < check_out:
            # Only the check-in day until the stay length has been validated
            min_nights_override = self.calendar.min_nights_overrides([prop.pk], check_in).get(prop.pk)

        try:
            validate_rules(prop, check_in, check_out, guests, today, min_nights_override)
        except BookingError as exc:
            return AvailabilityResult(available=False, error=exc)

        days = self.calendar.get_days(prop.pk, check_in, check_out)
        unavailable = {day.date for day in days if not day.is_open}
        if not unavailable:
            return AVAILABLE

        window = DateRange(check_in, check_out)
        logger.info(
            f"Property {prop.pk} unavailable for {window}: "
            f"{len(unavailable)} day(s) booked or blocked"
        )
        alternatives: Iterable[AlternativeWindow] = ()
        if with_alternatives:
            alternatives = self.alternatives(prop, window)
        return AvailabilityResult(
            available=False,
            error=Unavailable(
                "Selected dates are not available.",
                first_unavailable=min(unavailable).isoformat(),
            ),
            alternatives=tuple(alternatives),
        )

    def check_by_id(self, property_id, check_in: date, check_out: date, guests: GuestCount, today=None):
        return self.check(load_property(property_id), check_in, check_out, guests, today=today)

    def alternatives(self, prop: Property, window: DateRange) -> List[AlternativeWindow]:
        """Blocked dates of the whole search range are read with one query."""
        search_end = window.end_date + timedelta(days=ALTERNATIVE_SEARCH_DAYS)
        unavailable = self.calendar.unavailable_dates(
            [prop.pk], window.start_date, search_end,
        ).get(prop.pk, set())
        return propose_alternatives(prop, window, unavailable)
