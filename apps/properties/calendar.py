"""Calendar store: the day-level availability ledger of every property.

All inventory mutations go through :class:`CalendarStore`. Locking a stay is
a single conditional ``UPDATE ... WHERE status = 'available'`` over the
requested days, run inside a savepoint: the database decides the winner of
concurrent attempts, so several service instances can book safely without
any in-process mutex.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Set

from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from .models import CalendarDay

logger = logging.getLogger(__name__)

UNAVAILABLE_STATUSES = (CalendarDay.Status.BOOKED, CalendarDay.Status.BLOCKED)


class _Conflict(Exception):
    """Raised inside a savepoint to roll back a partial calendar change."""


def _normalise(dates: Iterable[date]) -> List[date]:
    normalised = sorted(set(dates))
    if not normalised:
        raise ValueError("At least one date is required")
    return normalised


def date_span(start: date, end: date) -> List[date]:
    """Dates of the half-open range [start, end)."""
    return [start + timedelta(days=offset) for offset in range((end - start).days)]


class CalendarStore:
    """Reads and atomically mutates ``CalendarDay`` rows."""

    def get_days(self, property_id: int, start: date, end: date) -> List[CalendarDay]:
        """
        One day per date in [start, end), read with a single query.

        Dates without a stored row come back as unsaved ``available`` rows.
        """
        stored = {
            day.date: day
            for day in CalendarDay.objects.filter(
                property_id=property_id,
                date__gte=start,
                date__lt=end,
            )
        }
        return [
            stored.get(day) or CalendarDay(property_id=property_id, date=day)
            for day in date_span(start, end)
        ]

    def lock_days(self, property_id: int, dates: Iterable[date], reservation_id) -> bool:
        """
        Book every date for ``reservation_id`` or none of them.

        Returns False when any day is already booked or blocked; the calendar
        is left exactly as it was.
        """
        days = _normalise(dates)
        try:
            with transaction.atomic():
                self._ensure_rows(property_id, days)
                # Row locks are taken in date order so overlapping lockers
                # queue behind each other instead of deadlocking.
                list(
                    CalendarDay.objects.select_for_update()
                    .filter(property_id=property_id, date__in=days)
                    .order_by("date")
                    .values_list("pk", flat=True)
                )
                updated = CalendarDay.objects.filter(
                    property_id=property_id,
                    date__in=days,
                    status=CalendarDay.Status.AVAILABLE,
                ).update(
                    status=CalendarDay.Status.BOOKED,
                    reservation_id=reservation_id,
                    updated_at=timezone.now(),
                )
                if updated != len(days):
                    raise _Conflict()
        except _Conflict:
            logger.info(
                f"Calendar lock conflict for property {property_id}: "
                f"{len(days)} day(s) from {days[0].isoformat()}"
            )
            return False
        return True

    def release_days(self, property_id: int, dates: Iterable[date], reservation_id=None) -> int:
        """
        Turn booked days back to ``available``.

        With ``reservation_id`` only the rows owned by that reservation are
        released. Returns the number of released days.
        """
        days = _normalise(dates)
        queryset = CalendarDay.objects.filter(
            property_id=property_id,
            date__in=days,
            status=CalendarDay.Status.BOOKED,
        )
        if reservation_id is not None:
            queryset = queryset.filter(reservation_id=reservation_id)
        return queryset.update(
            status=CalendarDay.Status.AVAILABLE,
            reservation=None,
            updated_at=timezone.now(),
        )

    def block_days(self, property_id: int, dates: Iterable[date], note: str = "") -> bool:
        """Host block. Fails (False) without changes if any day is booked."""
        days = _normalise(dates)
        try:
            with transaction.atomic():
                self._ensure_rows(property_id, days)
                rows = CalendarDay.objects.select_for_update().filter(property_id=property_id, date__in=days)
                if rows.filter(status=CalendarDay.Status.BOOKED).exists():
                    raise _Conflict()
                rows.update(status=CalendarDay.Status.BLOCKED, note=note, updated_at=timezone.now())
        except _Conflict:
            return False
        return True

    def unblock_days(self, property_id: int, dates: Iterable[date]) -> int:
        days = _normalise(dates)
        return CalendarDay.objects.filter(
            property_id=property_id,
            date__in=days,
            status=CalendarDay.Status.BLOCKED,
        ).update(status=CalendarDay.Status.AVAILABLE, note="", updated_at=timezone.now())

    @transaction.atomic
    def set_overrides(
        self,
        property_id: int,
        dates: Iterable[date],
        *,
        price: Optional[int] = None,
        min_nights: Optional[int] = None,
    ) -> int:
        """Set per-day price and/or min-nights overrides (None clears)."""
        days = _normalise(dates)
        self._ensure_rows(property_id, days)
        return CalendarDay.objects.filter(property_id=property_id, date__in=days).update(
            price=price,
            min_nights=min_nights,
            updated_at=timezone.now(),
        )

    def price_overrides(self, property_id: int, start: date, end: date) -> Dict[date, int]:
        return dict(
            CalendarDay.objects.filter(
                property_id=property_id,
                date__gte=start,
                date__lt=end,
                price__isnull=False,
            ).values_list("date", "price")
        )

    def unavailable_dates(self, property_ids: Iterable[int], start: date, end: date) -> Dict[int, Set[date]]:
        """Booked/blocked dates in [start, end) for many properties in one query."""
        result: Dict[int, Set[date]] = defaultdict(set)
        rows = CalendarDay.objects.filter(
            property_id__in=list(property_ids),
            date__gte=start,
            date__lt=end,
            status__in=UNAVAILABLE_STATUSES,
        ).values_list("property_id", "date")
        for property_id, day in rows:
            result[property_id].add(day)
        return dict(result)

    def min_nights_overrides(self, property_ids: Iterable[int], day: date) -> Dict[int, int]:
        """Min-nights overrides set on ``day`` for many properties in one query."""
        return dict(
            CalendarDay.objects.filter(
                property_id__in=list(property_ids),
                date=day,
                min_nights__isnull=False,
            ).values_list("property_id", "min_nights")
        )

    def price_overrides_for(self, property_ids: Iterable[int], start: date, end: date) -> Dict[int, Dict[date, int]]:
        """Price overrides in [start, end) for many properties in one query."""
        result: Dict[int, Dict[date, int]] = defaultdict(dict)
        rows = CalendarDay.objects.filter(
            property_id__in=list(property_ids),
            date__gte=start,
            date__lt=end,
            price__isnull=False,
        ).values_list("property_id", "date", "price")
        for property_id, day, price in rows:
            result[property_id][day] = price
        return dict(result)

    @staticmethod
    def _ensure_rows(property_id: int, days: List[date]) -> None:
        CalendarDay.objects.bulk_create(
            [CalendarDay(property_id=property_id, date=day) for day in days],
            ignore_conflicts=True,
        )
