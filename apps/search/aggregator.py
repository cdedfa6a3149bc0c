"""Multi-tenant search aggregator.

Two phases:

1. Enumerate active properties of active tenants whose capacity and
   min/max nights fit the request (the check-in day's min-nights override
   included), and bulk-read their blocked dates and price overrides (a
   handful of queries, in the calling thread).
2. Per property, concurrently on a bounded thread pool: check the calendar,
   then ask the PMS for linked properties, and run the pricing calculator
   when there is no PMS price. Worker threads never touch the database.

A single property's failure never fails the search: it is returned with
``pricing=None``. Only failing to enumerate the properties is fatal.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Set

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.availability import first_conflict
from apps.bookings.domain.entities import GuestCount
from apps.bookings.domain.pricing import PricingBreakdown, PricingCalculator
from apps.bookings.exceptions import InvalidDates
from apps.properties.calendar import CalendarStore
from apps.properties.models import Property, Tenant
from shared.domain.value_objects import DateRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    property: Property
    pricing: Optional[PricingBreakdown]
    pricing_source: str = "internal"

    @property
    def total(self) -> Optional[int]:
        return self.pricing.grand_total if self.pricing else None

    def to_dict(self) -> dict:
        prop = self.property
        return {
            "property_id": prop.pk,
            "tenant_id": prop.tenant_id,
            "name": prop.name,
            "slug": prop.slug,
            "max_guests": prop.max_guests,
            "bedrooms": prop.bedrooms,
            "bathrooms": prop.bathrooms,
            "currency": prop.currency,
            "pricing_source": self.pricing_source if self.pricing else None,
            "pricing": self.pricing.to_dict() if self.pricing else None,
        }


@dataclass(frozen=True)
class _Candidate:
    property: Property
    unavailable: Set[date]
    overrides: Dict[date, int]


# Sentinel for "exclude from results"
_EXCLUDED = None


def rank(results: List[SearchResult]) -> List[SearchResult]:
    """Ascending total; unpriced results last, in input order."""
    return sorted(results, key=lambda result: (result.total is None, result.total or 0))


class SearchAggregator:
    def __init__(
        self,
        calendar: Optional[CalendarStore] = None,
        calculator: Optional[PricingCalculator] = None,
        pms_adapter=None,
        max_workers: Optional[int] = None,
    ):
        self.calendar = calendar or CalendarStore()
        self.calculator = calculator or PricingCalculator()
        self.pms_adapter = pms_adapter
        self.max_workers = max_workers or settings.SEARCH_MAX_WORKERS

    def search(self, check_in: date, check_out: date, guests: GuestCount, today: Optional[date] = None) -> List[SearchResult]:
        """
        Raises:
            InvalidDates: the window itself is invalid (past or reversed)
        """
        today = today or timezone.localdate()
        window = self._window(check_in, check_out, today)
        candidates = self._candidates(window, guests, today)
        if not candidates:
            return []

        workers = min(self.max_workers, len(candidates))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="search") as pool:
            outcomes = list(pool.map(lambda candidate: self._evaluate_safely(candidate, window, guests), candidates))

        results = [outcome for outcome in outcomes if outcome is not _EXCLUDED]
        logger.info(
            f"Search {window} for {guests.total} guests: {len(results)} result(s) "
            f"from {len(candidates)} candidate(s)"
        )
        return rank(results)

    @staticmethod
    def _window(check_in: date, check_out: date, today: date) -> DateRange:
        if check_in >= check_out:
            raise InvalidDates("Check-out must be after check-in.")
        if check_in < today:
            raise InvalidDates("Check-in date cannot be in the past.")
        return DateRange(check_in, check_out)

    def _candidates(self, window: DateRange, guests: GuestCount, today: date) -> List[_Candidate]:
        nights = len(window)
        properties = list(
            Property.objects.select_related("tenant")
            .filter(
                status=Property.Status.ACTIVE,
                tenant__status=Tenant.Status.ACTIVE,
                max_guests__gte=guests.total,
                max_nights__gte=nights,
            )
            .order_by("tenant_id", "pk")
        )
        if not properties:
            return []

        # The check-in day's override replaces the property minimum
        min_nights = self.calendar.min_nights_overrides([prop.pk for prop in properties], window.start_date)
        properties = [
            prop for prop in properties
            if nights >= (min_nights.get(prop.pk) or prop.min_nights)
        ]
        if not properties:
            return []

        ids = [prop.pk for prop in properties]
        unavailable = self.calendar.unavailable_dates(ids, window.start_date, window.end_date)
        overrides = self.calendar.price_overrides_for(ids, window.start_date, window.end_date)
        return [
            _Candidate(prop, unavailable.get(prop.pk, set()), overrides.get(prop.pk, {}))
            for prop in properties
        ]

    def _evaluate_safely(self, candidate: _Candidate, window: DateRange, guests: GuestCount) -> Optional[SearchResult]:
        try:
            return self._evaluate(candidate, window, guests)
        except Exception as exc:
            logger.warning(
                f"Search pricing failed for property {candidate.property.pk}: {exc}",
                exc_info=True,
            )
            return SearchResult(candidate.property, None)

    def _evaluate(self, candidate: _Candidate, window: DateRange, guests: GuestCount) -> Optional[SearchResult]:
        prop = candidate.property

        # Same order as a quote: the internal calendar first, then the PMS
        if first_conflict(window, candidate.unavailable) is not None:
            return _EXCLUDED

        if self.pms_adapter is not None and prop.is_externally_managed:
            external = self.pms_adapter.fetch_authoritative(prop.external_id, window, guests)
            if external.is_available:
                return SearchResult(prop, external.breakdown, "external")
            if external.is_unavailable:
                return _EXCLUDED
            if external.failed:
                # Timeout or transport error: show the property without a price
                return SearchResult(prop, None)

        breakdown = self.calculator.price(prop, window, guests, candidate.overrides)
        return SearchResult(prop, breakdown, "internal")
