"""
Quote Service

Turns a stay request into a persisted, time-boxed quote:

1. Availability Checker (rules + calendar); failures propagate unchanged
2. Pricing: the external PMS first for linked properties, the internal
   Pricing Calculator otherwise or when the PMS gives no usable answer
3. Persist a new open Quote expiring QUOTE_TTL_HOURS after creation

Every request creates a new quote, even for identical parameters; quotes are
never mutated or reused.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional
from uuid import UUID
import logging

from django.conf import settings
from django.utils import timezone

from apps.bookings.availability import AvailabilityChecker, load_property
from apps.bookings.domain.entities import GuestCount
from apps.bookings.domain.pricing import PricingBreakdown, PricingCalculator
from apps.bookings.exceptions import ExternalUnavailable, NotFound, RuleViolation
from apps.bookings.models import Quote
from apps.properties.calendar import CalendarStore
from shared.domain.value_objects import DateRange

logger = logging.getLogger(__name__)


@dataclass
class QuoteRequest:
    property_id: int
    check_in: date
    check_out: date
    adults: int = 1
    children: int = 0
    promo_code: str = ''

    def guest_count(self) -> GuestCount:
        try:
            return GuestCount(adults=self.adults, children=self.children)
        except ValueError as exc:
            raise RuleViolation(str(exc)) from exc


class QuoteService:
    def __init__(
        self,
        checker: Optional[AvailabilityChecker] = None,
        calculator: Optional[PricingCalculator] = None,
        calendar: Optional[CalendarStore] = None,
        pms_adapter=None,
        ttl_hours: Optional[int] = None,
    ):
        self.calendar = calendar or CalendarStore()
        self.checker = checker or AvailabilityChecker(self.calendar)
        self.calculator = calculator or PricingCalculator()
        self.pms_adapter = pms_adapter
        self.ttl = timedelta(hours=ttl_hours if ttl_hours is not None else settings.QUOTE_TTL_HOURS)

    def generate_quote(self, request: QuoteRequest, today: Optional[date] = None) -> Quote:
        """
        Raises:
            NotFound, InvalidDates, RuleViolation, Unavailable,
            ExternalUnavailable
        """
        guests = request.guest_count()
        prop = load_property(request.property_id)

        result = self.checker.check(prop, request.check_in, request.check_out, guests, today=today)
        result.raise_for_failure()

        window = DateRange(request.check_in, request.check_out)
        breakdown, source = self.price(prop, window, guests, request.promo_code or None)

        quote = Quote(
            property=prop,
            check_in=request.check_in,
            check_out=request.check_out,
            adults=guests.adults,
            children=guests.children,
            promo_code=request.promo_code or '',
            pricing_source=source,
            expires_at=timezone.now() + self.ttl,
        )
        quote.apply_breakdown(breakdown)
        quote.save()

        logger.info(
            f"Quote {quote.pk} for property {prop.pk} {window}: "
            f"{quote.grand_total} {quote.currency} ({source})"
        )
        return quote

    def price(self, prop, window: DateRange, guests: GuestCount, promo_code=None):
        """External-first pricing; returns (breakdown, pricing source)."""
        if self.pms_adapter is not None and prop.is_externally_managed:
            external = self.pms_adapter.fetch_authoritative(prop.external_id, window, guests)
            if external.is_available:
                return external.breakdown, Quote.PricingSource.EXTERNAL
            if external.is_unavailable:
                if external.min_nights:
                    raise ExternalUnavailable(
                        f"Minimum stay for these dates is {external.min_nights} nights.",
                        min_nights=external.min_nights,
                    )
                raise ExternalUnavailable(
                    "Selected dates are not available.",
                    blocked_dates=[day.isoformat() for day in external.blocked_dates],
                )
            logger.info(f"Pricing property {prop.pk} internally after PMS fallback")

        overrides = self.calendar.price_overrides(prop.pk, window.start_date, window.end_date)
        breakdown: PricingBreakdown = self.calculator.price(prop, window, guests, overrides, promo_code)
        return breakdown, Quote.PricingSource.INTERNAL

    def get_quote(self, quote_id: UUID) -> Quote:
        quote = Quote.objects.select_related('property').filter(pk=quote_id).first()
        if quote is None:
            raise NotFound(f"Quote {quote_id} not found.")
        return quote
