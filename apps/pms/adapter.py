"""External pricing/availability adapter.

For a property linked to the PMS the PMS is the source of truth. The
adapter reads the listing's ``days_rates`` for the stay and classifies the
answer:

- ``AVAILABLE``: every night is available and priced; carries the breakdown
- ``UNAVAILABLE``: the PMS reports at least one night as taken, or the
  stay is shorter than the longest ``minNights`` of its nights; the
  property must not be offered, whatever the internal calendar says
- ``FALLBACK``: no usable answer (no listing, no rates, a malformed
  payload, transport failure);
  callers continue with the internal checker and calculator

``ExternalAdapterFailure`` never leaves :meth:`fetch_authoritative`; it is
attached to the ``FALLBACK`` result instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Tuple

from django.conf import settings  # type: ignore

from apps.bookings.domain.entities import GuestCount
from apps.bookings.domain.pricing import NightlyRate, PricingBreakdown, build_breakdown
from apps.bookings.exceptions import ExternalAdapterFailure
from shared.domain.value_objects import DateRange, round_half_up

from .client import PMSClient

logger = logging.getLogger(__name__)

AVAILABLE_STATUS = "available"


class Outcome(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ExternalResult:
    outcome: Outcome
    breakdown: Optional[PricingBreakdown] = None
    blocked_dates: Tuple[date, ...] = field(default_factory=tuple)
    min_nights: Optional[int] = None
    error: Optional[ExternalAdapterFailure] = None

    @property
    def is_available(self) -> bool:
        return self.outcome is Outcome.AVAILABLE

    @property
    def is_unavailable(self) -> bool:
        return self.outcome is Outcome.UNAVAILABLE

    @property
    def is_fallback(self) -> bool:
        return self.outcome is Outcome.FALLBACK

    @property
    def failed(self) -> bool:
        """The PMS could not be reached or answered with an error."""
        return self.error is not None

    @classmethod
    def fallback(cls, error: Optional[ExternalAdapterFailure] = None) -> "ExternalResult":
        return cls(Outcome.FALLBACK, error=error)


class ExternalPricingAdapter:
    def __init__(self, client: PMSClient, amount_scale: Optional[int] = None, default_currency: str = "ILS"):
        self.client = client
        self.amount_scale = settings.PMS_AMOUNT_SCALE if amount_scale is None else amount_scale
        self.default_currency = default_currency

    def fetch_authoritative(self, external_id: str, window: DateRange, guests: GuestCount) -> ExternalResult:
        try:
            listing = self.client.get_listing(external_id)
        except ExternalAdapterFailure as exc:
            logger.warning(f"PMS listing {external_id} unavailable, falling back: {exc}")
            return ExternalResult.fallback(error=exc)

        if not listing:
            logger.warning(f"PMS listing {external_id} not found, falling back")
            return ExternalResult.fallback()

        try:
            return self._classify(external_id, listing, window, guests)
        except ExternalAdapterFailure as exc:
            logger.warning(f"PMS listing {external_id} answered a malformed payload, falling back: {exc}")
            return ExternalResult.fallback(error=exc)

    def _classify(self, external_id: str, listing, window: DateRange, guests: GuestCount) -> ExternalResult:
        if not isinstance(listing, dict):
            raise ExternalAdapterFailure(f"listing is {type(listing).__name__}, not an object")

        days_rates = listing.get("days_rates")
        if not days_rates:
            logger.warning(f"PMS listing {external_id} has no days_rates, falling back")
            return ExternalResult.fallback()
        if not isinstance(days_rates, dict):
            raise ExternalAdapterFailure(f"days_rates is {type(days_rates).__name__}, not an object")

        rates = []
        blocked = []
        min_nights = 1
        for night in window.nights():
            day_rate = days_rates.get(night.isoformat())
            if day_rate is not None and not isinstance(day_rate, dict):
                raise ExternalAdapterFailure(f"days_rates entry for {night} is not an object")
            if not day_rate or day_rate.get("status") != AVAILABLE_STATUS:
                blocked.append(night)
                continue
            min_nights = max(min_nights, self._min_nights(day_rate.get("minNights")))
            price = self.to_minor_units(day_rate.get("price"))
            if not price:
                logger.warning(f"PMS listing {external_id} has no price for {night}, falling back")
                return ExternalResult.fallback()
            rates.append(NightlyRate(night, price, "PMS rate"))

        if blocked:
            logger.info(
                f"PMS reports listing {external_id} unavailable for {window} "
                f"({guests.total} guests): {len(blocked)} night(s) blocked"
            )
            return ExternalResult(Outcome.UNAVAILABLE, blocked_dates=tuple(blocked))

        if len(window) < min_nights:
            logger.info(f"PMS listing {external_id} requires {min_nights} nights, {window} is shorter")
            return ExternalResult(Outcome.UNAVAILABLE, min_nights=min_nights)

        extra_info = listing.get("extra_info") or {}
        if not isinstance(extra_info, dict):
            raise ExternalAdapterFailure("extra_info is not an object")
        cleaning_fee = self.to_minor_units(extra_info.get("cleaning_fee")) or 0
        currency = listing.get("currency") or self.default_currency
        if not isinstance(currency, str):
            raise ExternalAdapterFailure("currency is not a string")
        return ExternalResult(Outcome.AVAILABLE, breakdown=build_breakdown(rates, cleaning_fee, currency))

    @staticmethod
    def _min_nights(value) -> int:
        if value in (None, ""):
            return 1
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ExternalAdapterFailure(f"minNights {value!r} is not a number") from exc

    def to_minor_units(self, amount) -> Optional[int]:
        """PMS amounts are major units (e.g. 450.5 shekels)."""
        if amount in (None, "") or isinstance(amount, bool):
            return None
        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            return None
        if not value.is_finite() or value < 0:
            return None
        return round_half_up(value * self.amount_scale)
