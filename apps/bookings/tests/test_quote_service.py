"""Tests for the quote service."""

from __future__ import annotations

from datetime import timedelta
from unittest import mock

from django.test import TestCase, override_settings
from django.utils import timezone

from apps.bookings.application.quotes import QuoteRequest, QuoteService
from apps.bookings.domain.pricing import NightlyRate, build_breakdown
from apps.bookings.exceptions import (
    ExternalAdapterFailure,
    ExternalUnavailable,
    NotFound,
    RuleViolation,
    Unavailable,
)
from apps.bookings.models import Quote
from apps.bookings.testing import make_property, make_reservation, next_weekday
from apps.pms.adapter import ExternalPricingAdapter, ExternalResult, Outcome
from apps.pms.client import PMSClient
from apps.properties.calendar import CalendarStore


class QuoteServiceTests(TestCase):
    def setUp(self) -> None:
        self.property = make_property()
        self.check_in = next_weekday(2)
        self.check_out = self.check_in + timedelta(days=3)
        self.service = QuoteService()

    def _request(self, **kwargs) -> QuoteRequest:
        data = {
            "property_id": self.property.pk,
            "check_in": self.check_in,
            "check_out": self.check_out,
            "adults": 2,
        }
        data.update(kwargs)
        return QuoteRequest(**data)

    def test_open_quote_with_internal_pricing(self) -> None:
        before = timezone.now()

        quote = self.service.generate_quote(self._request())

        self.assertEqual(quote.status, Quote.Status.OPEN)
        self.assertEqual(quote.pricing_source, Quote.PricingSource.INTERNAL)
        self.assertEqual(quote.grand_total, 2235)
        self.assertGreaterEqual(quote.expires_at, before + timedelta(hours=24))
        self.assertLessEqual(quote.expires_at, timezone.now() + timedelta(hours=24))

        stored = Quote.objects.get(pk=quote.pk)
        self.assertEqual(stored.breakdown, quote.breakdown)
        self.assertEqual([rate["price"] for rate in stored.nightly_rates], [500, 500, 600])

    @override_settings(QUOTE_TTL_HOURS=2)
    def test_ttl_comes_from_settings(self) -> None:
        quote = QuoteService().generate_quote(self._request())
        self.assertLessEqual(quote.expires_at, timezone.now() + timedelta(hours=2))

    def test_identical_requests_create_new_quotes(self) -> None:
        first = self.service.generate_quote(self._request())
        second = self.service.generate_quote(self._request())

        self.assertNotEqual(first.pk, second.pk)
        self.assertEqual(first.breakdown, second.breakdown)

    def test_price_override_is_used(self) -> None:
        CalendarStore().set_overrides(self.property.pk, [self.check_in], price=800)

        quote = self.service.generate_quote(self._request())

        self.assertEqual(quote.accommodation_total, 1900)

    def test_unavailable_dates_create_no_quote(self) -> None:
        make_reservation(self.property, self.check_in + timedelta(days=1), self.check_in + timedelta(days=2))

        with self.assertRaises(Unavailable):
            self.service.generate_quote(self._request())
        self.assertEqual(Quote.objects.filter(status=Quote.Status.OPEN).count(), 0)

    def test_unknown_property(self) -> None:
        with self.assertRaises(NotFound):
            self.service.generate_quote(self._request(property_id=self.property.pk + 999))

    def test_at_least_one_adult(self) -> None:
        with self.assertRaises(RuleViolation):
            self.service.generate_quote(self._request(adults=0))


class ExternalQuoteTests(TestCase):
    def setUp(self) -> None:
        self.property = make_property(external_id="48213")
        self.check_in = next_weekday(2)
        self.check_out = self.check_in + timedelta(days=2)
        self.adapter = mock.Mock(spec=ExternalPricingAdapter)
        self.service = QuoteService(pms_adapter=self.adapter)

    def _generate(self):
        return self.service.generate_quote(QuoteRequest(self.property.pk, self.check_in, self.check_out, adults=2))

    def test_pms_pricing_is_authoritative(self) -> None:
        breakdown = build_breakdown(
            [NightlyRate(self.check_in, 70000), NightlyRate(self.check_in + timedelta(days=1), 70000)],
            cleaning_fee=25000,
            currency="ILS",
        )
        self.adapter.fetch_authoritative.return_value = ExternalResult(Outcome.AVAILABLE, breakdown=breakdown)

        quote = self._generate()

        self.assertEqual(quote.pricing_source, Quote.PricingSource.EXTERNAL)
        self.assertEqual(quote.breakdown, breakdown)
        self.adapter.fetch_authoritative.assert_called_once()
        self.assertEqual(self.adapter.fetch_authoritative.call_args.args[0], "48213")

    def test_pms_unavailability_wins_over_free_calendar(self) -> None:
        self.adapter.fetch_authoritative.return_value = ExternalResult(
            Outcome.UNAVAILABLE, blocked_dates=(self.check_in,),
        )

        with self.assertRaises(ExternalUnavailable) as ctx:
            self._generate()
        self.assertEqual(ctx.exception.details["blocked_dates"], [self.check_in.isoformat()])
        self.assertFalse(Quote.objects.exists())

    def test_pms_failure_falls_back_to_internal_pricing(self) -> None:
        self.adapter.fetch_authoritative.return_value = ExternalResult.fallback(
            error=ExternalAdapterFailure("timed out"),
        )

        quote = self._generate()

        self.assertEqual(quote.pricing_source, Quote.PricingSource.INTERNAL)
        self.assertEqual(quote.accommodation_total, 1000)

    def test_unlinked_property_never_calls_pms(self) -> None:
        other = make_property(tenant=self.property.tenant, name="Local Studio")

        self.service.generate_quote(QuoteRequest(other.pk, self.check_in, self.check_out))

        self.adapter.fetch_authoritative.assert_not_called()

    def test_pms_min_nights_rejects_short_stay(self) -> None:
        self.adapter.fetch_authoritative.return_value = ExternalResult(Outcome.UNAVAILABLE, min_nights=5)

        with self.assertRaises(ExternalUnavailable) as ctx:
            self._generate()
        self.assertEqual(ctx.exception.details["min_nights"], 5)
        self.assertIn("5 nights", ctx.exception.message)
        self.assertFalse(Quote.objects.exists())

    def test_malformed_pms_listing_is_priced_internally(self) -> None:
        pms_client = mock.Mock(spec=PMSClient)
        pms_client.get_listing.return_value = {"days_rates": [{"date": self.check_in.isoformat()}]}
        service = QuoteService(pms_adapter=ExternalPricingAdapter(pms_client, amount_scale=100))

        quote = service.generate_quote(QuoteRequest(self.property.pk, self.check_in, self.check_out, adults=2))

        self.assertEqual(quote.pricing_source, Quote.PricingSource.INTERNAL)
        self.assertEqual(quote.accommodation_total, 1000)
