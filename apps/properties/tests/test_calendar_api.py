"""Tests for the property availability and calendar endpoints."""

from __future__ import annotations

from datetime import timedelta

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.testing import make_property, make_reservation, next_weekday
from apps.properties.calendar import CalendarStore
from apps.properties.models import Property


class PropertyCalendarAPITests(APITestCase):
    def setUp(self) -> None:
        self.property = make_property(min_nights=2)
        self.check_in = next_weekday(0)

    def _availability(self, check_in, check_out, **params):
        params.update({"check_in": check_in.isoformat(), "check_out": check_out.isoformat()})
        return self.client.get(
            reverse("property-availability", kwargs={"property_id": self.property.id}), params,
        )

    def test_open_window_is_available(self) -> None:
        response = self._availability(self.check_in, self.check_in + timedelta(days=3), adults=2)

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data, {"available": True})

    def test_booked_window_offers_alternatives(self) -> None:
        make_reservation(self.property, self.check_in, self.check_in + timedelta(days=2))

        response = self._availability(self.check_in, self.check_in + timedelta(days=2))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertFalse(response.data["available"])
        self.assertEqual(response.data["code"], "UNAVAILABLE")
        self.assertEqual(len(response.data["alternatives"]), 3)
        first = response.data["alternatives"][0]
        self.assertEqual(first["check_in"], (self.check_in + timedelta(days=2)).isoformat())
        self.assertEqual(first["estimated_price"], 1000)

    def test_rule_violation_is_reported(self) -> None:
        response = self._availability(self.check_in, self.check_in + timedelta(days=1))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertFalse(response.data["available"])
        self.assertEqual(response.data["code"], "RULE_VIOLATION")
        self.assertEqual(response.data["alternatives"], [])

    def test_missing_dates_are_a_validation_error(self) -> None:
        response = self.client.get(reverse("property-availability", kwargs={"property_id": self.property.id}))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["error"]["code"], "VALIDATION_ERROR")
        self.assertIn("check_in", response.data["error"]["details"])

    def test_inactive_property_is_not_found(self) -> None:
        self.property.deactivate()

        response = self._availability(self.check_in, self.check_in + timedelta(days=3))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)
        self.assertEqual(response.data["error"]["code"], "NOT_FOUND")

    def test_calendar_lists_days_with_overrides(self) -> None:
        store = CalendarStore()
        store.set_overrides(self.property.pk, [self.check_in], price=750)
        store.block_days(self.property.pk, [self.check_in + timedelta(days=1)])

        response = self.client.get(
            reverse("property-calendar", kwargs={"property_id": self.property.id}),
            {"start": self.check_in.isoformat(), "end": (self.check_in + timedelta(days=3)).isoformat()},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        days = response.data["days"]
        self.assertEqual(len(days), 3)
        self.assertEqual(days[0]["price"], 750)
        self.assertEqual([day["status"] for day in days], ["available", "blocked", "available"])
        self.assertNotIn("reservation", days[0])

    def test_calendar_range_is_bounded(self) -> None:
        response = self.client.get(
            reverse("property-calendar", kwargs={"property_id": self.property.id}),
            {"start": self.check_in.isoformat(), "end": (self.check_in + timedelta(days=400)).isoformat()},
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)


class PropertyModelTests(APITestCase):
    def test_slug_is_generated_from_name(self) -> None:
        prop = make_property(name="Old City Penthouse")
        self.assertEqual(prop.slug, "old-city-penthouse")

    def test_bookable_requires_active_property_and_tenant(self) -> None:
        prop = make_property()
        self.assertTrue(prop.is_bookable)

        prop.tenant.status = prop.tenant.Status.INACTIVE
        self.assertFalse(prop.is_bookable)

        draft = make_property(tenant=prop.tenant, name="Draft Cabin", status=Property.Status.DRAFT)
        self.assertFalse(draft.is_bookable)

    def test_external_link(self) -> None:
        self.assertFalse(make_property().is_externally_managed)
        self.assertTrue(make_property(name="Linked Villa", external_id="48213").is_externally_managed)
