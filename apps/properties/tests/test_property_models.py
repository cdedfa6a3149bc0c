"""Tests for computed attributes on models with a ``property`` foreign key."""

from __future__ import annotations

from datetime import timedelta

from django.test import TestCase

from apps.bookings.models import Reservation
from apps.bookings.testing import make_property, make_reservation, next_weekday
from apps.properties.models import CalendarDay, Property


class ComputedAttributeTests(TestCase):
    def setUp(self) -> None:
        self.property = make_property()
        self.check_in = next_weekday(1)

    def test_calendar_day_is_open_is_an_attribute(self) -> None:
        day = CalendarDay.objects.create(property=self.property, date=self.check_in)

        self.assertIs(day.is_open, True)
        day.status = CalendarDay.Status.BLOCKED
        self.assertIs(day.is_open, False)
        self.assertIsInstance(day.property, Property)

    def test_reservation_holds_calendar_is_an_attribute(self) -> None:
        reservation = make_reservation(self.property, self.check_in, self.check_in + timedelta(days=2))

        self.assertIs(reservation.holds_calendar, True)
        reservation.status = Reservation.Status.CANCELLED
        self.assertIs(reservation.holds_calendar, False)
        self.assertEqual(reservation.property, self.property)

    def test_property_foreign_key_still_resolves(self) -> None:
        CalendarDay.objects.create(property=self.property, date=self.check_in)

        self.assertEqual(self.property.calendar_days.get().property_id, self.property.pk)
