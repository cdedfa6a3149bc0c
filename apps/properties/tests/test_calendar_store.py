"""Tests for the calendar store: locking, releasing, blocking, overrides."""

from __future__ import annotations

import threading
from datetime import timedelta

from django.db import connections
from django.test import TestCase, TransactionTestCase

from apps.bookings.testing import make_property, make_reservation, next_weekday
from apps.properties.calendar import CalendarStore, date_span
from apps.properties.models import CalendarDay


class CalendarStoreTests(TestCase):
    def setUp(self) -> None:
        self.store = CalendarStore()
        self.property = make_property()
        self.start = next_weekday(0)
        self.first = make_reservation(self.property, self.start, self.start + timedelta(days=3), lock=False)
        self.second = make_reservation(
            self.property, self.start + timedelta(days=2), self.start + timedelta(days=5), lock=False,
        )

    def _status(self, day):
        row = CalendarDay.objects.filter(property=self.property, date=day).first()
        return row.status if row else CalendarDay.Status.AVAILABLE

    def test_get_days_returns_every_date_in_one_query(self) -> None:
        self.store.block_days(self.property.pk, [self.start + timedelta(days=1)], note="Maintenance")

        with self.assertNumQueries(1):
            days = self.store.get_days(self.property.pk, self.start, self.start + timedelta(days=3))

        self.assertEqual([day.date for day in days], date_span(self.start, self.start + timedelta(days=3)))
        self.assertEqual(
            [day.status for day in days],
            [CalendarDay.Status.AVAILABLE, CalendarDay.Status.BLOCKED, CalendarDay.Status.AVAILABLE],
        )
        self.assertIsNone(days[0].pk)

    def test_disjoint_windows_both_lock(self) -> None:
        early = date_span(self.start, self.start + timedelta(days=2))
        late = date_span(self.start + timedelta(days=2), self.start + timedelta(days=5))

        self.assertTrue(self.store.lock_days(self.property.pk, early, self.first.pk))
        self.assertTrue(self.store.lock_days(self.property.pk, late, self.second.pk))
        self.assertEqual(
            CalendarDay.objects.filter(property=self.property, status=CalendarDay.Status.BOOKED).count(),
            5,
        )

    def test_overlapping_lock_fails_without_partial_hold(self) -> None:
        self.assertTrue(
            self.store.lock_days(self.property.pk, self.first.window.dates(), self.first.pk)
        )

        locked = self.store.lock_days(self.property.pk, self.second.window.dates(), self.second.pk)

        self.assertFalse(locked)
        self.assertFalse(CalendarDay.objects.filter(reservation=self.second).exists())
        # Days only the loser asked for stay open
        self.assertEqual(self._status(self.start + timedelta(days=4)), CalendarDay.Status.AVAILABLE)
        self.assertEqual(
            set(CalendarDay.objects.filter(reservation=self.first).values_list("date", flat=True)),
            set(self.first.window.dates()),
        )

    def test_release_round_trip_reopens_days(self) -> None:
        dates = self.first.window.dates()
        self.store.lock_days(self.property.pk, dates, self.first.pk)

        released = self.store.release_days(self.property.pk, dates)

        self.assertEqual(released, 3)
        self.assertEqual(self.store.unavailable_dates([self.property.pk], self.start, self.start + timedelta(days=3)), {})
        self.assertTrue(self.store.lock_days(self.property.pk, dates, self.second.pk))
        # Rows are kept, only their status changes
        self.assertEqual(CalendarDay.objects.filter(property=self.property).count(), 3)

    def test_release_scoped_to_reservation_keeps_other_bookings(self) -> None:
        self.store.lock_days(self.property.pk, [self.start], self.first.pk)
        self.store.lock_days(self.property.pk, [self.start + timedelta(days=1)], self.second.pk)

        released = self.store.release_days(
            self.property.pk, [self.start, self.start + timedelta(days=1)], reservation_id=self.first.pk,
        )

        self.assertEqual(released, 1)
        self.assertEqual(self._status(self.start + timedelta(days=1)), CalendarDay.Status.BOOKED)

    def test_blocking_fails_over_booked_day(self) -> None:
        self.store.lock_days(self.property.pk, [self.start], self.first.pk)

        self.assertFalse(
            self.store.block_days(self.property.pk, [self.start, self.start + timedelta(days=1)])
        )
        self.assertEqual(self._status(self.start + timedelta(days=1)), CalendarDay.Status.AVAILABLE)

        self.assertTrue(self.store.block_days(self.property.pk, [self.start + timedelta(days=1)], note="Owner stay"))
        self.assertEqual(self._status(self.start + timedelta(days=1)), CalendarDay.Status.BLOCKED)
        self.assertFalse(self.store.lock_days(self.property.pk, [self.start + timedelta(days=1)], self.second.pk))

        self.assertEqual(self.store.unblock_days(self.property.pk, [self.start + timedelta(days=1)]), 1)
        self.assertEqual(self._status(self.start + timedelta(days=1)), CalendarDay.Status.AVAILABLE)

    def test_overrides_are_read_back(self) -> None:
        self.store.set_overrides(self.property.pk, [self.start], price=900, min_nights=3)

        self.assertEqual(
            self.store.price_overrides(self.property.pk, self.start, self.start + timedelta(days=2)),
            {self.start: 900},
        )
        self.assertEqual(
            self.store.price_overrides_for([self.property.pk], self.start, self.start + timedelta(days=2)),
            {self.property.pk: {self.start: 900}},
        )
        self.assertEqual(self.store.get_days(self.property.pk, self.start, self.start + timedelta(days=1))[0].min_nights, 3)

    def test_unavailable_dates_for_many_properties(self) -> None:
        other = make_property(tenant=self.property.tenant, name="Garden Studio")
        self.store.lock_days(self.property.pk, [self.start], self.first.pk)
        self.store.block_days(other.pk, [self.start + timedelta(days=1)])

        result = self.store.unavailable_dates(
            [self.property.pk, other.pk], self.start, self.start + timedelta(days=3),
        )

        self.assertEqual(result, {self.property.pk: {self.start}, other.pk: {self.start + timedelta(days=1)}})

    def test_empty_date_list_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.store.lock_days(self.property.pk, [], self.first.pk)


class ConcurrentLockTests(TransactionTestCase):
    """Several connections locking at the same moment, one thread each."""

    def _race(self, prop, reservations):
        barrier = threading.Barrier(len(reservations))
        outcomes = {}

        def attempt(reservation):
            try:
                barrier.wait()
                outcomes[reservation.pk] = CalendarStore().lock_days(
                    prop.pk, reservation.window.dates(), reservation.pk,
                )
            finally:
                connections.close_all()

        threads = [threading.Thread(target=attempt, args=(reservation,)) for reservation in reservations]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(len(outcomes), len(reservations))
        return outcomes

    def test_exactly_one_overlapping_lock_wins(self) -> None:
        prop = make_property()
        start = next_weekday(0)
        contenders = [
            make_reservation(prop, start, start + timedelta(days=3), email=f"guest{index}@example.com", lock=False)
            for index in range(4)
        ]

        outcomes = self._race(prop, contenders)

        winners = [pk for pk, won in outcomes.items() if won]
        self.assertEqual(len(winners), 1)
        booked = CalendarDay.objects.filter(property=prop, status=CalendarDay.Status.BOOKED)
        self.assertEqual(booked.count(), 3)
        self.assertEqual(set(booked.values_list("reservation_id", flat=True)), set(winners))

    def test_disjoint_windows_lock_concurrently(self) -> None:
        prop = make_property()
        start = next_weekday(0)
        stays = [
            make_reservation(
                prop,
                start + timedelta(days=2 * index),
                start + timedelta(days=2 * index + 2),
                email=f"guest{index}@example.com",
                lock=False,
            )
            for index in range(3)
        ]

        outcomes = self._race(prop, stays)

        self.assertTrue(all(outcomes.values()))
        for stay in stays:
            self.assertEqual(
                sorted(CalendarDay.objects.filter(reservation=stay).values_list("date", flat=True)),
                stay.window.dates(),
            )
