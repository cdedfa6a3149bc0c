"""Tests for the periodic booking tasks."""

from __future__ import annotations

from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.bookings.models import Quote, Reservation
from apps.bookings.tasks import complete_finished_reservations, expire_stale_quotes
from apps.bookings.testing import make_property, make_quote, make_reservation, next_weekday


class ExpireStaleQuotesTests(TestCase):
    def test_only_open_expired_quotes_are_marked(self) -> None:
        prop = make_property()
        check_in = next_weekday(1)
        check_out = check_in + timedelta(days=2)
        past = timezone.now() - timedelta(hours=1)
        stale = make_quote(prop, check_in, check_out, expires_at=past)
        fresh = make_quote(prop, check_in, check_out)
        converted = make_quote(prop, check_in, check_out, expires_at=past, status=Quote.Status.CONVERTED)

        result = expire_stale_quotes()

        self.assertEqual(result, {"expired": 1})
        statuses = dict(Quote.objects.values_list("pk", "status"))
        self.assertEqual(statuses[stale.pk], Quote.Status.EXPIRED)
        self.assertEqual(statuses[fresh.pk], Quote.Status.OPEN)
        self.assertEqual(statuses[converted.pk], Quote.Status.CONVERTED)


class CompleteFinishedReservationsTests(TestCase):
    def test_confirmed_past_stays_are_completed(self) -> None:
        prop = make_property()
        today = timezone.localdate()
        finished = make_reservation(
            prop, today - timedelta(days=5), today - timedelta(days=2), status=Reservation.Status.CONFIRMED,
        )
        checking_out = make_reservation(
            prop, today - timedelta(days=2), today, status=Reservation.Status.CONFIRMED, email="b@example.com",
        )
        pending = make_reservation(
            prop, today - timedelta(days=12), today - timedelta(days=10), email="c@example.com",
        )

        result = complete_finished_reservations()

        self.assertEqual(result, {"completed": 1})
        statuses = dict(Reservation.objects.values_list("pk", "status"))
        self.assertEqual(statuses[finished.pk], Reservation.Status.COMPLETED)
        self.assertEqual(statuses[checking_out.pk], Reservation.Status.CONFIRMED)
        self.assertEqual(statuses[pending.pk], Reservation.Status.PENDING)

    def test_nothing_to_do(self) -> None:
        self.assertEqual(complete_finished_reservations(), {"completed": 0})
