"""Integration tests for quote and reservation endpoints."""

from __future__ import annotations

import uuid
from datetime import timedelta

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Quote, Reservation
from apps.bookings.testing import make_property, make_quote, make_reservation, next_weekday


class QuoteAPITests(APITestCase):
    def setUp(self) -> None:
        self.property = make_property(min_nights=2)
        self.check_in = next_weekday(2)
        self.check_out = self.check_in + timedelta(days=3)
        self.url = reverse("quote-list")

    def _payload(self, **kwargs) -> dict:
        payload = {
            "property_id": self.property.pk,
            "check_in": str(self.check_in),
            "check_out": str(self.check_out),
            "adults": 2,
        }
        payload.update(kwargs)
        return payload

    def test_quote_is_created(self) -> None:
        response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], Quote.Status.OPEN)
        self.assertEqual(response.data["nights"], 3)
        pricing = response.data["pricing"]
        self.assertEqual(pricing["grand_total"], 2235)
        self.assertEqual(pricing["currency"], "ILS")
        self.assertEqual([rate["price"] for rate in pricing["nightly_rates"]], [500, 500, 600])

        detail = self.client.get(reverse("quote-detail", args=[response.data["id"]]))
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        self.assertEqual(detail.data["pricing"], pricing)

    def test_rule_violation_is_bad_request(self) -> None:
        response = self.client.post(
            self.url, self._payload(check_out=str(self.check_in + timedelta(days=1))), format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "RULE_VIOLATION")
        self.assertEqual(response.data["error"]["details"], {"min_nights": 2})

    def test_past_dates(self) -> None:
        yesterday = timezone.localdate() - timedelta(days=1)
        response = self.client.post(
            self.url,
            self._payload(check_in=str(yesterday), check_out=str(yesterday + timedelta(days=3))),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "INVALID_DATES")

    def test_malformed_request(self) -> None:
        response = self.client.post(self.url, {"property_id": "abc"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "VALIDATION_ERROR")
        self.assertIn("check_in", response.data["error"]["details"])

    def test_unknown_property(self) -> None:
        response = self.client.post(self.url, self._payload(property_id=self.property.pk + 50), format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"]["code"], "NOT_FOUND")

    def test_booked_dates_conflict(self) -> None:
        make_reservation(self.property, self.check_in, self.check_out)

        response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "UNAVAILABLE")

    def test_unknown_quote(self) -> None:
        response = self.client.get(reverse("quote-detail", args=[uuid.uuid4()]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"]["code"], "NOT_FOUND")


class ReservationAPITests(APITestCase):
    def setUp(self) -> None:
        self.property = make_property()
        self.check_in = next_weekday(2)
        self.check_out = self.check_in + timedelta(days=3)
        self.quote = make_quote(self.property, self.check_in, self.check_out)
        self.url = reverse("reservation-list")

    def _create(self, quote=None, **kwargs):
        payload = {
            "quote_id": str((quote or self.quote).pk),
            "email": "guest@example.com",
            "first_name": "Noa",
        }
        payload.update(kwargs)
        return self.client.post(self.url, payload, format="json")

    def test_full_lifecycle(self) -> None:
        created = self._create(special_requests="Baby cot")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        self.assertEqual(created.data["status"], Reservation.Status.PENDING)
        self.assertRegex(created.data["confirmation_code"], r"^STAY-[A-HJ-NP-Z2-9]{8}$")
        self.assertEqual(created.data["quote_id"], self.quote.pk)
        self.assertEqual(created.data["pricing"]["grand_total"], 2235)
        reservation_id = created.data["id"]

        confirmed = self.client.post(
            reverse("reservation-confirm", args=[reservation_id]),
            {"payment_reference": "pay_987"},
            format="json",
        )
        self.assertEqual(confirmed.status_code, status.HTTP_200_OK)
        self.assertEqual(confirmed.data["status"], Reservation.Status.CONFIRMED)
        self.assertEqual(confirmed.data["amount_paid"], 2235)

        cancelled = self.client.post(
            reverse("reservation-cancel", args=[reservation_id]), {"reason": "Illness"}, format="json",
        )
        self.assertEqual(cancelled.status_code, status.HTTP_200_OK)
        self.assertEqual(cancelled.data["status"], Reservation.Status.CANCELLED)
        self.assertEqual(cancelled.data["refund_amount"], 2235)
        self.assertEqual(cancelled.data["payment_status"], Reservation.PaymentStatus.REFUND_PENDING)

        detail = self.client.get(reverse("reservation-detail", args=[reservation_id]))
        self.assertEqual(detail.data["cancellation_reason"], "Illness")

    def test_source_is_always_direct(self) -> None:
        created = self._create(source="airbnb")

        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        self.assertEqual(created.data["source"], Reservation.Source.DIRECT)
        self.assertEqual(Reservation.objects.get(pk=created.data["id"]).source, Reservation.Source.DIRECT)

    def test_converted_quote_conflicts(self) -> None:
        self._create()

        response = self._create(email="second@example.com")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "QUOTE_ALREADY_CONVERTED")

    def test_expired_quote_is_gone(self) -> None:
        Quote.objects.filter(pk=self.quote.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        response = self._create()

        self.assertEqual(response.status_code, status.HTTP_410_GONE)
        self.assertEqual(response.data["error"]["code"], "QUOTE_EXPIRED")

    def test_unknown_quote(self) -> None:
        response = self._create(quote=Quote(pk=uuid.uuid4()))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_email(self) -> None:
        response = self._create(email="not-an-email")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("email", response.data["error"]["details"])

    def test_invalid_transition_conflicts(self) -> None:
        reservation_id = self._create().data["id"]
        self.client.post(reverse("reservation-cancel", args=[reservation_id]), {}, format="json")

        response = self.client.post(
            reverse("reservation-confirm", args=[reservation_id]), {"payment_reference": "pay_1"}, format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "INVALID_STATE_TRANSITION")
        self.assertEqual(response.data["error"]["details"]["current"], "cancelled")

    def test_confirm_requires_payment_reference(self) -> None:
        reservation_id = self._create().data["id"]

        response = self.client.post(reverse("reservation-confirm", args=[reservation_id]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "VALIDATION_ERROR")
