"""
Channel reservation sync

Applies PMS webhook events to local reservations so bookings taken on
Airbnb, Booking.com, Vrbo or in the PMS itself hold our calendar too:

- reservation.new: confirmed channel reservation, days locked for it
- reservation.updated: dates moved (days released and locked again),
  an unknown reservation is created as new
- reservation.canceled: reservation cancelled, days released

A reservation is matched by its PMS id (``external_reference``) or by the
confirmation code we pushed. Each event runs in one unit of work; a
calendar conflict rolls the whole event back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from django.conf import settings  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.application.command_handlers import (
    CreateReservationHandler,
    GuestInfo,
    ensure_transition,
    unit_of_work,
)
from apps.bookings.domain.entities import ReservationSource, ReservationStatus
from apps.bookings.domain.events import (
    ReservationCancelled,
    ReservationCreated,
    ReservationRescheduled,
)
from apps.bookings.domain.pricing import NightlyRate, PricingBreakdown
from apps.bookings.exceptions import InvalidDates, Unavailable
from apps.bookings.models import Quote, Reservation
from apps.properties.calendar import CalendarStore
from apps.properties.models import Property
from shared.domain.value_objects import DateRange, round_half_up

logger = logging.getLogger(__name__)

RESERVATION_NEW = "reservation.new"
RESERVATION_UPDATED = "reservation.updated"
RESERVATION_CANCELED = "reservation.canceled"
RESERVATION_EVENTS = (RESERVATION_NEW, RESERVATION_UPDATED, RESERVATION_CANCELED)

CHANNEL_SOURCES = {
    "airbnb": ReservationSource.AIRBNB,
    "airbnb2": ReservationSource.AIRBNB,
    "booking_com": ReservationSource.BOOKING_COM,
    "bookingcom": ReservationSource.BOOKING_COM,
    "booking.com": ReservationSource.BOOKING_COM,
    "vrbo": ReservationSource.VRBO,
    "homeaway": ReservationSource.VRBO,
}


def channel_source(value: str) -> ReservationSource:
    """Known OTA channels map to their own source, anything else is the PMS."""
    return CHANNEL_SOURCES.get((value or "").strip().lower(), ReservationSource.PMS)


def channel_breakdown(window: DateRange, total: int, currency: str) -> PricingBreakdown:
    """The channel's total spread over the nights; the remainder goes on the last night."""
    nights = list(window.nights())
    base, remainder = divmod(total, len(nights))
    rates = tuple(
        NightlyRate(night, base + (remainder if index == len(nights) - 1 else 0), "Channel rate")
        for index, night in enumerate(nights)
    )
    return PricingBreakdown(
        currency=currency,
        nightly_rates=rates,
        accommodation_total=total,
        cleaning_fee=0,
        service_fee=0,
        taxable_amount=total,
        grand_total=total,
    )


@dataclass
class ChannelReservation:
    """Reservation fields of a webhook ``data`` object."""

    external_id: str
    listing_id: str
    check_in: date
    check_out: date
    guest_name: str = ""
    guest_email: str = ""
    guest_phone: str = ""
    guest_count: int = 1
    total_price: Decimal = Decimal(0)
    currency: str = ""
    source: str = ""
    notes: str = ""
    confirmation_code: str = ""

    @property
    def window(self) -> DateRange:
        if self.check_in >= self.check_out:
            raise InvalidDates("Check-out must be after check-in.")
        return DateRange(self.check_in, self.check_out)

    def guest_info(self) -> GuestInfo:
        first_name, _, last_name = (self.guest_name or "Guest").strip().partition(" ")
        return GuestInfo(
            email=self.guest_email or f"pms-{self.external_id}@guests.invalid",
            first_name=first_name or "Guest",
            last_name=last_name.strip(),
            phone=self.guest_phone,
        )

    def total_minor_units(self) -> int:
        """PMS amounts are major units."""
        return round_half_up(Decimal(self.total_price) * settings.PMS_AMOUNT_SCALE)


@dataclass
class SyncOutcome:
    processed: bool
    action: str
    reservation: Optional[Reservation] = None
    reason: str = ""

    def to_dict(self) -> dict:
        data = {"received": True, "processed": self.processed, "action": self.action}
        if self.reservation is not None:
            data["reservation_id"] = str(self.reservation.pk)
            data["confirmation_code"] = self.reservation.confirmation_code
        if self.reason:
            data["reason"] = self.reason
        return data


class ChannelReservationSync:
    def __init__(self, calendar: Optional[CalendarStore] = None):
        self.calendar = calendar or CalendarStore()

    def apply(self, event: str, data: ChannelReservation) -> SyncOutcome:
        """
        Raises:
            InvalidDates, Unavailable, InvalidStateTransition
        """
        if event not in RESERVATION_EVENTS:
            logger.info(f"PMS webhook {event} ignored")
            return SyncOutcome(False, "ignored", reason=f"Event {event} is not handled.")

        prop = Property.objects.select_related("tenant").filter(external_id=data.listing_id).first()
        if prop is None:
            logger.warning(f"PMS webhook {event}: no property mapped for listing {data.listing_id}")
            return SyncOutcome(False, "ignored", reason="Property not mapped.")

        with unit_of_work() as uow:
            reservation = self._find(prop, data)
            if event == RESERVATION_CANCELED:
                outcome = self._cancel(uow, reservation, data)
            elif reservation is None:
                outcome = self._create(uow, prop, data)
            elif event == RESERVATION_UPDATED:
                outcome = self._reschedule(uow, reservation, data)
            else:
                outcome = SyncOutcome(True, "duplicate", reservation)

        logger.info(
            f"PMS webhook {event} for {data.external_id} on property {prop.pk}: {outcome.action}"
        )
        return outcome

    @staticmethod
    def _find(prop: Property, data: ChannelReservation) -> Optional[Reservation]:
        match = Q(external_reference=data.external_id)
        if data.confirmation_code:
            match |= Q(confirmation_code=data.confirmation_code)
        return Reservation.objects.select_for_update().filter(match, property=prop).first()

    def _create(self, uow, prop: Property, data: ChannelReservation) -> SyncOutcome:
        window = data.window
        breakdown = channel_breakdown(window, data.total_minor_units(), data.currency or prop.currency)
        now = timezone.now()

        quote = Quote(
            property=prop,
            check_in=window.start_date,
            check_out=window.end_date,
            adults=max(data.guest_count, 1),
            pricing_source=Quote.PricingSource.EXTERNAL,
            status=Quote.Status.CONVERTED,
            expires_at=now,
        )
        quote.apply_breakdown(breakdown)
        quote.save()

        reservation = Reservation(
            tenant=prop.tenant,
            property=prop,
            guest=CreateReservationHandler._resolve_guest(prop.tenant, data.guest_info()),
            quote=quote,
            source=channel_source(data.source).value,
            check_in=window.start_date,
            check_out=window.end_date,
            adults=quote.adults,
            status=Reservation.Status.CONFIRMED,
            # The channel collected the payment
            payment_status=Reservation.PaymentStatus.PAID,
            amount_paid=breakdown.grand_total,
            special_requests=data.notes,
            external_reference=data.external_id,
            confirmed_at=now,
        )
        reservation.apply_breakdown(breakdown)
        CreateReservationHandler._insert_with_unique_code(reservation)

        if not self.calendar.lock_days(prop.pk, window.dates(), reservation.pk):
            logger.error(f"PMS reservation {data.external_id} overlaps booked days on property {prop.pk}")
            raise Unavailable("Selected dates are not available.", external_reference=data.external_id)

        quote.converted_reservation = reservation
        quote.save(update_fields=["converted_reservation"])

        uow.add_event(ReservationCreated(
            aggregate_id=reservation.pk,
            tenant_id=prop.tenant_id,
            reservation_id=reservation.pk,
            property_id=prop.pk,
            quote_id=quote.pk,
            confirmation_code=reservation.confirmation_code,
            check_in=reservation.check_in,
            check_out=reservation.check_out,
            grand_total=reservation.grand_total,
            currency=reservation.currency,
        ))
        return SyncOutcome(True, "created", reservation)

    def _reschedule(self, uow, reservation: Reservation, data: ChannelReservation) -> SyncOutcome:
        window = data.window
        if window == reservation.window:
            return SyncOutcome(True, "unchanged", reservation)
        if not reservation.holds_calendar:
            return SyncOutcome(False, "ignored", reservation, f"Reservation is {reservation.status}.")

        previous = reservation.window
        self.calendar.release_days(reservation.property_id, previous.dates(), reservation_id=reservation.pk)
        if not self.calendar.lock_days(reservation.property_id, window.dates(), reservation.pk):
            logger.error(
                f"PMS moved {reservation.confirmation_code} onto booked days {window}, keeping {previous}"
            )
            raise Unavailable("Selected dates are not available.", external_reference=data.external_id)

        reservation.check_in = window.start_date
        reservation.check_out = window.end_date
        reservation.adults = max(data.guest_count, 1)
        update_fields = ["check_in", "check_out", "adults", "updated_at"]
        if not ReservationSource(reservation.source).is_direct:
            # Direct bookings keep the price they were sold at
            breakdown = channel_breakdown(window, data.total_minor_units(), reservation.currency)
            reservation.apply_breakdown(breakdown)
            reservation.amount_paid = breakdown.grand_total
            update_fields += [
                "nightly_rates", "accommodation_total", "taxable_amount", "grand_total", "amount_paid",
            ]
        reservation.save(update_fields=update_fields)

        uow.add_event(ReservationRescheduled(
            aggregate_id=reservation.pk,
            tenant_id=reservation.tenant_id,
            reservation_id=reservation.pk,
            property_id=reservation.property_id,
            previous_check_in=previous.start_date,
            previous_check_out=previous.end_date,
            check_in=window.start_date,
            check_out=window.end_date,
        ))
        return SyncOutcome(True, "rescheduled", reservation)

    def _cancel(self, uow, reservation: Optional[Reservation], data: ChannelReservation) -> SyncOutcome:
        if reservation is None:
            logger.warning(f"PMS cancelled unknown reservation {data.external_id}")
            return SyncOutcome(False, "ignored", reason="Reservation not found.")
        if reservation.status == Reservation.Status.CANCELLED:
            return SyncOutcome(True, "unchanged", reservation)
        ensure_transition(reservation, ReservationStatus.CANCELLED)

        previous_status = reservation.status
        released = self.calendar.release_days(
            reservation.property_id, reservation.window.dates(), reservation_id=reservation.pk,
        )
        refund_amount = 0
        if ReservationSource(reservation.source).is_direct and reservation.amount_paid:
            refund_amount = reservation.amount_paid
            reservation.payment_status = Reservation.PaymentStatus.REFUND_PENDING

        reservation.status = Reservation.Status.CANCELLED
        reservation.cancellation_reason = "Cancelled in PMS"
        reservation.cancelled_at = timezone.now()
        reservation.save(update_fields=[
            "status", "payment_status", "cancellation_reason", "cancelled_at", "updated_at",
        ])

        uow.add_event(ReservationCancelled(
            aggregate_id=reservation.pk,
            tenant_id=reservation.tenant_id,
            reservation_id=reservation.pk,
            property_id=reservation.property_id,
            previous_status=previous_status,
            source=reservation.source,
            external_reference=reservation.external_reference,
            cancelled_in_pms=True,
            reason=reservation.cancellation_reason,
            refund_amount=refund_amount,
            released_days=released,
        ))
        return SyncOutcome(True, "cancelled", reservation)
