"""
Booking Domain Events

Events that represent things that have happened to a reservation.
They are written to the event log inside the producing transaction and
published to the message bus after it commits.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class ReservationCreated(DomainEvent):
    """
    Event: A quote was converted into a pending reservation

    The calendar days of the stay are now booked for this reservation.
    """
    event_type = "reservation.created"

    reservation_id: UUID
    property_id: int
    quote_id: UUID
    confirmation_code: str
    check_in: date
    check_out: date
    grand_total: int
    currency: str

    def payload(self) -> dict:
        return {
            'reservation_id': str(self.reservation_id),
            'property_id': self.property_id,
            'quote_id': str(self.quote_id),
            'confirmation_code': self.confirmation_code,
            'check_in': self.check_in.isoformat(),
            'check_out': self.check_out.isoformat(),
            'grand_total': self.grand_total,
            'currency': self.currency,
        }


@dataclass(kw_only=True)
class ReservationConfirmed(DomainEvent):
    """
    Event: Payment recorded (PENDING -> CONFIRMED)

    Triggers:
    - Push the reservation to the PMS for externally managed properties
    """
    event_type = "reservation.confirmed"

    reservation_id: UUID
    property_id: int
    source: str
    amount_paid: int
    payment_reference: str = ''

    def payload(self) -> dict:
        return {
            'reservation_id': str(self.reservation_id),
            'property_id': self.property_id,
            'source': self.source,
            'amount_paid': self.amount_paid,
            'payment_reference': self.payment_reference,
        }


@dataclass(kw_only=True)
class ReservationCancelled(DomainEvent):
    """
    Event: Reservation cancelled and its calendar days released

    Triggers:
    - Cancel the PMS copy of a direct reservation that was pushed there
    """
    event_type = "reservation.cancelled"

    reservation_id: UUID
    property_id: int
    previous_status: str
    source: str = 'direct'
    external_reference: str = ''
    cancelled_in_pms: bool = False
    reason: str = ''
    refund_amount: int = 0
    released_days: int = 0

    def payload(self) -> dict:
        return {
            'reservation_id': str(self.reservation_id),
            'property_id': self.property_id,
            'previous_status': self.previous_status,
            'source': self.source,
            'external_reference': self.external_reference,
            'cancelled_in_pms': self.cancelled_in_pms,
            'reason': self.reason,
            'refund_amount': self.refund_amount,
            'released_days': self.released_days,
        }


@dataclass(kw_only=True)
class ReservationRescheduled(DomainEvent):
    """Event: The PMS moved a reservation; its calendar days moved with it"""
    event_type = "reservation.rescheduled"

    reservation_id: UUID
    property_id: int
    previous_check_in: date
    previous_check_out: date
    check_in: date
    check_out: date

    def payload(self) -> dict:
        return {
            'reservation_id': str(self.reservation_id),
            'property_id': self.property_id,
            'previous_check_in': self.previous_check_in.isoformat(),
            'previous_check_out': self.previous_check_out.isoformat(),
            'check_in': self.check_in.isoformat(),
            'check_out': self.check_out.isoformat(),
        }


@dataclass(kw_only=True)
class ReservationCompleted(DomainEvent):
    """Event: The stay is over (CONFIRMED -> COMPLETED)"""
    event_type = "reservation.completed"

    reservation_id: UUID
    property_id: int

    def payload(self) -> dict:
        return {
            'reservation_id': str(self.reservation_id),
            'property_id': self.property_id,
        }
