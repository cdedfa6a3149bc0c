"""
Booking Domain Entities

Small domain types shared by the booking use cases:
- GuestCount: adults/children of a stay
- Reservation status finite state machine
- Reservation sources (closed set of booking channels)
"""

from dataclasses import dataclass
from enum import Enum

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class GuestCount(ValueObject):
    """Guests of a stay; at least one adult."""
    adults: int = 1
    children: int = 0

    def __post_init__(self):
        if self.adults < 1:
            raise ValueError("At least one adult is required")
        if self.children < 0:
            raise ValueError("Children count cannot be negative")

    @property
    def total(self) -> int:
        return self.adults + self.children


class ReservationStatus(str, Enum):
    """
    Reservation Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (payment recorded)
    - PENDING -> CANCELLED
    - CONFIRMED -> COMPLETED (stay finished)
    - CONFIRMED -> CANCELLED
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'


ALLOWED_TRANSITIONS = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED},
    ReservationStatus.CANCELLED: set(),
    ReservationStatus.COMPLETED: set(),
}

# Statuses whose reservation owns its calendar days
HOLDING_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


def can_transition(current: str, target: str) -> bool:
    return ReservationStatus(target) in ALLOWED_TRANSITIONS[ReservationStatus(current)]


class ReservationSource(str, Enum):
    """Channel a reservation came from"""
    DIRECT = 'direct'
    AIRBNB = 'airbnb'
    BOOKING_COM = 'booking_com'
    VRBO = 'vrbo'
    PMS = 'pms'

    @property
    def is_direct(self) -> bool:
        return self is ReservationSource.DIRECT
