"""Message bus handlers of the PMS integration."""

from __future__ import annotations

import logging

from apps.bookings.domain.entities import ReservationSource
from apps.bookings.domain.events import ReservationCancelled, ReservationConfirmed

from .tasks import cancel_reservation, push_reservation

logger = logging.getLogger(__name__)


def push_confirmed_reservation(event: ReservationConfirmed) -> None:
    """Queue the PMS push for direct reservations; channel bookings came from there."""
    if not ReservationSource(event.source).is_direct:
        return
    push_reservation.delay(str(event.reservation_id))


def cancel_pushed_reservation(event: ReservationCancelled) -> None:
    """Queue the PMS cancellation of a direct reservation.

    The task reads ``external_reference`` itself, a push may still be in
    flight when the cancellation commits.
    """
    if event.cancelled_in_pms or not ReservationSource(event.source).is_direct:
        return
    cancel_reservation.delay(str(event.reservation_id))
