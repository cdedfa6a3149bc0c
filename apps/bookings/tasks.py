"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from .exceptions import BookingError
from .models import Quote, Reservation

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (scheduled by Celery Beat, see config/celery.py)
# ============================================================================

@shared_task(name="bookings.expire_stale_quotes")
def expire_stale_quotes() -> dict[str, int]:
    """
    Mark open quotes past their expiry as expired.

    Expired quotes are already unusable; this keeps their status honest
    for reporting.

    Returns:
        dict: {"expired": number of quotes}
    """
    expired = Quote.objects.filter(
        status=Quote.Status.OPEN,
        expires_at__lte=timezone.now(),
    ).update(status=Quote.Status.EXPIRED)

    if expired:
        logger.info(f"Expired {expired} stale quotes")
    return {"expired": expired}


@shared_task(name="bookings.complete_finished_reservations")
def complete_finished_reservations() -> dict[str, int]:
    """
    Complete confirmed reservations whose check-out date has passed.

    Each reservation goes through the reservation service, so it gets its
    own transaction and its reservation.completed event.

    Returns:
        dict: {"completed": number of reservations}
    """
    from .dependencies import build_reservation_service

    service = build_reservation_service()
    today = timezone.localdate()
    completed = 0

    reservation_ids = Reservation.objects.filter(
        status=Reservation.Status.CONFIRMED,
        check_out__lt=today,
    ).values_list("pk", flat=True)

    for reservation_id in list(reservation_ids):
        try:
            service.complete(reservation_id)
            completed += 1
        except BookingError as e:
            # Cancelled or completed concurrently
            logger.warning(f"Skipping reservation {reservation_id}: {e}")

    if completed:
        logger.info(f"Completed {completed} finished reservations")
    return {"completed": completed}
