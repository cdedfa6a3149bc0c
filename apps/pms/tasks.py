"""Celery tasks of the PMS integration."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from apps.bookings.exceptions import ExternalAdapterFailure
from apps.bookings.models import Reservation

from .dependencies import build_pms_client

logger = logging.getLogger(__name__)


def reservation_payload(reservation: Reservation) -> dict:
    guest = reservation.guest
    return {
        "property_id": reservation.property.external_id,
        "confirmation_code": reservation.confirmation_code,
        "check_in": reservation.check_in.isoformat(),
        "check_out": reservation.check_out.isoformat(),
        "guest": {
            "first_name": guest.first_name,
            "last_name": guest.last_name,
            "email": guest.email,
            "phone": guest.phone,
        },
        "adults": reservation.adults,
        "children": reservation.children,
    }


@shared_task(
    name="pms.push_reservation",
    bind=True,
    autoretry_for=(ExternalAdapterFailure,),
    retry_backoff=True,
    max_retries=5,
)
def push_reservation(self, reservation_id: str) -> str:
    """
    Create a confirmed direct reservation in the PMS.

    Stores the PMS reservation id as ``external_reference``. Failures are
    retried by Celery and never touch the reservation's status.
    """
    reservation = (
        Reservation.objects.select_related("property", "guest")
        .filter(pk=reservation_id)
        .first()
    )
    if reservation is None:
        logger.warning(f"PMS push skipped: reservation {reservation_id} not found")
        return ""
    if not reservation.property.is_externally_managed or reservation.external_reference:
        return reservation.external_reference
    if reservation.status == Reservation.Status.CANCELLED:
        logger.info(f"PMS push skipped for {reservation.confirmation_code}: already cancelled")
        return ""

    client = build_pms_client()
    if client is None:
        logger.info(f"PMS push skipped for {reservation.confirmation_code}: integration disabled")
        return ""

    data = client.create_reservation(reservation_payload(reservation))
    external_reference = str(data.get("id") or "")
    Reservation.objects.filter(pk=reservation.pk).update(external_reference=external_reference)
    logger.info(f"Reservation {reservation.confirmation_code} pushed to PMS as {external_reference}")
    return external_reference


@shared_task(
    name="pms.cancel_reservation",
    bind=True,
    autoretry_for=(ExternalAdapterFailure,),
    retry_backoff=True,
    max_retries=5,
)
def cancel_reservation(self, reservation_id: str) -> bool:
    """
    Cancel the PMS copy of a cancelled direct reservation.

    Nothing to do when the reservation never reached the PMS. Returns True
    once the PMS has been told.
    """
    reservation = Reservation.objects.filter(pk=reservation_id).first()
    if reservation is None:
        logger.warning(f"PMS cancel skipped: reservation {reservation_id} not found")
        return False
    if reservation.status != Reservation.Status.CANCELLED or not reservation.external_reference:
        return False

    client = build_pms_client()
    if client is None:
        logger.info(f"PMS cancel skipped for {reservation.confirmation_code}: integration disabled")
        return False

    client.cancel_reservation(reservation.external_reference)
    logger.info(
        f"Reservation {reservation.confirmation_code} cancelled in PMS "
        f"as {reservation.external_reference}"
    )
    return True
