"""
Reservation Command Handlers

These are the reservation use cases. Each handler runs inside one
DjangoUnitOfWork: state changes and the event log commit or roll back
together, and events reach the message bus only after commit.

Commands:
- CreateReservationCommand: Convert an open quote into a pending reservation
- ConfirmReservationCommand: Record payment (PENDING -> CONFIRMED)
- CancelReservationCommand: Cancel and release the calendar days
- CompleteReservationCommand: Close a finished stay (CONFIRMED -> COMPLETED)
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID
import logging
import secrets

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from apps.bookings.domain.entities import ReservationSource, ReservationStatus, can_transition
from apps.bookings.domain.events import (
    ReservationCancelled,
    ReservationCompleted,
    ReservationConfirmed,
    ReservationCreated,
)
from apps.bookings.exceptions import (
    InvalidStateTransition,
    NotFound,
    QuoteAlreadyConverted,
    QuoteExpired,
    Unavailable,
)
from apps.bookings.models import EventLog, Guest, Quote, Reservation
from apps.properties.calendar import CalendarStore

logger = logging.getLogger(__name__)

CONFIRMATION_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
CONFIRMATION_CODE_LENGTH = 8
CONFIRMATION_CODE_ATTEMPTS = 5


def generate_confirmation_code() -> str:
    """STAY-XXXXXXXX without look-alike characters (0/O, 1/I)"""
    suffix = ''.join(
        secrets.choice(CONFIRMATION_CODE_ALPHABET) for _ in range(CONFIRMATION_CODE_LENGTH)
    )
    return f"{settings.CONFIRMATION_CODE_PREFIX}-{suffix}"


def unit_of_work() -> DjangoUnitOfWork:
    return DjangoUnitOfWork(outbox=EventLog.objects.record_many)


# ===== Commands =====

@dataclass
class GuestInfo:
    email: str
    first_name: str = ''
    last_name: str = ''
    phone: str = ''


@dataclass
class CreateReservationCommand:
    """
    Command to convert a quote into a reservation

    The reservation copies the quote's frozen pricing; nothing is
    recalculated.
    """
    quote_id: UUID
    guest: GuestInfo
    special_requests: str = ''
    source: ReservationSource = ReservationSource.DIRECT


@dataclass
class ConfirmReservationCommand:
    """Command to confirm a reservation after successful payment"""
    reservation_id: UUID
    payment_reference: str


@dataclass
class CancelReservationCommand:
    reservation_id: UUID
    reason: str = ''


@dataclass
class CompleteReservationCommand:
    reservation_id: UUID


@dataclass
class CancellationResult:
    reservation: Reservation
    refund_amount: int
    released_days: int


# ===== Helpers =====

def load_reservation_for_update(reservation_id) -> Reservation:
    reservation = (
        Reservation.objects.select_for_update()
        .filter(pk=reservation_id)
        .first()
    )
    if reservation is None:
        raise NotFound(f"Reservation {reservation_id} not found.")
    return reservation


def ensure_transition(reservation: Reservation, target: ReservationStatus) -> None:
    if not can_transition(reservation.status, target):
        raise InvalidStateTransition(
            f"Reservation {reservation.confirmation_code} cannot go from "
            f"{reservation.status} to {target.value}.",
            current=reservation.status,
            target=target.value,
        )


# ===== Command Handlers =====

class CreateReservationHandler:
    """
    Handler for CreateReservation command

    Double booking prevention:
    1. Lock the quote row (SELECT FOR UPDATE) so a quote converts once
    2. Resolve or create the guest by (tenant, email)
    3. Insert the pending reservation with a unique confirmation code
    4. Lock the stay's calendar days with one conditional update; a
       conflict aborts the whole unit of work as Unavailable
    5. Mark the quote converted and record reservation.created
    """

    def __init__(self, calendar: Optional[CalendarStore] = None):
        self.calendar = calendar or CalendarStore()

    def handle(self, command: CreateReservationCommand) -> Reservation:
        logger.info(f"Creating reservation from quote {command.quote_id}")

        with unit_of_work() as uow:
            quote = (
                Quote.objects.select_for_update(of=('self',))
                .select_related('property__tenant')
                .filter(pk=command.quote_id)
                .first()
            )
            if quote is None:
                raise NotFound(f"Quote {command.quote_id} not found.")
            if quote.status == Quote.Status.CONVERTED:
                raise QuoteAlreadyConverted(f"Quote {quote.pk} has already been converted.")
            if quote.is_expired():
                raise QuoteExpired(f"Quote {quote.pk} expired at {quote.expires_at.isoformat()}.")

            prop = quote.property
            if not prop.is_bookable:
                raise NotFound(f"Property {prop.pk} not found.")

            guest = self._resolve_guest(prop.tenant, command.guest)

            reservation = Reservation(
                tenant=prop.tenant,
                property=prop,
                guest=guest,
                quote=quote,
                source=ReservationSource(command.source).value,
                check_in=quote.check_in,
                check_out=quote.check_out,
                adults=quote.adults,
                children=quote.children,
                special_requests=command.special_requests,
                status=Reservation.Status.PENDING,
            )
            reservation.apply_breakdown(quote.breakdown)
            self._insert_with_unique_code(reservation)

            if not self.calendar.lock_days(prop.pk, reservation.window.dates(), reservation.pk):
                # Booked since the quote was issued; same answer as a known conflict
                raise Unavailable("Selected dates are not available.")

            quote.status = Quote.Status.CONVERTED
            quote.converted_reservation = reservation
            quote.save(update_fields=['status', 'converted_reservation'])

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

        logger.info(
            f"Reservation created successfully: {reservation.confirmation_code} "
            f"(ID: {reservation.pk})"
        )
        return reservation

    @staticmethod
    def _resolve_guest(tenant, info: GuestInfo) -> Guest:
        guest, created = Guest.objects.get_or_create(
            tenant=tenant,
            email=info.email.strip().lower(),
            defaults={
                'first_name': info.first_name,
                'last_name': info.last_name,
                'phone': info.phone,
            },
        )
        if created:
            logger.info(f"Created guest {guest.pk} for tenant {tenant.pk}")
        return guest

    @staticmethod
    def _insert_with_unique_code(reservation: Reservation) -> None:
        """Regenerate the confirmation code on the rare unique violation"""
        for attempt in range(1, CONFIRMATION_CODE_ATTEMPTS + 1):
            code = generate_confirmation_code()
            reservation.confirmation_code = code
            try:
                with transaction.atomic():
                    reservation.save(force_insert=True)
                return
            except IntegrityError:
                taken = Reservation.objects.filter(confirmation_code=code).exists()
                if not taken or attempt == CONFIRMATION_CODE_ATTEMPTS:
                    raise
                logger.warning(f"Confirmation code collision on {code}, regenerating (attempt {attempt})")


class ConfirmReservationHandler:
    """Handler for confirming a reservation after payment"""

    def handle(self, command: ConfirmReservationCommand) -> Reservation:
        logger.info(
            f"Confirming reservation {command.reservation_id} "
            f"with payment {command.payment_reference}"
        )

        with unit_of_work() as uow:
            reservation = load_reservation_for_update(command.reservation_id)
            ensure_transition(reservation, ReservationStatus.CONFIRMED)

            # Calendar days were locked at creation
            reservation.status = Reservation.Status.CONFIRMED
            reservation.payment_status = Reservation.PaymentStatus.PAID
            reservation.amount_paid = reservation.grand_total
            reservation.payment_reference = command.payment_reference
            reservation.confirmed_at = timezone.now()
            reservation.save(update_fields=[
                'status',
                'payment_status',
                'amount_paid',
                'payment_reference',
                'confirmed_at',
                'updated_at',
            ])

            self._record_stay(reservation)

            uow.add_event(ReservationConfirmed(
                aggregate_id=reservation.pk,
                tenant_id=reservation.tenant_id,
                reservation_id=reservation.pk,
                property_id=reservation.property_id,
                source=reservation.source,
                amount_paid=reservation.amount_paid,
                payment_reference=reservation.payment_reference,
            ))

        logger.info(f"Reservation {reservation.confirmation_code} confirmed successfully")
        return reservation

    @staticmethod
    def _record_stay(reservation: Reservation) -> None:
        guest = Guest.objects.select_for_update().get(pk=reservation.guest_id)
        guest.total_stays += 1
        guest.total_spent += reservation.grand_total
        if guest.last_stay_at is None or reservation.check_in > guest.last_stay_at:
            guest.last_stay_at = reservation.check_in
        guest.save(update_fields=['total_stays', 'total_spent', 'last_stay_at', 'updated_at'])


class CancelReservationHandler:
    """Handler for cancelling a reservation"""

    def __init__(self, calendar: Optional[CalendarStore] = None):
        self.calendar = calendar or CalendarStore()

    def handle(self, command: CancelReservationCommand) -> CancellationResult:
        """Cancel reservation and release its calendar days"""
        logger.info(f"Cancelling reservation {command.reservation_id}, reason: {command.reason}")

        with unit_of_work() as uow:
            reservation = load_reservation_for_update(command.reservation_id)
            if reservation.status == Reservation.Status.CANCELLED:
                raise InvalidStateTransition(
                    f"Reservation {reservation.confirmation_code} is already cancelled.",
                    current=reservation.status,
                    target=ReservationStatus.CANCELLED.value,
                )
            ensure_transition(reservation, ReservationStatus.CANCELLED)

            previous_status = reservation.status
            released = self.calendar.release_days(
                reservation.property_id,
                reservation.window.dates(),
                reservation_id=reservation.pk,
            )

            # Refund execution belongs to the payment provider
            refund_amount = reservation.amount_paid
            if refund_amount:
                reservation.payment_status = Reservation.PaymentStatus.REFUND_PENDING

            reservation.status = Reservation.Status.CANCELLED
            reservation.cancellation_reason = command.reason
            reservation.cancelled_at = timezone.now()
            reservation.save(update_fields=[
                'status',
                'payment_status',
                'cancellation_reason',
                'cancelled_at',
                'updated_at',
            ])

            uow.add_event(ReservationCancelled(
                aggregate_id=reservation.pk,
                tenant_id=reservation.tenant_id,
                reservation_id=reservation.pk,
                property_id=reservation.property_id,
                previous_status=previous_status,
                source=reservation.source,
                external_reference=reservation.external_reference,
                reason=command.reason,
                refund_amount=refund_amount,
                released_days=released,
            ))

        logger.info(
            f"Reservation {reservation.confirmation_code} cancelled successfully, "
            f"{released} day(s) released"
        )
        return CancellationResult(reservation, refund_amount, released)


class CompleteReservationHandler:
    """Handler for completing a reservation after check-out"""

    def handle(self, command: CompleteReservationCommand) -> Reservation:
        with unit_of_work() as uow:
            reservation = load_reservation_for_update(command.reservation_id)
            ensure_transition(reservation, ReservationStatus.COMPLETED)

            reservation.status = Reservation.Status.COMPLETED
            reservation.completed_at = timezone.now()
            reservation.save(update_fields=['status', 'completed_at', 'updated_at'])

            uow.add_event(ReservationCompleted(
                aggregate_id=reservation.pk,
                tenant_id=reservation.tenant_id,
                reservation_id=reservation.pk,
                property_id=reservation.property_id,
            ))

        logger.info(f"Reservation {reservation.confirmation_code} completed")
        return reservation


class ReservationService:
    """Entry point used by the API and the periodic tasks"""

    def __init__(self, calendar: Optional[CalendarStore] = None):
        calendar = calendar or CalendarStore()
        self._create = CreateReservationHandler(calendar)
        self._confirm = ConfirmReservationHandler()
        self._cancel = CancelReservationHandler(calendar)
        self._complete = CompleteReservationHandler()

    def create(self, quote_id, guest: GuestInfo, special_requests: str = '',
               source: ReservationSource = ReservationSource.DIRECT) -> Reservation:
        return self._create.handle(CreateReservationCommand(quote_id, guest, special_requests, source))

    def confirm(self, reservation_id, payment_reference: str) -> Reservation:
        return self._confirm.handle(ConfirmReservationCommand(reservation_id, payment_reference))

    def cancel(self, reservation_id, reason: str = '') -> CancellationResult:
        return self._cancel.handle(CancelReservationCommand(reservation_id, reason))

    def complete(self, reservation_id) -> Reservation:
        return self._complete.handle(CompleteReservationCommand(reservation_id))

    @staticmethod
    def get(reservation_id) -> Reservation:
        reservation = (
            Reservation.objects.select_related('property', 'guest')
            .filter(pk=reservation_id)
            .first()
        )
        if reservation is None:
            raise NotFound(f"Reservation {reservation_id} not found.")
        return reservation
