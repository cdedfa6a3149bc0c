"""Booking domain models: guests, quotes, reservations and the event log."""

from __future__ import annotations

import builtins
import uuid
from typing import Iterable

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import DateRange

from .domain.entities import GuestCount, ReservationSource, ReservationStatus
from .domain.pricing import PricingBreakdown


class Guest(models.Model):
    """Guest of a tenant, identified by e-mail within that tenant."""

    tenant = models.ForeignKey(
        "properties.Tenant",
        on_delete=models.CASCADE,
        related_name="guests",
    )
    email = models.EmailField()
    first_name = models.CharField(max_length=150, blank=True)
    last_name = models.CharField(max_length=150, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    total_stays = models.PositiveIntegerField(default=0)
    total_spent = models.PositiveBigIntegerField(default=0)
    last_stay_at = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Guest")
        verbose_name_plural = _("Guests")
        constraints = [
            models.UniqueConstraint(fields=["tenant", "email"], name="guest_unique_email_per_tenant"),
        ]

    def __str__(self) -> str:
        return self.email

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PricingSnapshot(models.Model):
    """Frozen pricing breakdown columns shared by quotes and reservations."""

    currency = models.CharField(max_length=3)
    nightly_rates = models.JSONField(default=list)
    accommodation_total = models.PositiveIntegerField()
    cleaning_fee = models.PositiveIntegerField(default=0)
    service_fee = models.PositiveIntegerField(default=0)
    discounts = models.JSONField(default=list)
    discount_total = models.PositiveIntegerField(default=0)
    taxable_amount = models.PositiveIntegerField()
    taxes = models.PositiveIntegerField(default=0)
    grand_total = models.PositiveIntegerField()

    class Meta:
        abstract = True

    @property
    def breakdown(self) -> PricingBreakdown:
        return PricingBreakdown.from_dict({
            "currency": self.currency,
            "nightly_rates": self.nightly_rates,
            "accommodation_total": self.accommodation_total,
            "cleaning_fee": self.cleaning_fee,
            "service_fee": self.service_fee,
            "discounts": self.discounts,
            "discount_total": self.discount_total,
            "taxable_amount": self.taxable_amount,
            "taxes": self.taxes,
            "grand_total": self.grand_total,
        })

    def apply_breakdown(self, breakdown: PricingBreakdown) -> None:
        data = breakdown.to_dict()
        self.currency = data["currency"]
        self.nightly_rates = data["nightly_rates"]
        self.accommodation_total = data["accommodation_total"]
        self.cleaning_fee = data["cleaning_fee"]
        self.service_fee = data["service_fee"]
        self.discounts = data["discounts"]
        self.discount_total = data["discount_total"]
        self.taxable_amount = data["taxable_amount"]
        self.taxes = data["taxes"]
        self.grand_total = data["grand_total"]

    @property
    def window(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)

    @property
    def guest_count(self) -> GuestCount:
        return GuestCount(adults=self.adults, children=self.children)

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days


class Quote(PricingSnapshot):
    """Time-boxed, immutable price proposal for a stay."""

    class Status(models.TextChoices):
        OPEN = "open", _("Open")
        CONVERTED = "converted", _("Converted")
        EXPIRED = "expired", _("Expired")

    class PricingSource(models.TextChoices):
        INTERNAL = "internal", _("Internal calculator")
        EXTERNAL = "external", _("External PMS")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="quotes",
    )
    check_in = models.DateField()
    check_out = models.DateField()
    adults = models.PositiveSmallIntegerField(default=1)
    children = models.PositiveSmallIntegerField(default=0)
    promo_code = models.CharField(max_length=64, blank=True)
    pricing_source = models.CharField(
        max_length=20,
        choices=PricingSource.choices,
        default=PricingSource.INTERNAL,
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.OPEN)
    expires_at = models.DateTimeField()
    converted_reservation = models.OneToOneField(
        "bookings.Reservation",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Quote")
        verbose_name_plural = _("Quotes")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="quote_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="quote_status_expiry_idx"),
        ]

    def __str__(self) -> str:
        return f"Quote {self.pk} for {self.property_id}"

    def is_expired(self, now=None) -> bool:
        if self.status == self.Status.EXPIRED:
            return True
        return (now or timezone.now()) >= self.expires_at


class Reservation(PricingSnapshot):
    """Pending or confirmed booking holding its calendar days."""

    class Status(models.TextChoices):
        PENDING = ReservationStatus.PENDING.value, _("Pending")
        CONFIRMED = ReservationStatus.CONFIRMED.value, _("Confirmed")
        CANCELLED = ReservationStatus.CANCELLED.value, _("Cancelled")
        COMPLETED = ReservationStatus.COMPLETED.value, _("Completed")

    class PaymentStatus(models.TextChoices):
        UNPAID = "unpaid", _("Unpaid")
        PAID = "paid", _("Paid")
        REFUND_PENDING = "refund_pending", _("Refund pending")

    class Source(models.TextChoices):
        DIRECT = ReservationSource.DIRECT.value, _("Direct")
        AIRBNB = ReservationSource.AIRBNB.value, _("Airbnb")
        BOOKING_COM = ReservationSource.BOOKING_COM.value, _("Booking.com")
        VRBO = ReservationSource.VRBO.value, _("Vrbo")
        PMS = ReservationSource.PMS.value, _("PMS")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        "properties.Tenant",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    guest = models.ForeignKey(
        Guest,
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    quote = models.OneToOneField(
        Quote,
        on_delete=models.PROTECT,
        related_name="reservation",
    )
    confirmation_code = models.CharField(max_length=20, unique=True, editable=False)
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.DIRECT)
    check_in = models.DateField()
    check_out = models.DateField()
    adults = models.PositiveSmallIntegerField(default=1)
    children = models.PositiveSmallIntegerField(default=0)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.UNPAID,
    )
    amount_paid = models.PositiveIntegerField(default=0)
    payment_reference = models.CharField(max_length=128, blank=True)
    special_requests = models.TextField(blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    external_reference = models.CharField(
        max_length=64,
        blank=True,
        help_text=_("Reservation id in the external PMS after it has been pushed."),
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Reservation")
        verbose_name_plural = _("Reservations")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="reservation_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "check_in", "check_out"], name="reservation_stay_idx"),
            models.Index(fields=["status", "check_out"], name="reservation_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Reservation {self.confirmation_code} for {self.property_id}"

    # `property` is the foreign key inside this class body
    @builtins.property
    def holds_calendar(self) -> bool:
        return self.status in (self.Status.PENDING, self.Status.CONFIRMED)


class EventLogManager(models.Manager):
    def record_many(self, events: Iterable) -> list:
        """Append domain events; called inside the producing transaction."""
        return self.bulk_create([
            self.model(
                event_id=event.event_id,
                event_type=event.event_type,
                aggregate_id=event.aggregate_id,
                tenant_id=event.tenant_id,
                payload=event.payload(),
                occurred_at=event.occurred_at,
            )
            for event in events
        ])


class EventLog(models.Model):
    """Append-only record of emitted domain events."""

    event_id = models.UUIDField(unique=True, editable=False)
    event_type = models.CharField(max_length=64)
    aggregate_id = models.UUIDField(null=True, blank=True)
    tenant = models.ForeignKey(
        "properties.Tenant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    payload = models.JSONField(default=dict)
    occurred_at = models.DateTimeField()

    objects = EventLogManager()

    class Meta:
        verbose_name = _("Event")
        verbose_name_plural = _("Event log")
        ordering = ["occurred_at"]
        indexes = [
            models.Index(fields=["event_type", "occurred_at"], name="event_log_type_idx"),
            models.Index(fields=["aggregate_id"], name="event_log_aggregate_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event_type} {self.aggregate_id}"
