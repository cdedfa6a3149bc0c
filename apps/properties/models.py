"""Property domain models for the booking engine.

Tenants own properties; every property has a day-level calendar ledger
(`CalendarDay`) that records blocks, bookings and per-day overrides.
Money amounts are integers in the currency's minor unit.
"""

from __future__ import annotations

import builtins

from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.text import slugify  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Tenant(models.Model):
    """Independent host organisation owning one or more properties."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Tenant")
        verbose_name_plural = _("Tenants")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE


class Property(models.Model):
    """Rentable unit owned by a tenant."""

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="properties",
    )
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    max_guests = models.PositiveSmallIntegerField(default=2, validators=[MinValueValidator(1)])
    bedrooms = models.PositiveSmallIntegerField(default=1)
    bathrooms = models.PositiveSmallIntegerField(default=1)
    base_price = models.PositiveIntegerField(
        help_text=_("Nightly price in minor currency units."),
    )
    currency = models.CharField(max_length=3, default="ILS")
    cleaning_fee = models.PositiveIntegerField(
        default=0,
        help_text=_("Flat cleaning fee per stay in minor currency units."),
    )
    min_nights = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])
    max_nights = models.PositiveSmallIntegerField(default=30, validators=[MinValueValidator(1)])
    external_id = models.CharField(
        max_length=64,
        blank=True,
        help_text=_("Listing id in the external PMS. Blank when the property is managed here."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Property")
        verbose_name_plural = _("Properties")
        ordering = ["tenant_id", "name"]
        constraints = [
            models.UniqueConstraint(fields=["tenant", "slug"], name="property_unique_slug_per_tenant"),
            models.CheckConstraint(
                condition=models.Q(max_nights__gte=models.F("min_nights")),
                name="property_max_nights_gte_min_nights",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "status"], name="property_tenant_status_idx"),
            models.Index(fields=["external_id"], name="property_external_id_idx"),
        ]

    def __str__(self) -> str:
        return self.name

    @property
    def is_bookable(self) -> bool:
        return self.status == self.Status.ACTIVE and self.tenant.is_active

    @property
    def is_externally_managed(self) -> bool:
        return bool(self.external_id)

    def activate(self) -> None:
        self.status = self.Status.ACTIVE
        self.save(update_fields=["status", "updated_at"])

    def deactivate(self) -> None:
        self.status = self.Status.INACTIVE
        self.save(update_fields=["status", "updated_at"])

    def save(self, *args, **kwargs):  # type: ignore
        if not self.slug:
            self.slug = slugify(self.name)[:255] or "property"
        super().save(*args, **kwargs)


class CalendarDay(models.Model):
    """One row per (property, date) in the availability ledger.

    Rows are created lazily (first override, block or booking) and are never
    deleted; a released booking turns the row back to ``available`` and
    clears the reservation reference.
    """

    class Status(models.TextChoices):
        AVAILABLE = "available", _("Available")
        BOOKED = "booked", _("Booked")
        BLOCKED = "blocked", _("Blocked")

    property = models.ForeignKey(
        Property,
        on_delete=models.CASCADE,
        related_name="calendar_days",
    )
    date = models.DateField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.AVAILABLE)
    price = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Nightly price override in minor currency units."),
    )
    min_nights = models.PositiveSmallIntegerField(null=True, blank=True)
    reservation = models.ForeignKey(
        "bookings.Reservation",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="calendar_days",
    )
    note = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Calendar day")
        verbose_name_plural = _("Calendar days")
        ordering = ["property_id", "date"]
        constraints = [
            models.UniqueConstraint(fields=["property", "date"], name="calendar_day_unique_property_date"),
            models.CheckConstraint(
                condition=~models.Q(status="booked") | models.Q(reservation__isnull=False),
                name="calendar_day_booked_has_reservation",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "status", "date"], name="calendar_day_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.property_id} {self.date.isoformat()} {self.status}"

    # `property` is the foreign key inside this class body
    @builtins.property
    def is_open(self) -> bool:
        return self.status == self.Status.AVAILABLE
