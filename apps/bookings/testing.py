"""Builders for tests: tenants, properties, quotes and reservations."""

from __future__ import annotations

import itertools
from datetime import date, timedelta

from django.utils import timezone  # type: ignore
from django.utils.text import slugify  # type: ignore

from apps.properties.calendar import CalendarStore, date_span
from apps.properties.models import Property, Tenant
from shared.domain.value_objects import DateRange

from .application.command_handlers import generate_confirmation_code
from .domain.entities import GuestCount
from .domain.pricing import PricingCalculator
from .models import Guest, Quote, Reservation


def next_weekday(weekday: int, after: date | None = None) -> date:
    """First date strictly after ``after`` (default: a week from today) on ``weekday``."""
    day = (after or timezone.localdate() + timedelta(days=7)) + timedelta(days=1)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


_sequence = itertools.count(1)


def make_tenant(name: str | None = None, **kwargs) -> Tenant:
    name = name or f"Sea Breeze Stays {next(_sequence)}"
    kwargs.setdefault("slug", slugify(name))
    return Tenant.objects.create(name=name, **kwargs)


def make_property(tenant: Tenant | None = None, name: str = "Sea View Loft", **kwargs) -> Property:
    defaults = {
        "status": Property.Status.ACTIVE,
        "base_price": 500,
        "cleaning_fee": 150,
        "currency": "ILS",
        "max_guests": 4,
        "min_nights": 1,
        "max_nights": 30,
    }
    defaults.update(kwargs)
    return Property.objects.create(tenant=tenant or make_tenant(), name=name, **defaults)


def make_quote(prop: Property, check_in: date, check_out: date, **kwargs) -> Quote:
    """Quote priced by the internal calculator, bypassing availability checks."""
    quote = Quote(
        property=prop,
        check_in=check_in,
        check_out=check_out,
        expires_at=kwargs.pop("expires_at", timezone.now() + timedelta(hours=24)),
        **kwargs,
    )
    quote.apply_breakdown(
        PricingCalculator().price(prop, DateRange(check_in, check_out), GuestCount(), {})
    )
    quote.save()
    return quote


def make_reservation(
    prop: Property,
    check_in: date,
    check_out: date,
    status: str = Reservation.Status.PENDING,
    email: str = "guest@example.com",
    lock: bool = True,
    **kwargs,
) -> Reservation:
    quote = make_quote(prop, check_in, check_out, status=Quote.Status.CONVERTED)
    guest, _ = Guest.objects.get_or_create(tenant=prop.tenant, email=email)
    reservation = Reservation(
        tenant=prop.tenant,
        property=prop,
        guest=guest,
        quote=quote,
        confirmation_code=generate_confirmation_code(),
        check_in=check_in,
        check_out=check_out,
        status=status,
        **kwargs,
    )
    reservation.apply_breakdown(quote.breakdown)
    reservation.save()
    if lock:
        assert CalendarStore().lock_days(prop.pk, date_span(check_in, check_out), reservation.pk)
    return reservation
