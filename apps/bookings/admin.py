"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import EventLog, Guest, Quote, Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = (
        "confirmation_code",
        "property",
        "guest",
        "status",
        "payment_status",
        "source",
        "check_in",
        "check_out",
        "grand_total",
        "created_at",
    )
    list_filter = ("status", "payment_status", "source", "check_in")
    search_fields = ("confirmation_code", "property__name", "guest__email", "external_reference")
    readonly_fields = (
        "confirmation_code",
        "quote",
        "nightly_rates",
        "accommodation_total",
        "cleaning_fee",
        "service_fee",
        "discounts",
        "discount_total",
        "taxable_amount",
        "taxes",
        "grand_total",
        "created_at",
        "updated_at",
    )


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display = ("id", "property", "check_in", "check_out", "status", "pricing_source", "grand_total", "expires_at")
    list_filter = ("status", "pricing_source")
    readonly_fields = ("converted_reservation", "created_at")


@admin.register(Guest)
class GuestAdmin(admin.ModelAdmin):
    list_display = ("email", "tenant", "total_stays", "total_spent", "last_stay_at")
    search_fields = ("email", "first_name", "last_name")


@admin.register(EventLog)
class EventLogAdmin(admin.ModelAdmin):
    list_display = ("event_type", "aggregate_id", "tenant", "occurred_at")
    list_filter = ("event_type",)
    readonly_fields = ("event_id", "event_type", "aggregate_id", "tenant", "payload", "occurred_at")
