"""Admin registrations for properties domain."""

from __future__ import annotations

from django.contrib import admin

from .models import CalendarDay, Property, Tenant


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "tenant",
        "status",
        "base_price",
        "currency",
        "max_guests",
        "min_nights",
        "max_nights",
        "external_id",
    )
    list_filter = ("status", "tenant", "currency")
    search_fields = ("name", "slug", "external_id")
    readonly_fields = ("created_at", "updated_at")


@admin.register(CalendarDay)
class CalendarDayAdmin(admin.ModelAdmin):
    list_display = ("property", "date", "status", "price", "min_nights", "reservation")
    list_filter = ("status",)
    date_hierarchy = "date"
    search_fields = ("property__name", "note")
    # Status changes go through the calendar store
    readonly_fields = ("status", "reservation", "created_at", "updated_at")
