"""Serializers for the properties domain."""

from __future__ import annotations

from datetime import timedelta

from django.utils import timezone  # type: ignore
from rest_framework import serializers  # type: ignore

from .models import CalendarDay

MAX_CALENDAR_DAYS = 366


class CalendarRangeSerializer(serializers.Serializer):
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)

    def validate(self, attrs):  # type: ignore
        start = attrs.get("start") or timezone.localdate()
        end = attrs.get("end") or start + timedelta(days=30)
        if end <= start:
            raise serializers.ValidationError("End must be after start.")
        if (end - start).days > MAX_CALENDAR_DAYS:
            raise serializers.ValidationError(f"Range cannot exceed {MAX_CALENDAR_DAYS} days.")
        return {"start": start, "end": end}


class CalendarDaySerializer(serializers.ModelSerializer):
    """Public view of a calendar day; the owning reservation stays private."""

    class Meta:
        model = CalendarDay
        fields = ["date", "status", "price", "min_nights"]
        read_only_fields = fields
