"""Serializers for PMS webhook payloads."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .sync import ChannelReservation


class ChannelReservationSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=64)
    listing_id = serializers.CharField(max_length=64)
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    guest_name = serializers.CharField(required=False, allow_blank=True, default="")
    guest_email = serializers.EmailField(required=False, allow_blank=True, default="")
    guest_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    guest_count = serializers.IntegerField(min_value=0, required=False, default=1)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, default=0)
    currency = serializers.CharField(min_length=3, max_length=3, required=False, allow_blank=True, default="")
    source = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")
    confirmation_code = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")

    def to_reservation(self) -> ChannelReservation:
        data = dict(self.validated_data)
        data["external_id"] = data.pop("id")
        data["currency"] = data["currency"].upper()
        data["notes"] = data["notes"] or ""
        return ChannelReservation(**data)


class WebhookSerializer(serializers.Serializer):
    event = serializers.CharField(max_length=64)
    timestamp = serializers.CharField(required=False, allow_blank=True)
    data = serializers.DictField()
