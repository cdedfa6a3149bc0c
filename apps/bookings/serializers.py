"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Quote, Reservation


class StayQuerySerializer(serializers.Serializer):
    """Stay window and guests, shared by quote, availability and search."""

    check_in = serializers.DateField()
    check_out = serializers.DateField()
    adults = serializers.IntegerField(min_value=1, default=1)
    children = serializers.IntegerField(min_value=0, default=0)


class QuoteRequestSerializer(StayQuerySerializer):
    property_id = serializers.IntegerField(min_value=1)
    promo_code = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")


class QuoteSerializer(serializers.ModelSerializer):
    property_id = serializers.ReadOnlyField(source="property.id")
    nights = serializers.ReadOnlyField()
    pricing = serializers.SerializerMethodField()

    class Meta:
        model = Quote
        fields = [
            "id",
            "property_id",
            "check_in",
            "check_out",
            "nights",
            "adults",
            "children",
            "promo_code",
            "pricing_source",
            "status",
            "expires_at",
            "created_at",
            "pricing",
        ]
        read_only_fields = fields

    def get_pricing(self, obj: Quote) -> dict:
        return obj.breakdown.to_dict()


class ReservationCreateSerializer(serializers.Serializer):
    quote_id = serializers.UUIDField()
    email = serializers.EmailField()
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")


class ReservationConfirmSerializer(serializers.Serializer):
    payment_reference = serializers.CharField(max_length=128)


class ReservationCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class ReservationSerializer(serializers.ModelSerializer):
    property_id = serializers.ReadOnlyField(source="property.id")
    quote_id = serializers.ReadOnlyField(source="quote.id")
    guest_email = serializers.ReadOnlyField(source="guest.email")
    nights = serializers.ReadOnlyField()
    pricing = serializers.SerializerMethodField()

    class Meta:
        model = Reservation
        fields = [
            "id",
            "confirmation_code",
            "property_id",
            "quote_id",
            "guest_email",
            "source",
            "check_in",
            "check_out",
            "nights",
            "adults",
            "children",
            "status",
            "payment_status",
            "amount_paid",
            "payment_reference",
            "special_requests",
            "cancellation_reason",
            "external_reference",
            "confirmed_at",
            "cancelled_at",
            "completed_at",
            "created_at",
            "pricing",
        ]
        read_only_fields = fields

    def get_pricing(self, obj: Reservation) -> dict:
        return obj.breakdown.to_dict()
