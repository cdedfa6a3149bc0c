"""Webhook receiver for reservation events pushed by the PMS."""

from __future__ import annotations

import hashlib
import hmac
import logging

from django.conf import settings  # type: ignore
from rest_framework import status, views  # type: ignore
from rest_framework.permissions import AllowAny  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.exceptions import BookingError

from .serializers import ChannelReservationSerializer, WebhookSerializer
from .sync import RESERVATION_EVENTS, ChannelReservationSync, SyncOutcome

logger = logging.getLogger(__name__)


def signature_for(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw request body."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def error_response(code: str, message: str, status_code: int) -> Response:
    return Response({"error": {"code": code, "message": message}}, status=status_code)


class PMSWebhookView(views.APIView):
    """Приём событий бронирований из PMS."""

    authentication_classes: list = []
    permission_classes = [AllowAny]

    def post(self, request):  # type: ignore
        secret = settings.PMS_WEBHOOK_SECRET
        if not secret:
            logger.warning("PMS webhook received while PMS_WEBHOOK_SECRET is not set")
            return error_response("WEBHOOK_DISABLED", "Webhook receiver is not configured.", status.HTTP_403_FORBIDDEN)

        header = settings.PMS_WEBHOOK_SIGNATURE_HEADER
        signature = request.headers.get(header, "")
        if not hmac.compare_digest(signature.encode(), signature_for(request.body, secret).encode()):
            logger.warning(f"PMS webhook rejected: bad {header}")
            return error_response("INVALID_SIGNATURE", "Invalid signature.", status.HTTP_401_UNAUTHORIZED)

        envelope = WebhookSerializer(data=request.data)
        envelope.is_valid(raise_exception=True)
        event = envelope.validated_data["event"]
        if event not in RESERVATION_EVENTS:
            logger.info(f"PMS webhook {event} ignored")
            return Response(SyncOutcome(False, "ignored", reason=f"Event {event} is not handled.").to_dict())

        payload = ChannelReservationSerializer(data=envelope.validated_data["data"])
        payload.is_valid(raise_exception=True)
        try:
            outcome = ChannelReservationSync().apply(event, payload.to_reservation())
        except BookingError as exc:
            # Acknowledged; redelivering the same event cannot succeed
            logger.warning(f"PMS webhook {event} not applied: {exc.message}")
            rejected = SyncOutcome(False, "rejected", reason=exc.message).to_dict()
            return Response({**rejected, "code": exc.code})
        return Response(outcome.to_dict())
