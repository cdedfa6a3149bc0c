"""DRF exception handler rendering booking errors as ``{"error": {...}}``."""

from __future__ import annotations

from rest_framework import status  # type: ignore
from rest_framework.exceptions import ValidationError  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from .exceptions import (
    BookingError,
    InvalidDates,
    InvalidStateTransition,
    NotFound,
    QuoteAlreadyConverted,
    QuoteExpired,
    RuleViolation,
    Unavailable,
)

STATUS_BY_ERROR = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidDates: status.HTTP_400_BAD_REQUEST,
    RuleViolation: status.HTTP_400_BAD_REQUEST,
    Unavailable: status.HTTP_409_CONFLICT,
    InvalidStateTransition: status.HTTP_409_CONFLICT,
    QuoteAlreadyConverted: status.HTTP_409_CONFLICT,
    QuoteExpired: status.HTTP_410_GONE,
}


def status_for(exc: BookingError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return status.HTTP_400_BAD_REQUEST


def exception_handler(exc, context):  # type: ignore
    if isinstance(exc, BookingError):
        return Response({"error": exc.as_dict()}, status=status_for(exc))

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ValidationError):
        error = {"code": "VALIDATION_ERROR", "message": "Invalid request.", "details": response.data}
    else:
        detail = response.data.get("detail", "") if isinstance(response.data, dict) else response.data
        code = getattr(detail, "code", None) or "error"
        error = {"code": str(code).upper(), "message": str(detail)}
    response.data = {"error": error}
    return response
