"""Construction of the PMS client and adapter from settings."""

from __future__ import annotations

from typing import Optional

from django.conf import settings  # type: ignore

from .adapter import ExternalPricingAdapter
from .client import PMSClient


def build_pms_client() -> Optional[PMSClient]:
    """None while the integration is not configured."""
    if not settings.PMS_CLIENT_ID:
        return None
    return PMSClient.from_settings()


def build_pms_adapter() -> Optional[ExternalPricingAdapter]:
    client = build_pms_client()
    if client is None:
        return None
    return ExternalPricingAdapter(client)
