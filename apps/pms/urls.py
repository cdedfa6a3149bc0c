"""URL routing for the PMS integration."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import PMSWebhookView

urlpatterns = [
    path("webhooks/", PMSWebhookView.as_view(), name="pms-webhook"),
]
