"""URL routing for search."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import SearchView

urlpatterns = [
    path("", SearchView.as_view(), name="search"),
]
