"""Construction of the search aggregator."""

from __future__ import annotations

from apps.pms.dependencies import build_pms_adapter
from apps.properties.calendar import CalendarStore

from .aggregator import SearchAggregator


def build_search_aggregator() -> SearchAggregator:
    return SearchAggregator(calendar=CalendarStore(), pms_adapter=build_pms_adapter())
