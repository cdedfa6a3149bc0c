"""Bearer token cache for the PMS API.

The token lives in the Django cache shared by every service instance, with
a TTL that ends ``PMS_TOKEN_REFRESH_SKEW_SECONDS`` before the PMS expiry, so
a token is always replaced before the PMS would reject it. Whoever finds
the cache empty fetches a new token and overwrites the entry; no lock is
needed because every fetched token is valid.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from django.conf import settings  # type: ignore
from django.core.cache import cache as default_cache  # type: ignore

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600


class BearerTokenCache:
    def __init__(
        self,
        fetch: Callable[[], dict],
        cache_key: str = "pms:bearer-token",
        refresh_skew: Optional[int] = None,
        cache=None,
    ):
        self._fetch = fetch
        self.cache_key = cache_key
        self.refresh_skew = settings.PMS_TOKEN_REFRESH_SKEW_SECONDS if refresh_skew is None else refresh_skew
        self._cache = cache or default_cache

    def get(self) -> str:
        token = self._cache.get(self.cache_key)
        if token:
            return token
        return self.refresh()

    def refresh(self) -> str:
        data = self._fetch()
        token = data["access_token"]
        expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        ttl = max(expires_in - self.refresh_skew, 1)
        self._cache.set(self.cache_key, token, ttl)
        logger.info(f"PMS bearer token refreshed, cached for {ttl}s")
        return token

    def invalidate(self) -> None:
        self._cache.delete(self.cache_key)
