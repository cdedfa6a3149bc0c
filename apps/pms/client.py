"""HTTP client for the external property management system.

Every call has a bounded timeout. A 401 invalidates the cached token and
retries once with a fresh one; 5xx answers are retried up to
``PMS_MAX_RETRIES`` times with a linear delay. Anything else that goes
wrong is raised as :class:`ExternalAdapterFailure`.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

import requests  # type: ignore
from django.conf import settings  # type: ignore

from apps.bookings.exceptions import ExternalAdapterFailure

from .tokens import BearerTokenCache

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Accept": "application/json"}


class PMSClient:
    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        timeout: float = 5,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        session: Optional[requests.Session] = None,
        tokens: Optional[BearerTokenCache] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._session = session
        if session is not None:
            session.headers.update(JSON_HEADERS)
        self._local = threading.local()
        self.tokens = tokens or BearerTokenCache(self.fetch_token)
        self._sleep = sleep

    @property
    def session(self) -> requests.Session:
        """The injected session, else one per thread (search calls from a pool)."""
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(JSON_HEADERS)
            self._local.session = session
        return session

    @classmethod
    def from_settings(cls, **kwargs) -> "PMSClient":
        return cls(
            base_url=settings.PMS_API_URL,
            client_id=settings.PMS_CLIENT_ID,
            client_secret=settings.PMS_CLIENT_SECRET,
            timeout=settings.PMS_TIMEOUT_SECONDS,
            max_retries=settings.PMS_MAX_RETRIES,
            retry_delay=settings.PMS_RETRY_DELAY_SECONDS,
            **kwargs,
        )

    def fetch_token(self) -> dict:
        """Client-credentials exchange."""
        try:
            response = self.session.post(
                f"{self.base_url}/oauth/token",
                json={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ExternalAdapterFailure(f"PMS auth request failed: {exc}") from exc

        if not response.ok:
            raise ExternalAdapterFailure(f"PMS auth failed: {response.status_code}", response.status_code)
        return self._json(response)

    def request(self, method: str, path: str, **kwargs) -> Optional[Any]:
        """Authenticated call; returns the decoded body, or None on 404."""
        url = f"{self.base_url}{path}"
        token_refreshed = False
        attempt = 0

        while True:
            headers = {"Authorization": f"Bearer {self.tokens.get()}"}
            try:
                response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
            except requests.Timeout as exc:
                raise ExternalAdapterFailure(f"PMS {method} {path} timed out after {self.timeout}s") from exc
            except requests.RequestException as exc:
                raise ExternalAdapterFailure(f"PMS {method} {path} failed: {exc}") from exc

            if response.status_code == 401 and not token_refreshed:
                logger.info(f"PMS rejected bearer token on {method} {path}, refreshing")
                self.tokens.invalidate()
                token_refreshed = True
                continue

            if response.status_code >= 500 and attempt < self.max_retries:
                attempt += 1
                delay = self.retry_delay * attempt
                logger.warning(
                    f"PMS {method} {path} answered {response.status_code}, "
                    f"retry {attempt}/{self.max_retries} in {delay}s"
                )
                self._sleep(delay)
                continue

            if response.status_code == 404:
                return None
            if not response.ok:
                raise ExternalAdapterFailure(
                    f"PMS {method} {path} answered {response.status_code}",
                    response.status_code,
                )
            return self._json(response)

    def get_listing(self, external_id: str) -> Optional[dict]:
        """Listing with ``days_rates``, ``extra_info`` and ``currency``."""
        return self.request("GET", f"/v1/listings/{external_id}")

    def create_reservation(self, payload: dict) -> dict:
        data = self.request("POST", "/v1/reservations", json=payload)
        if data is None:
            raise ExternalAdapterFailure("PMS reservation endpoint not found", 404)
        return data

    def cancel_reservation(self, external_reference: str) -> None:
        """Cancels a PMS reservation; one that is already gone counts as cancelled."""
        self.request("POST", f"/v1/reservations/{external_reference}/cancel")

    @staticmethod
    def _json(response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalAdapterFailure("PMS answered with a body that is not JSON") from exc
