"""Shared FFLogs client factory: one auth, one httpx pool, clients per locale."""

import httpx

from kaiseki.fflogs.auth import FFLogsAuth
from kaiseki.fflogs.client import FFLogsClient


def _ms_to_seconds(value: int | None) -> float | None:
    if not value or value <= 0:
        return None
    return value / 1000


class FFLogsFactory:
    """Creates FFLogsClient instances that share auth and the HTTP pool."""

    def __init__(self, settings) -> None:
        self._auth = FFLogsAuth(
            settings.fflogs.client_id,
            settings.fflogs.client_secret.get_secret_value(),
            settings.fflogs.oauth_url,
        )
        self._api_url = settings.fflogs.api_url
        self._locale = settings.fflogs.locale
        self._max_retries = settings.fflogs.max_retries
        self._request_timeout = _ms_to_seconds(settings.fflogs.request_timeout_ms)
        self._pool: httpx.AsyncClient | None = None

    async def start(self) -> None:
        """Open the shared HTTP connection pool."""
        self._pool = httpx.AsyncClient(timeout=30.0)

    async def stop(self) -> None:
        """Close the shared HTTP connection pool."""
        if self._pool:
            await self._pool.aclose()
            self._pool = None

    def __call__(
        self,
        locale: str | None = None,
        *,
        max_retries: int | None = None,
        request_timeout_ms: int | None = None,
    ) -> FFLogsClient:
        """Return a client sharing this factory's auth and pool.

        Per-call arguments override the configured locale, retry budget
        and request timeout.
        """
        request_timeout = (
            _ms_to_seconds(request_timeout_ms)
            if request_timeout_ms is not None
            else self._request_timeout
        )
        return FFLogsClient(
            self._auth,
            api_url=self._api_url,
            locale=locale or self._locale,
            max_retries=self._max_retries if max_retries is None else max_retries,
            request_timeout=request_timeout,
            http_client=self._pool,
        )
