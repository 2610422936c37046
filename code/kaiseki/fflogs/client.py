import asyncio
import logging
from typing import Any

import httpx

from kaiseki.fflogs.auth import FFLogsAuth
from kaiseki.fflogs.errors import (
    FFLogsAPIError,
    FFLogsHTTPError,
    FFLogsTimeoutError,
    FFLogsTransportError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.fflogs.com/api/v2/client"

DEFAULT_MAX_RETRIES = 4
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
BACKOFF_BASE_SECONDS = 0.25


def backoff_seconds(attempt: int) -> float:
    return BACKOFF_BASE_SECONDS * 2 ** (attempt - 1)


class FFLogsClient:
    """Async GraphQL client for FFLogs API v2."""

    def __init__(
        self,
        auth: FFLogsAuth,
        *,
        api_url: str = DEFAULT_API_URL,
        locale: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        request_timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._auth = auth
        self._api_url = api_url
        self._locale = locale
        self._max_retries = max_retries
        self._request_timeout = request_timeout
        self._http = http_client
        self._owns_http = http_client is None

    async def __aenter__(self) -> "FFLogsClient":
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=30.0)
            self._owns_http = True
        return self

    async def __aexit__(self, *exc: object) -> None:
        if self._http and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def query(
        self,
        graphql_query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute a GraphQL query and return its ``data`` block.

        429/500/502/503/504 and transport errors are retried with
        exponential backoff (0.25s, 0.5s, 1s, ...) up to ``max_retries``
        extra attempts. Other non-2xx statuses and GraphQL-level errors
        are raised immediately.
        """
        if self._http is None:
            raise RuntimeError("Use FFLogsClient as an async context manager")

        headers = {"Content-Type": "application/json"}
        if self._locale:
            headers["Accept-Language"] = self._locale
        body = {"query": graphql_query, "variables": variables or {}}

        attempt = 0
        while True:
            attempt += 1
            try:
                token = await self._auth.get_token(self._http)
                response = await self._post(body, {**headers, "Authorization": f"Bearer {token}"})
            except httpx.TransportError as exc:
                if attempt > self._max_retries:
                    if isinstance(exc, httpx.TimeoutException):
                        raise FFLogsTimeoutError(
                            f"GraphQL request timed out after {attempt} attempts: {exc}"
                        ) from exc
                    raise FFLogsTransportError(
                        f"GraphQL request failed after {attempt} attempts: {exc}"
                    ) from exc
                wait = backoff_seconds(attempt)
                logger.warning(
                    "Network error (attempt %d/%d), retrying in %.2fs: %s",
                    attempt, self._max_retries + 1, wait, exc,
                )
                await asyncio.sleep(wait)
                continue

            if response.status_code in RETRYABLE_STATUS_CODES and attempt <= self._max_retries:
                wait = backoff_seconds(attempt)
                logger.warning(
                    "Retryable status %d (attempt %d/%d), retrying in %.2fs",
                    response.status_code, attempt, self._max_retries + 1, wait,
                )
                await asyncio.sleep(wait)
                continue

            if not response.is_success:
                raise FFLogsHTTPError(response.status_code, response.text)

            return _extract_data(response)

    async def _post(self, body: dict[str, Any], headers: dict[str, str]) -> httpx.Response:
        if self._request_timeout:
            return await self._http.post(
                self._api_url, json=body, headers=headers, timeout=self._request_timeout,
            )
        return await self._http.post(self._api_url, json=body, headers=headers)


def _extract_data(response: httpx.Response) -> dict[str, Any]:
    try:
        result = response.json()
    except ValueError as exc:
        raise FFLogsAPIError(f"GraphQL response is not valid JSON: {exc}") from exc

    if not isinstance(result, dict):
        raise FFLogsAPIError(f"Expected dict response, got {type(result).__name__}")

    errors = result.get("errors")
    if errors:
        messages = " | ".join(
            e.get("message", str(e)) if isinstance(e, dict) else str(e) for e in errors
        )
        raise FFLogsAPIError(f"GraphQL errors: {messages}")

    data = result.get("data")
    if not data:
        raise FFLogsAPIError("GraphQL response returned no data (missing 'data' key)")
    return data
