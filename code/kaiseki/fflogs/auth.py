import logging
import time

import httpx

from kaiseki.fflogs.errors import FFLogsAuthError

logger = logging.getLogger(__name__)

# Reuse a cached token only while it has more than this many seconds left
REFRESH_MARGIN_SECONDS = 30


class FFLogsAuth:
    """OAuth2 client credentials auth for FFLogs API v2.

    Holds the token for every client built from it. Retrying a failed
    exchange is the caller's job.
    """

    def __init__(self, client_id: str, client_secret: str, oauth_url: str) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._oauth_url = oauth_url
        self._token: str | None = None
        self._expires_at: float = 0

    async def get_token(self, client: httpx.AsyncClient) -> str:
        if self._token and self._expires_at > time.monotonic() + REFRESH_MARGIN_SECONDS:
            return self._token

        response = await client.post(
            self._oauth_url,
            data={"grant_type": "client_credentials"},
            auth=(self._client_id, self._client_secret),
        )
        if not response.is_success:
            raise FFLogsAuthError(
                f"Failed to fetch OAuth token: {response.status_code} {response.text}"
            )

        data = response.json()
        token = data.get("access_token") if isinstance(data, dict) else None
        expires_in = data.get("expires_in") if isinstance(data, dict) else None
        if not token or not expires_in:
            raise FFLogsAuthError(
                "OAuth token response is missing required fields (access_token/expires_in)."
            )

        self._token = token
        self._expires_at = time.monotonic() + expires_in
        logger.info("Obtained new FFLogs access token, expires in %ds", expires_in)
        return self._token
