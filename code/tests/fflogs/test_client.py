import json
import re
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from kaiseki.fflogs.auth import FFLogsAuth
from kaiseki.fflogs.client import FFLogsClient, backoff_seconds
from kaiseki.fflogs.errors import (
    FFLogsAPIError,
    FFLogsAuthError,
    FFLogsHTTPError,
    FFLogsTimeoutError,
    FFLogsTransportError,
)

API_URL = "https://www.fflogs.com/api/v2/client"
OAUTH_URL = "https://www.fflogs.com/oauth/token"


@pytest.fixture
def auth():
    return FFLogsAuth(client_id="test-id", client_secret="test-secret", oauth_url=OAUTH_URL)


def _mock_oauth():
    return respx.post(OAUTH_URL).mock(
        return_value=httpx.Response(
            200, json={"access_token": "tok123", "expires_in": 3600, "token_type": "bearer"}
        )
    )


def test_backoff_doubles_from_quarter_second():
    assert [backoff_seconds(n) for n in (1, 2, 3, 4)] == [0.25, 0.5, 1.0, 2.0]


@respx.mock
async def test_query_sends_graphql_post(auth):
    _mock_oauth()
    gql_route = respx.post(API_URL).mock(
        return_value=httpx.Response(200, json={"data": {"reportData": {"report": None}}})
    )

    async with FFLogsClient(auth, api_url=API_URL) as client:
        await client.query("query($code: String!) { x }", variables={"code": "abcdEFGH1234"})

    request = gql_route.calls.last.request
    assert request.headers["content-type"] == "application/json"
    assert request.headers["authorization"] == "Bearer tok123"
    assert "accept-language" not in request.headers
    body = json.loads(request.content)
    assert body["variables"] == {"code": "abcdEFGH1234"}


@respx.mock
async def test_query_sends_accept_language_when_locale_set(auth):
    _mock_oauth()
    gql_route = respx.post(API_URL).mock(
        return_value=httpx.Response(200, json={"data": {"ok": True}})
    )

    async with FFLogsClient(auth, api_url=API_URL, locale="ja") as client:
        await client.query("query { ok }")

    assert gql_route.calls.last.request.headers["accept-language"] == "ja"


@respx.mock
async def test_query_returns_data_block(auth):
    _mock_oauth()
    respx.post(API_URL).mock(
        return_value=httpx.Response(200, json={"data": {"worldData": {"zones": []}}})
    )

    async with FFLogsClient(auth, api_url=API_URL) as client:
        data = await client.query("query { worldData { zones { id } } }")

    assert data == {"worldData": {"zones": []}}


@respx.mock
async def test_query_retries_429_then_succeeds(auth):
    _mock_oauth()
    gql_route = respx.post(API_URL).mock(
        side_effect=[
            httpx.Response(429, text="slow down"),
            httpx.Response(429, text="slow down"),
            httpx.Response(429, text="slow down"),
            httpx.Response(200, json={"data": {"ok": True}}),
        ]
    )

    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        async with FFLogsClient(auth, api_url=API_URL, max_retries=4) as client:
            data = await client.query("query { ok }")

    assert data == {"ok": True}
    assert gql_route.call_count == 4
    assert [c.args[0] for c in mock_sleep.call_args_list] == [0.25, 0.5, 1.0]


@respx.mock
async def test_query_gives_up_after_max_retries(auth):
    _mock_oauth()
    gql_route = respx.post(API_URL).mock(return_value=httpx.Response(503, text="down"))

    with patch("asyncio.sleep", new_callable=AsyncMock):
        async with FFLogsClient(auth, api_url=API_URL, max_retries=2) as client:
            with pytest.raises(FFLogsHTTPError) as exc_info:
                await client.query("query { ok }")

    assert exc_info.value.status_code == 503
    assert gql_route.call_count == 3


@respx.mock
async def test_query_does_not_retry_client_errors(auth):
    _mock_oauth()
    gql_route = respx.post(API_URL).mock(return_value=httpx.Response(400, text="bad request"))

    async with FFLogsClient(auth, api_url=API_URL) as client:
        with pytest.raises(FFLogsHTTPError, match="400 bad request"):
            await client.query("query { ok }")

    assert gql_route.call_count == 1


@respx.mock
async def test_query_raises_on_graphql_errors_without_retry(auth):
    _mock_oauth()
    gql_route = respx.post(API_URL).mock(
        return_value=httpx.Response(200, json={
            "errors": [{"message": "Unknown argument \"translate\""}, {"message": "second"}],
            "data": None,
        })
    )

    async with FFLogsClient(auth, api_url=API_URL) as client:
        with pytest.raises(
            FFLogsAPIError,
            match=re.escape('GraphQL errors: Unknown argument "translate" | second'),
        ):
            await client.query("query { bad }")

    assert gql_route.call_count == 1


@respx.mock
async def test_query_raises_when_data_missing(auth):
    _mock_oauth()
    respx.post(API_URL).mock(return_value=httpx.Response(200, json={"data": None}))

    async with FFLogsClient(auth, api_url=API_URL) as client:
        with pytest.raises(FFLogsAPIError, match="no data"):
            await client.query("query { ok }")


@respx.mock
async def test_query_raises_on_invalid_json(auth):
    _mock_oauth()
    respx.post(API_URL).mock(return_value=httpx.Response(200, text="<html>oops</html>"))

    async with FFLogsClient(auth, api_url=API_URL) as client:
        with pytest.raises(FFLogsAPIError, match="not valid JSON"):
            await client.query("query { ok }")


@respx.mock
async def test_query_retries_transport_errors(auth):
    _mock_oauth()
    gql_route = respx.post(API_URL).mock(
        side_effect=[
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json={"data": {"ok": True}}),
        ]
    )

    with patch("asyncio.sleep", new_callable=AsyncMock):
        async with FFLogsClient(auth, api_url=API_URL) as client:
            data = await client.query("query { ok }")

    assert data == {"ok": True}
    assert gql_route.call_count == 2


@respx.mock
async def test_query_raises_transport_error_when_exhausted(auth):
    _mock_oauth()
    respx.post(API_URL).mock(side_effect=httpx.ConnectError("connection refused"))

    with patch("asyncio.sleep", new_callable=AsyncMock):
        async with FFLogsClient(auth, api_url=API_URL, max_retries=1) as client:
            with pytest.raises(FFLogsTransportError, match="after 2 attempts"):
                await client.query("query { ok }")


@respx.mock
async def test_query_raises_timeout_error_when_exhausted(auth):
    _mock_oauth()
    respx.post(API_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

    with patch("asyncio.sleep", new_callable=AsyncMock):
        async with FFLogsClient(
            auth, api_url=API_URL, max_retries=0, request_timeout=0.5
        ) as client:
            with pytest.raises(FFLogsTimeoutError):
                await client.query("query { ok }")


async def test_query_outside_context_manager_raises(auth):
    client = FFLogsClient(auth, api_url=API_URL)
    with pytest.raises(RuntimeError, match="async context manager"):
        await client.query("query { ok }")


@respx.mock
async def test_injected_http_client_is_not_closed(auth):
    _mock_oauth()
    respx.post(API_URL).mock(return_value=httpx.Response(200, json={"data": {"ok": True}}))

    async with httpx.AsyncClient() as pool:
        async with FFLogsClient(auth, api_url=API_URL, http_client=pool) as client:
            await client.query("query { ok }")
        assert not pool.is_closed


@respx.mock
async def test_token_exchange_network_error_is_retried(auth):
    oauth_route = respx.post(OAUTH_URL).mock(
        side_effect=[
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json={"access_token": "tok123", "expires_in": 3600}),
        ]
    )
    respx.post(API_URL).mock(return_value=httpx.Response(200, json={"data": {"ok": True}}))

    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        async with FFLogsClient(auth, api_url=API_URL) as client:
            data = await client.query("query { ok }")

    assert data == {"ok": True}
    assert oauth_route.call_count == 2
    assert [c.args[0] for c in mock_sleep.call_args_list] == [0.25]


@respx.mock
async def test_token_exchange_network_error_surfaces_as_transport_error(auth):
    respx.post(OAUTH_URL).mock(side_effect=httpx.ConnectError("connection refused"))
    gql_route = respx.post(API_URL).mock(
        return_value=httpx.Response(200, json={"data": {"ok": True}})
    )

    with patch("asyncio.sleep", new_callable=AsyncMock):
        async with FFLogsClient(auth, api_url=API_URL, max_retries=1) as client:
            with pytest.raises(FFLogsTransportError, match="after 2 attempts"):
                await client.query("query { ok }")

    assert not gql_route.called


@respx.mock
async def test_token_exchange_rejection_is_not_retried(auth):
    oauth_route = respx.post(OAUTH_URL).mock(return_value=httpx.Response(401, text="nope"))

    async with FFLogsClient(auth, api_url=API_URL) as client:
        with pytest.raises(FFLogsAuthError):
            await client.query("query { ok }")

    assert oauth_route.call_count == 1
