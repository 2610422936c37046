from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from kaiseki.api.routes.health import router, set_health_deps


@pytest.fixture(autouse=True)
def _reset_health_deps():
    """Reset module-level globals before each test."""
    set_health_deps(session_factory=None)
    yield
    set_health_deps(session_factory=None)


@pytest.fixture
def app():
    return FastAPI(routes=router.routes)


@pytest.fixture
def mock_session_factory():
    session = AsyncMock()
    session.execute = AsyncMock()
    session.close = AsyncMock()
    factory = MagicMock(return_value=session)
    return factory


async def _get_health(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get("/health")


async def test_health_ok_with_database(app, mock_session_factory):
    set_health_deps(session_factory=mock_session_factory)

    resp = await _get_health(app)

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["database"] == "ok"
    assert data["version"] == "0.1.0"
    mock_session_factory.return_value.close.assert_awaited_once()


async def test_health_db_down_returns_503(app, mock_session_factory):
    mock_session_factory.return_value.execute = AsyncMock(
        side_effect=ConnectionRefusedError("refused")
    )
    set_health_deps(session_factory=mock_session_factory)

    resp = await _get_health(app)

    assert resp.status_code == 503
    data = resp.json()
    assert data["status"] == "degraded"
    assert data["database"] == "error"


async def test_health_without_database(app):
    resp = await _get_health(app)

    assert resp.status_code == 200
    assert resp.json()["database"] == "not configured"


async def test_health_reports_upstream_config(app):
    with patch("kaiseki.api.routes.health.get_settings") as mock_settings:
        mock_settings.return_value.fflogs.client_id = "abc"
        mock_settings.return_value.xivapi.enabled = False
        resp = await _get_health(app)

    data = resp.json()
    assert data["fflogs"] == "configured"
    assert data["xivapi"] == "disabled"
