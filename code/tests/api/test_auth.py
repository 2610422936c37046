"""Tests for the API key authentication dependency."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from kaiseki.api.app import create_app
from kaiseki.api.deps import get_fflogs_factory
from kaiseki.fflogs.models import EncounterGroup
from tests.api.conftest import FakeFactory


@pytest.fixture
def app():
    """App with the FFLogs factory overridden but auth NOT overridden."""
    app = create_app()
    app.dependency_overrides[get_fflogs_factory] = FakeFactory
    yield app
    app.dependency_overrides.clear()


async def _groups(app, **kwargs):
    with patch(
        "kaiseki.api.routes.encounters.get_encounter_groups",
        new_callable=AsyncMock,
        return_value=[EncounterGroup(zone_id=1, zone_name="AAC")],
    ), patch("kaiseki.api.deps.get_settings") as mock_settings:
        mock_settings.return_value.api_key = "secret-key-123"
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            return await client.get("/encounters/groups", **kwargs)


async def test_auth_rejects_when_no_key_provided(app):
    resp = await _groups(app)

    assert resp.status_code == 401
    assert "Invalid or missing API key" in resp.json()["detail"]


async def test_auth_accepts_valid_header_key(app):
    resp = await _groups(app, headers={"X-API-Key": "secret-key-123"})
    assert resp.status_code == 200


async def test_auth_accepts_valid_query_key(app):
    resp = await _groups(app, params={"api_key": "secret-key-123"})
    assert resp.status_code == 200


async def test_auth_rejects_wrong_key(app):
    resp = await _groups(app, headers={"X-API-Key": "wrong"})
    assert resp.status_code == 401


async def test_auth_disabled_when_no_key_configured(app):
    with patch(
        "kaiseki.api.routes.encounters.get_encounter_groups",
        new_callable=AsyncMock, return_value=[],
    ), patch("kaiseki.api.deps.get_settings") as mock_settings:
        mock_settings.return_value.api_key = ""
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            resp = await client.get("/encounters/groups")

    assert resp.status_code == 200


async def test_health_needs_no_key(app):
    with patch("kaiseki.api.deps.get_settings") as mock_settings:
        mock_settings.return_value.api_key = "secret-key-123"
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            resp = await client.get("/health")

    assert resp.status_code == 200
