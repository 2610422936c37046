"""Shared fixtures for API route tests."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from kaiseki.api.app import create_app
from kaiseki.api.deps import (
    get_cache_store,
    get_fflogs_factory,
    get_name_cache_factory,
    verify_api_key,
)
from kaiseki.fflogs.models import SelectedFight
from kaiseki.pipeline.analyze import AnalysisResult


class FakeFactory:
    """Stands in for FFLogsFactory: calling it yields one shared mock client."""

    def __init__(self):
        self.client = AsyncMock()
        self.calls = []

    def __call__(self, locale=None, **overrides):
        self.calls.append((locale, overrides))
        return self

    async def __aenter__(self):
        return self.client

    async def __aexit__(self, *exc_info):
        return False


class MemoryNameCache:
    async def load(self, ability_ids):
        return {}

    async def save(self, names, icons=None):
        pass


def make_result(**overrides) -> AnalysisResult:
    selected = SelectedFight(
        report_code="abcdEFGH1234",
        fight_id=3,
        encounter_id=1069,
        name="Black Cat",
        start_time=1000,
        end_time=61000,
        duration_ms=60000,
        difficulty=101,
        kill=True,
        reason="best(kill=true, fastest=true)",
    )
    fields = {
        "fights": [],
        "selected_fight": selected,
        "boss_timeline": [],
        "players_casts": {},
        "players_summary": [],
    }
    fields.update(overrides)
    return AnalysisResult(**fields)


@pytest.fixture
def fake_factory():
    return FakeFactory()


@pytest.fixture
def cache_store():
    return AsyncMock()


@pytest.fixture
def app(fake_factory, cache_store):
    app = create_app()
    app.dependency_overrides[get_fflogs_factory] = lambda: fake_factory
    app.dependency_overrides[get_cache_store] = lambda: cache_store
    app.dependency_overrides[get_name_cache_factory] = lambda: lambda language: MemoryNameCache()
    app.dependency_overrides[verify_api_key] = lambda: None
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """Test client with DI overrides for FFLogs, caches and auth."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
