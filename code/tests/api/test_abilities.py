from unittest.mock import AsyncMock, patch

import pytest

from kaiseki.api.deps import get_name_cache_factory
from kaiseki.api.routes.abilities import parse_ids


class IconCache:
    async def load(self, ability_ids):
        return {}

    async def save(self, names, icons=None):
        pass

    async def get_icons(self, ability_ids):
        return {}


@pytest.mark.parametrize("raw, expected", [
    ("7,8,9", [7, 8, 9]),
    (" 7 , 7,8 ", [7, 8]),
    ("0,-3,abc,,12", [12]),
    ("", []),
])
def test_parse_ids(raw, expected):
    assert parse_ids(raw) == expected


async def test_returns_icons_keyed_by_id(client):
    icons = {7: "https://xivapi.com/i/000000/000405.png"}
    with patch(
        "kaiseki.api.routes.abilities.resolve_ability_icons",
        new_callable=AsyncMock, return_value=icons,
    ) as mock_resolve:
        resp = await client.get("/ability-icons", params={"ids": "7,8,7", "lang": "EN"})

    assert resp.status_code == 200
    assert resp.json() == {"icons": {"7": "https://xivapi.com/i/000000/000405.png"}}
    assert mock_resolve.call_args.args[1] == [7, 8]
    assert mock_resolve.call_args.kwargs["language"] == "en"
    # the memory cache keeps no icons
    assert mock_resolve.call_args.kwargs["store"] is None


async def test_empty_ids_skip_lookup(client):
    with patch(
        "kaiseki.api.routes.abilities.resolve_ability_icons", new_callable=AsyncMock,
    ) as mock_resolve:
        resp = await client.get("/ability-icons", params={"ids": "x,0"})

    assert resp.status_code == 200
    assert resp.json() == {"icons": {}}
    mock_resolve.assert_not_called()


async def test_icon_capable_cache_is_passed_as_store(app, client):
    cache = IconCache()
    app.dependency_overrides[get_name_cache_factory] = lambda: lambda language: cache
    with patch(
        "kaiseki.api.routes.abilities.resolve_ability_icons",
        new_callable=AsyncMock, return_value={},
    ) as mock_resolve:
        resp = await client.get("/ability-icons", params={"ids": "7"})

    assert resp.status_code == 200
    assert mock_resolve.call_args.kwargs["store"] is cache
    assert mock_resolve.call_args.kwargs["language"] == "ja"
