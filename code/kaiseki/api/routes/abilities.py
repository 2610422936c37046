import httpx
from fastapi import APIRouter, Depends

from kaiseki.abilities.xivapi import resolve_ability_icons
from kaiseki.api.deps import get_name_cache_factory
from kaiseki.api.models import AbilityIconsResponse
from kaiseki.config import get_settings

router = APIRouter(tags=["abilities"])


def parse_ids(raw: str) -> list[int]:
    """Comma-separated positive ids, deduplicated in order."""
    ids: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part.isdigit():
            continue
        ability_id = int(part)
        if ability_id > 0 and ability_id not in ids:
            ids.append(ability_id)
    return ids


@router.get("/ability-icons", response_model=AbilityIconsResponse)
async def ability_icons(
    ids: str = "",
    lang: str | None = None,
    name_cache_factory=Depends(get_name_cache_factory),
):
    ability_ids = parse_ids(ids)
    if not ability_ids:
        return AbilityIconsResponse(icons={})

    cfg = get_settings().xivapi
    language = (lang or cfg.language).strip().lower()
    backend = name_cache_factory(language)
    # only the database backend keeps icons
    store = backend if hasattr(backend, "get_icons") else None

    async with httpx.AsyncClient(
        timeout=cfg.timeout_ms / 1000, headers={"Accept": "application/json"}
    ) as http:
        icons = await resolve_ability_icons(
            http, ability_ids, base_url=cfg.base_url, language=language, store=store
        )
    return AbilityIconsResponse(icons=icons)
