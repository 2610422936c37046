"""Zone and encounter listing from the world data API."""

from kaiseki.fflogs.models import EncounterCandidate, EncounterGroup, EncounterRef
from kaiseki.fflogs.queries import WORLD_ZONES

DEFAULT_MAX_RESULTS = 30


async def _fetch_zones(client) -> list[dict]:
    data = await client.query(WORLD_ZONES, variables={})
    return (data.get("worldData") or {}).get("zones") or []


async def search_encounters(
    client, keyword: str, max_results: int = DEFAULT_MAX_RESULTS
) -> list[EncounterCandidate]:
    """Encounters whose name (case-insensitive) or id contains ``keyword``."""
    k = keyword.strip().lower()
    if not k:
        return []

    out: list[EncounterCandidate] = []
    for zone in await _fetch_zones(client):
        for enc in zone.get("encounters") or []:
            name = enc.get("name") or ""
            if k not in name.lower() and k not in str(enc.get("id")):
                continue
            out.append(EncounterCandidate(
                id=enc["id"],
                name=name,
                zone_id=zone.get("id"),
                zone_name=zone.get("name"),
            ))
            if len(out) >= max_results:
                return out
    return out


async def get_encounter_groups(client) -> list[EncounterGroup]:
    return [
        EncounterGroup(
            zone_id=zone["id"],
            zone_name=zone.get("name") or "",
            encounters=[
                EncounterRef(id=e["id"], name=e.get("name") or "")
                for e in zone.get("encounters") or []
            ],
        )
        for zone in await _fetch_zones(client)
    ]
