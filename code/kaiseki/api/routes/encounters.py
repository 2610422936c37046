from fastapi import APIRouter, Depends, HTTPException, Query

from kaiseki.api.deps import get_fflogs_factory
from kaiseki.api.errors import http_error
from kaiseki.api.models import EncounterGroupsResponse, EncounterSearchResponse
from kaiseki.fflogs.encounters import get_encounter_groups, search_encounters
from kaiseki.fflogs.errors import FFLogsError

router = APIRouter(prefix="/encounters", tags=["encounters"])

MAX_SEARCH_RESULTS = 100


@router.get("/search", response_model=EncounterSearchResponse)
async def encounters_search(
    q: str = "",
    max_results: int = Query(30, alias="max"),
    locale: str | None = None,
    factory=Depends(get_fflogs_factory),
):
    keyword = q.strip()
    if not keyword:
        raise HTTPException(status_code=400, detail="q is required")
    limit = max(1, min(MAX_SEARCH_RESULTS, max_results))
    try:
        async with factory(locale) as client:
            found = await search_encounters(client, keyword, max_results=limit)
    except FFLogsError as exc:
        raise http_error(exc) from None
    return EncounterSearchResponse(query=keyword, encounters=found)


@router.get("/groups", response_model=EncounterGroupsResponse)
async def encounter_groups(
    locale: str | None = None,
    factory=Depends(get_fflogs_factory),
):
    try:
        async with factory(locale) as client:
            groups = await get_encounter_groups(client)
    except FFLogsError as exc:
        raise http_error(exc) from None
    return EncounterGroupsResponse(groups=groups)
