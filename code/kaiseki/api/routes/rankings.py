import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from kaiseki.api.deps import get_fflogs_factory
from kaiseki.api.errors import http_error
from kaiseki.api.models import RankingsSearchResponse
from kaiseki.config import get_settings
from kaiseki.fflogs.errors import FFLogsError
from kaiseki.fflogs.rankings import RankingsParams
from kaiseki.pipeline.rankings_search import search_rankings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rankings", tags=["rankings"])


@router.get("/search", response_model=RankingsSearchResponse)
async def rankings_search(
    encounter_id: int | None = Query(None, alias="encounterId"),
    metric: str = "",
    difficulty: int | None = None,
    page_size: int | None = Query(None, alias="pageSize"),
    rank_index: int = Query(0, alias="rankIndex"),
    job: str | None = None,
    partition: int | None = None,
    locale: str | None = None,
    factory=Depends(get_fflogs_factory),
):
    if encounter_id is None or not metric.strip():
        raise HTTPException(status_code=400, detail="encounterId and metric are required")
    settings = get_settings()
    params = RankingsParams(
        encounter_id=encounter_id,
        metric=metric.strip(),
        difficulty=difficulty,
        page_size=page_size,
        rank_index=rank_index,
        class_name=job or None,
        partition=partition,
    )
    try:
        async with factory(
            locale,
            max_retries=settings.rankings.max_retries,
            request_timeout_ms=settings.rankings.request_timeout_ms,
        ) as client:
            result = await search_rankings(
                client, params, soft_limit_ms=settings.rankings.soft_limit_ms
            )
    except FFLogsError as exc:
        raise http_error(exc) from None

    return RankingsSearchResponse(
        rankings=result.rankings,
        resolved_encounter_id=result.encounter_id,
        resolved_metric=result.metric,
        resolved_difficulty=result.resolved_difficulty,
        resolved_partition=result.resolved_partition,
        resolved_page_size=result.page_size,
        resolved_job=params.job,
        fallback_applied=result.fallback_applied,
        attempted=result.attempted,
    )
