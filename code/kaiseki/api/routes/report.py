"""Report fights listing and fight analysis."""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query

from kaiseki.abilities.overrides import load_ability_overrides
from kaiseki.abilities.xivapi import AbilityNameResolver
from kaiseki.api.deps import get_cache_store, get_fflogs_factory, get_name_cache_factory
from kaiseki.api.errors import http_error
from kaiseki.api.models import AnalyzeBody, FightsResponse
from kaiseki.config import get_settings
from kaiseki.fflogs.errors import FFLogsError
from kaiseki.fflogs.rankings import RankingsParams
from kaiseki.fflogs.report import get_report_fights
from kaiseki.pipeline.analyze import (
    AnalysisRequest,
    AnalysisResult,
    analyze_ranking,
    analyze_report,
)
from kaiseki.pipeline.rankings_search import search_rankings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/report", tags=["report"])


@router.get("/fights", response_model=FightsResponse)
async def report_fights(
    report_code: str = Query("", alias="reportCode"),
    translate: bool | None = None,
    locale: str | None = None,
    factory=Depends(get_fflogs_factory),
):
    code = report_code.strip()
    if not code:
        raise HTTPException(status_code=400, detail="reportCode is required")
    settings = get_settings()
    try:
        async with factory(locale) as client:
            report = await get_report_fights(
                client, code, translate=settings.fflogs.translate if translate is None else translate
            )
    except FFLogsError as exc:
        raise http_error(exc) from None
    return FightsResponse(report_code=report.report_code, fights=report.fights)


async def _analyze(body: AnalyzeBody, factory, cache_store, name_cache_factory) -> AnalysisResult:
    settings = get_settings()
    code = body.report_code.strip()
    rankings_mode = body.encounter_id is not None
    if not code and not rankings_mode:
        raise HTTPException(status_code=400, detail="reportCode or encounterID is required")
    if rankings_mode and not body.metric:
        raise HTTPException(status_code=400, detail="metric is required with encounterID")

    translate = settings.fflogs.translate if body.translate is None else body.translate
    locale = body.locale or settings.fflogs.locale
    language = body.xivapi_language or settings.xivapi.language
    resolver = AbilityNameResolver.from_settings(
        settings, name_cache_factory(language), language=language
    )
    overrides = load_ability_overrides(settings.abilities.overrides_path)

    try:
        if rankings_mode:
            params = RankingsParams(
                encounter_id=body.encounter_id,
                metric=body.metric,
                difficulty=body.difficulty,
                page_size=body.page_size,
                rank_index=body.rank_index,
                class_name=body.job,
                partition=body.partition,
            )
            async with factory(
                locale,
                max_retries=settings.rankings.max_retries,
                request_timeout_ms=settings.rankings.request_timeout_ms,
            ) as client:
                rankings = await search_rankings(
                    client, params, soft_limit_ms=settings.rankings.soft_limit_ms
                )
            async with factory(locale) as client:
                return await analyze_ranking(
                    client,
                    rankings,
                    only_kill=body.only_kill,
                    fight_id=body.fight_id,
                    translate=translate,
                    resolver=resolver,
                    overrides=overrides,
                )

        request = AnalysisRequest(
            report_code=code,
            strategy=body.strategy,
            only_kill=body.only_kill,
            difficulty=body.difficulty,
            fight_id=body.fight_id,
            locale=locale,
            translate=translate,
            xivapi_language=language,
        )
        async with factory(locale) as client:
            return await analyze_report(
                client,
                request,
                resolver=resolver,
                overrides=overrides,
                cache_store=cache_store,
                result_ttl=timedelta(minutes=settings.cache.result_ttl_minutes),
                unresolved_ttl=timedelta(days=settings.cache.unresolved_ttl_days),
            )
    except FFLogsError as exc:
        raise http_error(exc) from None


@router.get("/analyze", response_model=AnalysisResult)
async def analyze_get(
    report_code: str = Query("", alias="reportCode"),
    strategy: str = "best",
    only_kill: bool = Query(True, alias="onlyKill"),
    difficulty: int | None = None,
    fight_id: int | None = Query(None, alias="fightId"),
    locale: str | None = None,
    translate: bool | None = None,
    xivapi_language: str | None = Query(None, alias="xivapiLang"),
    factory=Depends(get_fflogs_factory),
    cache_store=Depends(get_cache_store),
    name_cache_factory=Depends(get_name_cache_factory),
):
    body = AnalyzeBody(
        report_code=report_code,
        strategy=strategy,
        only_kill=only_kill,
        difficulty=difficulty,
        fight_id=fight_id,
        locale=locale,
        translate=translate,
        xivapi_language=xivapi_language,
    )
    return await _analyze(body, factory, cache_store, name_cache_factory)


@router.post("/analyze", response_model=AnalysisResult)
async def analyze_post(
    body: AnalyzeBody,
    factory=Depends(get_fflogs_factory),
    cache_store=Depends(get_cache_store),
    name_cache_factory=Depends(get_name_cache_factory),
):
    return await _analyze(body, factory, cache_store, name_cache_factory)
