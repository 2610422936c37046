"""End-to-end analysis of one fight: events, timelines, summaries."""

import hashlib
import json
import logging
from dataclasses import asdict, dataclass, replace
from datetime import timedelta

from kaiseki.abilities.xivapi import AbilityNameResolver, ResolveStats
from kaiseki.fflogs.events import EventsQuery, get_all_events
from kaiseki.fflogs.models import (
    FFLogsBaseModel,
    Fight,
    PlayerCastEntry,
    PlayerSummary,
    RankingsResult,
    ReportFights,
    SelectedFight,
    TimelineEntry,
)
from kaiseki.fflogs.report import get_report_actor_map, get_report_fights
from kaiseki.pipeline.boss_timeline import build_boss_timeline
from kaiseki.pipeline.naming import count_unresolved_abilities, merge_ability_names
from kaiseki.pipeline.player_casts import build_player_casts
from kaiseki.pipeline.select import PickFightOptions, pick_fight
from kaiseki.pipeline.summary import build_player_summary

logger = logging.getLogger(__name__)

RESULT_TTL = timedelta(minutes=30)
UNRESOLVED_TTL = timedelta(days=3)


@dataclass(frozen=True)
class AnalysisRequest:
    report_code: str
    strategy: str = "best"
    only_kill: bool = True
    difficulty: int | None = None
    fight_id: int | None = None
    locale: str = "ja"
    translate: bool = True
    xivapi_language: str | None = None


class AnalysisResult(FFLogsBaseModel):
    fights: list[Fight]
    selected_fight: SelectedFight
    boss_timeline: list[TimelineEntry]
    players_casts: dict[str, list[PlayerCastEntry]]
    players_summary: list[PlayerSummary]
    unresolved_ability_counts: dict[int, int] = {}
    resolver_stats: ResolveStats | None = None
    cached: bool = False


def cache_key(prefix: str, request: AnalysisRequest) -> str:
    """``<prefix>#<sha1>`` of the request's canonical JSON."""
    canonical = json.dumps(asdict(request), sort_keys=True, separators=(",", ":"))
    return f"{prefix}#{hashlib.sha1(canonical.encode()).hexdigest()}"


async def select_report_fight(client, request: AnalysisRequest) -> tuple[ReportFights, SelectedFight]:
    report = await get_report_fights(client, request.report_code, translate=request.translate)
    selected = pick_fight(report.fights, PickFightOptions(
        report_code=report.report_code,
        strategy=request.strategy,
        only_kill=request.only_kill,
        difficulty=request.difficulty,
        override_fight_id=request.fight_id,
    ))
    return report, selected


async def resolve_ranking_seed(
    client,
    rankings: RankingsResult,
    *,
    only_kill: bool = True,
    fight_id: int | None = None,
    translate: bool = True,
) -> tuple[ReportFights, SelectedFight]:
    """Turn the ranking at the rank index into a selected fight of its report."""
    entry = rankings.selected
    report = await get_report_fights(client, entry.report_code, translate=translate)
    picked = pick_fight(report.fights, PickFightOptions(
        report_code=entry.report_code,
        strategy="best",
        only_kill=only_kill,
        difficulty=rankings.difficulty,
        override_fight_id=fight_id if fight_id is not None else entry.fight_id,
    ))
    selected = picked.model_copy(update={"reason": f"rankings[index={rankings.rank_index}]"})
    return report, selected


async def analyze_fight(
    client,
    report: ReportFights,
    selected: SelectedFight,
    *,
    translate: bool = True,
    resolver: AbilityNameResolver | None = None,
    overrides: dict[int, str] | None = None,
) -> AnalysisResult:
    actors = await get_report_actor_map(client, selected.report_code, translate=translate)
    query = EventsQuery(
        report_code=selected.report_code,
        fight_id=selected.fight_id,
        start_time=selected.start_time,
        end_time=selected.end_time,
        data_type="Casts",
        translate=translate,
    )
    cast_events = await get_all_events(client, query)

    boss_events = cast_events
    if not build_boss_timeline(cast_events, actors, selected.start_time):
        logger.info("No boss casts in Casts stream, fetching All events for fight %d",
                    selected.fight_id)
        boss_events = await get_all_events(client, replace(query, data_type="All"))

    merged_events = cast_events if boss_events is cast_events else cast_events + boss_events

    resolved: dict[int, str] = {}
    stats = None
    if resolver is not None:
        resolve = await resolver.resolve_missing(
            merged_events, actors.ability_by_game_id, include_known=True
        )
        resolved, stats = resolve.resolved, resolve.stats

    name_map = merge_ability_names(resolved, overrides)
    boss_timeline = build_boss_timeline(boss_events, actors, selected.start_time, name_map)
    players_casts = build_player_casts(cast_events, actors, selected.start_time, name_map)
    players_summary = build_player_summary(players_casts, selected.duration_ms)
    unresolved = count_unresolved_abilities(merged_events, actors, name_map)

    logger.info(
        "Analyzed %s fight %d: %d boss entries, %d players, %d unresolved ability ids",
        selected.report_code, selected.fight_id, len(boss_timeline),
        len(players_casts), len(unresolved),
    )
    return AnalysisResult(
        fights=report.fights,
        selected_fight=selected,
        boss_timeline=boss_timeline,
        players_casts=players_casts,
        players_summary=players_summary,
        unresolved_ability_counts=unresolved,
        resolver_stats=stats,
    )


async def analyze_report(
    client,
    request: AnalysisRequest,
    *,
    resolver: AbilityNameResolver | None = None,
    overrides: dict[int, str] | None = None,
    cache_store=None,
    result_ttl: timedelta = RESULT_TTL,
    unresolved_ttl: timedelta = UNRESOLVED_TTL,
) -> AnalysisResult:
    """Select a fight of the report and analyze it, reusing a cached result when fresh."""
    result_key = cache_key("result", request)
    if cache_store is not None:
        cached = await cache_store.get(result_key)
        if cached:
            logger.info("Serving cached analysis for %s", request.report_code)
            return AnalysisResult.model_validate(cached).model_copy(update={"cached": True})

    report, selected = await select_report_fight(client, request)
    result = await analyze_fight(
        client,
        report,
        selected,
        translate=request.translate,
        resolver=resolver,
        overrides=overrides,
    )

    if cache_store is not None:
        await cache_store.put(
            cache_key("analyze", request),
            {"unresolvedAbilityIds": sorted(result.unresolved_ability_counts)},
            unresolved_ttl,
        )
        await cache_store.put(
            result_key, result.model_dump(mode="json", by_alias=True), result_ttl
        )
    return result


async def analyze_ranking(
    client,
    rankings: RankingsResult,
    *,
    only_kill: bool = True,
    fight_id: int | None = None,
    translate: bool = True,
    resolver: AbilityNameResolver | None = None,
    overrides: dict[int, str] | None = None,
) -> AnalysisResult:
    """Analyze the fight behind the ranking at the result's rank index."""
    report, selected = await resolve_ranking_seed(
        client, rankings, only_kill=only_kill, fight_id=fight_id, translate=translate
    )
    return await analyze_fight(
        client, report, selected, translate=translate, resolver=resolver, overrides=overrides
    )
