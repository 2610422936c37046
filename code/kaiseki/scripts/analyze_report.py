"""Analyze one FFLogs fight and write the results as JSON files.

Report mode picks a fight from ``--report``; rankings mode (``--rankings``)
analyzes the fight behind the ranking at ``--rank-index``.
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from kaiseki.abilities.cache import JsonFileNameCache
from kaiseki.abilities.overrides import load_ability_overrides
from kaiseki.abilities.xivapi import AbilityNameResolver
from kaiseki.config import Settings, get_settings
from kaiseki.fflogs.factory import FFLogsFactory
from kaiseki.fflogs.models import PlayerSummary, RankingsResult, SelectedFight
from kaiseki.fflogs.rankings import RankingsParams, get_rankings
from kaiseki.pipeline.analyze import (
    AnalysisRequest,
    AnalysisResult,
    analyze_ranking,
    analyze_report,
)

logger = logging.getLogger(__name__)

TOP_PLAYERS = 10


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze an FFLogs fight timeline")
    parser.add_argument("--report", help="FFLogs report code (report mode)")
    parser.add_argument(
        "--rankings", action="store_true",
        help="Pick the fight from encounter rankings instead of --report",
    )
    parser.add_argument("--pick", default="best", help="best, lastKill or byBoss:<encounterId>")
    parser.add_argument(
        "--only-kill", action=argparse.BooleanOptionalAction, default=True,
        help="Only consider kills when picking a fight",
    )
    parser.add_argument("--difficulty", type=int)
    parser.add_argument("--fight-id", type=int, help="Analyze this fight id directly")

    parser.add_argument("--encounter-id", type=int)
    parser.add_argument("--metric", help="Rankings metric, e.g. dps or speed")
    parser.add_argument("--page-size", type=int, default=10)
    parser.add_argument("--rank-index", type=int, default=0)
    parser.add_argument("--region")
    parser.add_argument("--server")
    parser.add_argument("--job", help="Job filter: abbreviation, name or class id")
    parser.add_argument("--partition", type=int)

    parser.add_argument(
        "--translate", action=argparse.BooleanOptionalAction, default=None,
        help="Ask FFLogs for translated names (default from settings)",
    )
    parser.add_argument("--locale", help="Accept-Language sent to FFLogs")
    parser.add_argument(
        "--xivapi-fallback", action=argparse.BooleanOptionalAction, default=None,
        help="Resolve ability names via XIVAPI (default from settings)",
    )
    parser.add_argument("--xivapi-lang")
    parser.add_argument("--xivapi-base-url")
    parser.add_argument("--xivapi-cache-path")
    parser.add_argument("--ability-overrides-path")
    parser.add_argument("--out-dir", help="Directory for the JSON outputs")

    args = parser.parse_args(argv)
    if args.rankings:
        if args.encounter_id is None or not args.metric:
            parser.error("rankings mode requires --encounter-id and --metric")
    elif not args.report:
        parser.error("report mode requires --report <reportCode> (or use --rankings)")
    return args


def build_resolver(args: argparse.Namespace, settings: Settings) -> AbilityNameResolver | None:
    enabled = settings.xivapi.enabled if args.xivapi_fallback is None else args.xivapi_fallback
    if not enabled:
        return None
    cfg = settings.xivapi
    return AbilityNameResolver(
        JsonFileNameCache(args.xivapi_cache_path or cfg.cache_path),
        base_url=args.xivapi_base_url or cfg.base_url,
        language=args.xivapi_lang or cfg.language,
        max_retries=cfg.max_retries,
        timeout_ms=cfg.timeout_ms,
        concurrency=cfg.concurrency,
    )


def rankings_params(args: argparse.Namespace) -> RankingsParams:
    return RankingsParams(
        encounter_id=args.encounter_id,
        metric=args.metric,
        difficulty=args.difficulty,
        page_size=args.page_size,
        rank_index=args.rank_index,
        region=args.region,
        server=args.server,
        class_name=args.job,
        partition=args.partition,
    )


async def analyze(
    client, args: argparse.Namespace, settings: Settings
) -> tuple[AnalysisResult, RankingsResult | None]:
    translate = settings.fflogs.translate if args.translate is None else args.translate
    resolver = build_resolver(args, settings)
    overrides = load_ability_overrides(
        args.ability_overrides_path or settings.abilities.overrides_path
    )

    if args.rankings:
        rankings = await get_rankings(client, rankings_params(args))
        result = await analyze_ranking(
            client,
            rankings,
            only_kill=args.only_kill,
            fight_id=args.fight_id,
            translate=translate,
            resolver=resolver,
            overrides=overrides,
        )
        return result, rankings

    request = AnalysisRequest(
        report_code=args.report,
        strategy=args.pick,
        only_kill=args.only_kill,
        difficulty=args.difficulty,
        fight_id=args.fight_id,
        locale=args.locale or settings.fflogs.locale,
        translate=translate,
        xivapi_language=args.xivapi_lang,
    )
    result = await analyze_report(client, request, resolver=resolver, overrides=overrides)
    return result, None


def _dump(value: Any) -> Any:
    if isinstance(value, list):
        return [_dump(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _dump(v) for k, v in value.items()}
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", by_alias=True)
    return value


def write_json(out_dir: Path, name: str, payload: Any) -> Path:
    path = out_dir / name
    path.write_text(
        json.dumps(_dump(payload), ensure_ascii=False, indent=2) + "\n", encoding="utf-8"
    )
    return path


def write_outputs(
    out_dir: Path,
    args: argparse.Namespace,
    result: AnalysisResult,
    rankings: RankingsResult | None,
    settings: Settings,
) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    if rankings is not None:
        written.append(write_json(out_dir, "rankings.json", rankings))
    else:
        written.append(write_json(out_dir, "fights.json", {
            "reportCode": result.selected_fight.report_code,
            "options": {
                "strategy": args.pick,
                "onlyKill": args.only_kill,
                "translate": args.translate,
                "locale": args.locale,
                "difficulty": args.difficulty,
                "fightID": args.fight_id,
            },
            "selected": result.selected_fight,
            "fights": result.fights,
        }))
    written.append(write_json(out_dir, "selected_fight.json", result.selected_fight))
    written.append(write_json(out_dir, "boss_timeline.json", result.boss_timeline))
    written.append(write_json(out_dir, "players_casts.json", result.players_casts))
    written.append(write_json(out_dir, "players_summary.json", result.players_summary))
    written.append(
        write_json(out_dir, "unresolved_abilities.json", result.unresolved_ability_counts)
    )
    if result.resolver_stats is not None:
        cfg = settings.xivapi
        report = result.resolver_stats.model_dump(mode="json", by_alias=True)
        report.update({
            "cachePath": args.xivapi_cache_path or cfg.cache_path,
            "baseUrl": args.xivapi_base_url or cfg.base_url,
            "language": args.xivapi_lang or cfg.language,
        })
        written.append(write_json(out_dir, "xivapi_resolve_report.json", report))
    return written


def format_selected_fight(selected: SelectedFight) -> str:
    difficulty = selected.difficulty if selected.difficulty is not None else "n/a"
    return "\n".join([
        "Selected Fight",
        "-------------",
        f"reportCode : {selected.report_code}",
        f"fightID    : {selected.fight_id}",
        f"encounter  : {selected.encounter_id} ({selected.name})",
        f"kill       : {str(selected.kill).lower()}",
        f"difficulty : {difficulty}",
        f"duration   : {selected.duration_ms / 1000:.1f}s",
        f"reason     : {selected.reason}",
    ])


def format_top_players(summary: list[PlayerSummary], limit: int = TOP_PLAYERS) -> str:
    lines = [
        "Top Players By Cast Count",
        "-------------------------",
        f"{'Player':<24} {'TotalCasts':>10} TopAbility(count)",
    ]
    for row in summary[:limit]:
        top = row.abilities[0] if row.abilities else None
        top_text = f"{top.ability} ({top.count})" if top else "-"
        lines.append(f"{row.player:<24} {row.total_casts:>10} {top_text}")
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> AnalysisResult:
    settings = get_settings()
    factory = FFLogsFactory(settings)
    await factory.start()
    try:
        async with factory(args.locale) as client:
            result, rankings = await analyze(client, args, settings)
    finally:
        await factory.stop()

    out_dir = Path(args.out_dir or settings.output_dir)
    written = write_outputs(out_dir, args, result, rankings, settings)
    logger.info("Wrote %d files to %s", len(written), out_dir)

    print(format_selected_fight(result.selected_fight))
    print()
    print(format_top_players(result.players_summary))
    return result


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=get_settings().log_level)
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
