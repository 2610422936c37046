"""Report-level lookups: fight list and master data."""

import logging

from pydantic import ValidationError

from kaiseki.fflogs.errors import MasterDataUnavailable, ReportNotFound
from kaiseki.fflogs.models import Actor, ActorMap, Fight, ReportFights
from kaiseki.fflogs.queries import (
    REPORT_FIGHTS,
    REPORT_FIGHTS_TRANSLATED,
    REPORT_MASTER_DATA,
    REPORT_MASTER_DATA_TRANSLATED,
)
from kaiseki.fflogs.variants import query_with_fallback, translate_variants

logger = logging.getLogger(__name__)


async def get_report_fights(client, report_code: str, translate: bool = False) -> ReportFights:
    variants = translate_variants(REPORT_FIGHTS_TRANSLATED, REPORT_FIGHTS, translate)
    raw = await query_with_fallback(client, variants, {"code": report_code})

    report = (raw.get("reportData") or {}).get("report")
    if report is None:
        raise ReportNotFound(report_code)

    fights: list[Fight] = []
    for row in report.get("fights") or []:
        try:
            fights.append(Fight.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed fight in %s: %s", report_code, exc)

    return ReportFights(report_code=report.get("code") or report_code, fights=fights)


async def get_report_actor_map(client, report_code: str, translate: bool = False) -> ActorMap:
    variants = translate_variants(REPORT_MASTER_DATA_TRANSLATED, REPORT_MASTER_DATA, translate)
    raw = await query_with_fallback(client, variants, {"code": report_code})

    report = (raw.get("reportData") or {}).get("report")
    if report is None or report.get("masterData") is None:
        raise MasterDataUnavailable(report_code)
    master = report["masterData"]

    actor_map = ActorMap()
    for row in master.get("actors") or []:
        try:
            actor = Actor.model_validate(row)
        except ValidationError as exc:
            logger.warning("Skipping malformed actor in %s: %s", report_code, exc)
            continue
        actor_map.by_id[actor.id] = actor

    for ability in master.get("abilities") or []:
        if not isinstance(ability, dict):
            continue
        name = ability.get("name")
        game_id = ability.get("gameID")
        # bool is an int subclass; exclude it explicitly
        if not name or not isinstance(game_id, int) or isinstance(game_id, bool):
            continue
        actor_map.ability_by_game_id[game_id] = name

    logger.debug(
        "Master data for %s: %d actors, %d abilities",
        report_code, len(actor_map.by_id), len(actor_map.ability_by_game_id),
    )
    return actor_map
