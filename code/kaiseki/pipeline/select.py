"""Choose which fight of a report to analyze."""

import logging
from dataclasses import dataclass

from kaiseki.fflogs.errors import FightNotFound, NoFightsInReport, UnsupportedStrategy
from kaiseki.fflogs.models import Fight, SelectedFight

logger = logging.getLogger(__name__)

STRATEGIES = ("best", "lastKill", "firstKill", "longest")
BY_BOSS_PREFIX = "byBoss:"


@dataclass(frozen=True)
class PickFightOptions:
    report_code: str
    strategy: str = "best"
    only_kill: bool = True
    difficulty: int | None = None
    override_fight_id: int | None = None


def parse_by_boss(strategy: str) -> int | None:
    if not strategy.startswith(BY_BOSS_PREFIX):
        return None
    try:
        return int(strategy[len(BY_BOSS_PREFIX):])
    except ValueError:
        return None


def _best_key(fight: Fight) -> tuple:
    return (fight.kill, fight.difficulty or 0, fight.duration_ms, fight.start_time)


def pick_fight(fights: list[Fight], options: PickFightOptions) -> SelectedFight:
    if not fights:
        raise NoFightsInReport()

    if options.override_fight_id is not None:
        direct = next((f for f in fights if f.id == options.override_fight_id), None)
        if direct is None:
            raise FightNotFound(
                f"--fight-id {options.override_fight_id} not found in report fights."
            )
        return SelectedFight.from_fight(options.report_code, direct, "debug override (--fight-id)")

    strategy = options.strategy
    by_boss = parse_by_boss(strategy)
    if strategy.startswith(BY_BOSS_PREFIX) and by_boss is None:
        raise UnsupportedStrategy(strategy)

    candidates = list(fights)
    if options.only_kill:
        kills = [f for f in candidates if f.kill]
        if kills:
            candidates = kills

    if by_boss is not None:
        candidates = [f for f in candidates if f.boss == by_boss or f.encounter_id == by_boss]
        if not candidates:
            raise FightNotFound(f"No fights matched strategy byBoss:{by_boss}.")

    if options.difficulty is not None:
        preferred = [f for f in candidates if f.difficulty == options.difficulty]
        if preferred:
            candidates = preferred

    if strategy in ("lastKill", "firstKill"):
        kills = sorted((f for f in candidates if f.kill), key=lambda f: f.start_time)
        if not kills:
            raise FightNotFound(f"No kill fights available for strategy={strategy}.")
        picked = kills[-1] if strategy == "lastKill" else kills[0]
    elif strategy == "longest":
        picked = max(candidates, key=lambda f: f.duration_ms)
    elif strategy == "best" or by_boss is not None:
        picked = max(candidates, key=_best_key)
    else:
        raise UnsupportedStrategy(strategy)

    logger.debug(
        "Picked fight %d (%s) of %d candidates with strategy=%s",
        picked.id, picked.name, len(candidates), strategy,
    )
    return SelectedFight.from_fight(options.report_code, picked, f"strategy={strategy}")
