"""Boss ability timeline.

Boss identification is a heuristic: the non-player, non-pet actor that
produced the most events in the fight. It is wrong for fights where
adds outnumber the boss's own casts. Pass another ``strategy`` to
``build_boss_timeline`` for those.
"""

import logging
from collections import Counter
from collections.abc import Callable

from kaiseki.fflogs.models import Actor, ActorMap, CastEvent, TimelineEntry
from kaiseki.pipeline.naming import ability_display_name, actor_name, is_pet, is_player

logger = logging.getLogger(__name__)

CAST_TYPES = frozenset({"cast", "begincast"})

BossStrategy = Callable[[list[CastEvent], ActorMap], int | None]


def is_enemy_candidate(actor: Actor | None) -> bool:
    # Actors missing from master data are treated as enemies
    if actor is None:
        return True
    return not (is_player(actor) or is_pet(actor))


def infer_boss_by_event_count(events: list[CastEvent], actors: ActorMap) -> int | None:
    counts: Counter[int] = Counter()
    for event in events:
        if event.source_id is None:
            continue
        if is_enemy_candidate(actors.by_id.get(event.source_id)):
            counts[event.source_id] += 1
    if not counts:
        return None
    # most_common keeps first-seen order on ties
    return counts.most_common(1)[0][0]


def build_boss_timeline(
    events: list[CastEvent],
    actors: ActorMap,
    fight_start: float,
    name_map: dict[int, str] | None = None,
    strategy: BossStrategy = infer_boss_by_event_count,
) -> list[TimelineEntry]:
    boss_id = strategy(events, actors)
    if boss_id is None:
        return []

    boss_name = actor_name(actors, boss_id)
    boss_events = [e for e in events if e.source_id == boss_id]
    cast_like = [e for e in boss_events if e.type.lower() in CAST_TYPES]
    picked = sorted(cast_like or boss_events, key=lambda e: e.timestamp)

    timeline = []
    for event in picked:
        name, ability_id = ability_display_name(event, actors, name_map)
        timeline.append(TimelineEntry(
            t=(event.timestamp - fight_start) / 1000,
            source=boss_name,
            ability=name,
            ability_id=ability_id,
        ))

    logger.debug(
        "Boss timeline: actor %d (%s), %d entries (%d cast-like)",
        boss_id, boss_name, len(timeline), len(cast_like),
    )
    return timeline
