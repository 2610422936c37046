"""Per-player cast timelines."""

from kaiseki.fflogs.models import ActorMap, CastEvent, PlayerCastEntry
from kaiseki.pipeline.naming import ability_display_name, actor_name, is_player


def player_key(name: str, actor_id: int) -> str:
    return f"{name}#{actor_id}"


def build_player_casts(
    events: list[CastEvent],
    actors: ActorMap,
    fight_start: float,
    name_map: dict[int, str] | None = None,
) -> dict[str, list[PlayerCastEntry]]:
    """Group player events into ``"<name>#<actorId>"`` keyed timelines sorted by time."""
    grouped: dict[int, list[PlayerCastEntry]] = {}

    for event in events:
        if event.source_id is None:
            continue
        if not is_player(actors.by_id.get(event.source_id)):
            continue

        name, ability_id = ability_display_name(event, actors, name_map)
        grouped.setdefault(event.source_id, []).append(PlayerCastEntry(
            t=(event.timestamp - fight_start) / 1000,
            source=actor_name(actors, event.source_id),
            source_id=event.source_id,
            ability=name,
            ability_id=ability_id,
        ))

    result: dict[str, list[PlayerCastEntry]] = {}
    for source_id, entries in grouped.items():
        entries.sort(key=lambda e: e.t)
        result[player_key(entries[0].source, source_id)] = entries
    return result
