"""Actor classification and ability display names."""

from collections import Counter

from kaiseki.fflogs.models import Actor, ActorMap, CastEvent

UNKNOWN_ABILITY_ID = -1


def is_player(actor: Actor | None) -> bool:
    return actor is not None and actor.type == "Player"


def is_pet(actor: Actor | None) -> bool:
    return actor is not None and (actor.type == "Pet" or actor.pet_owner is not None)


def placeholder(ability_id: int) -> str:
    return f"Ability#{ability_id}"


def actor_name(actors: ActorMap, actor_id: int) -> str:
    actor = actors.by_id.get(actor_id)
    return (actor.name if actor else None) or f"Actor#{actor_id}"


def event_ability_id(event: CastEvent) -> int:
    ability_id = event.ability_id
    return UNKNOWN_ABILITY_ID if ability_id is None else ability_id


def _known_name(
    event: CastEvent, actors: ActorMap, name_map: dict[int, str] | None
) -> str | None:
    ability_id = event_ability_id(event)
    if name_map and name_map.get(ability_id):
        return name_map[ability_id]
    if event.ability is not None and event.ability.name:
        return event.ability.name
    return actors.ability_by_game_id.get(ability_id)


def ability_display_name(
    event: CastEvent, actors: ActorMap, name_map: dict[int, str] | None = None
) -> tuple[str, int]:
    """Return ``(name, ability_id)`` for an event; never fails.

    Precedence: merged name map (overrides, then dictionary lookups),
    the name bundled with the event, report master data, placeholder.
    """
    ability_id = event_ability_id(event)
    return _known_name(event, actors, name_map) or placeholder(ability_id), ability_id


def merge_ability_names(
    resolved: dict[int, str], overrides: dict[int, str] | None = None
) -> dict[int, str]:
    merged = {k: v for k, v in resolved.items() if v}
    merged.update({k: v for k, v in (overrides or {}).items() if v})
    return merged


def count_unresolved_abilities(
    events: list[CastEvent], actors: ActorMap, name_map: dict[int, str] | None = None
) -> dict[int, int]:
    """Per ability id, how many events would display the placeholder name."""
    counts: Counter[int] = Counter()
    for event in events:
        ability_id = event_ability_id(event)
        if ability_id <= 0:
            continue
        if _known_name(event, actors, name_map) is None:
            counts[ability_id] += 1
    return dict(counts.most_common())
