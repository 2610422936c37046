"""Shared actor maps and event builders for pipeline tests."""

import pytest

from kaiseki.fflogs.models import Actor, ActorMap, CastEvent


def cast(ts, source, ability, type_="cast", name=None):
    payload = {"timestamp": ts, "type": type_, "sourceID": source, "abilityGameID": ability}
    if name is not None:
        payload["ability"] = {"gameID": ability, "name": name}
    return CastEvent.model_validate(payload)


@pytest.fixture
def actors():
    return ActorMap(
        by_id={
            1: Actor(id=1, name="Alice", type="Player", sub_type="Sage"),
            2: Actor(id=2, name="Bob", type="Player", sub_type="Dancer"),
            10: Actor(id=10, name="Carbuncle", type="Pet", pet_owner=1),
            50: Actor(id=50, name="Black Cat", type="NPC", sub_type="Boss"),
            51: Actor(id=51, name="Copycat", type="NPC", sub_type="NPC"),
        },
        ability_by_game_id={100: "Fire", 101: "Ice", 200: "Mouser"},
    )
