from kaiseki.fflogs.models import ActorMap
from kaiseki.pipeline.boss_timeline import (
    build_boss_timeline,
    infer_boss_by_event_count,
    is_enemy_candidate,
)

from tests.pipeline.conftest import cast


def test_boss_is_enemy_with_most_events(actors):
    events = [cast(1000 + i, 51, 200) for i in range(5)]
    events += [cast(2000 + i, 50, 200) for i in range(12)]
    events += [cast(3000 + i, 1, 100) for i in range(30)]
    assert infer_boss_by_event_count(events, actors) == 50


def test_pets_and_players_are_not_candidates(actors):
    assert not is_enemy_candidate(actors.by_id[1])
    assert not is_enemy_candidate(actors.by_id[10])
    assert is_enemy_candidate(actors.by_id[50])
    assert is_enemy_candidate(None)


def test_no_enemies_yields_empty_timeline(actors):
    events = [cast(1000, 1, 100), cast(2000, 10, 101)]
    assert build_boss_timeline(events, actors, 0) == []


def test_timeline_uses_cast_like_events_sorted(actors):
    events = [
        cast(5000, 50, 200, type_="damage"),
        cast(3000, 50, 200, type_="cast"),
        cast(1000, 50, 201, type_="begincast"),
        cast(2000, 50, 200, type_="damage"),
    ]
    timeline = build_boss_timeline(events, actors, fight_start=1000)

    assert [(e.t, e.ability_id) for e in timeline] == [(0.0, 201), (2.0, 200)]
    assert timeline[0].source == "Black Cat"
    assert timeline[0].ability == "Ability#201"
    assert timeline[1].ability == "Mouser"


def test_timeline_falls_back_to_all_boss_events(actors):
    events = [cast(4000, 50, 200, type_="damage"), cast(2000, 50, 200, type_="damage")]
    timeline = build_boss_timeline(events, actors, fight_start=0)
    assert [e.t for e in timeline] == [2.0, 4.0]


def test_name_map_applies(actors):
    events = [cast(1000, 50, 200)]
    timeline = build_boss_timeline(events, actors, 0, name_map={200: "ネコパンチ"})
    assert timeline[0].ability == "ネコパンチ"


def test_unknown_actor_named_by_id():
    events = [cast(1000, 77, 5)]
    timeline = build_boss_timeline(events, ActorMap(), 0)
    assert timeline[0].source == "Actor#77"


def test_strategy_is_pluggable(actors):
    events = [cast(1000, 50, 200)] * 3 + [cast(2000, 51, 200)]
    timeline = build_boss_timeline(events, actors, 0, strategy=lambda evs, am: 51)
    assert [e.source for e in timeline] == ["Copycat"]
