import pytest
from pydantic import ValidationError

from kaiseki.fflogs.models import CastEvent, Fight, RankingsResult, SelectedFight


class TestFight:
    def test_parses_camel_case(self):
        fight = Fight.model_validate({
            "id": 3, "encounterID": 88, "name": "Boss", "kill": True,
            "startTime": 1000, "endTime": 61000, "difficulty": 101,
        })
        assert fight.encounter_id == 88
        assert fight.duration_ms == 60000

    def test_null_kill_is_false(self):
        fight = Fight.model_validate({"id": 1, "kill": None, "startTime": 0, "endTime": 1})
        assert fight.kill is False

    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError, match="must be after"):
            Fight.model_validate({"id": 1, "startTime": 10, "endTime": 10})


class TestCastEvent:
    def test_ability_id_precedence(self):
        assert CastEvent.model_validate(
            {"timestamp": 1, "abilityGameID": 7, "ability": {"gameID": 8}}
        ).ability_id == 7
        assert CastEvent.model_validate(
            {"timestamp": 1, "ability": {"gameID": 8, "guid": 9}}
        ).ability_id == 8
        assert CastEvent.model_validate({"timestamp": 1, "ability": {"guid": 9}}).ability_id == 9
        assert CastEvent.model_validate({"timestamp": 1}).ability_id is None

    def test_unknown_fields_are_dropped(self):
        event = CastEvent.model_validate({"timestamp": 5, "type": "cast", "fight": 3, "x": 1})
        assert event.type == "cast"
        assert not hasattr(event, "fight")


def test_selected_fight_dumps_wire_names():
    fight = Fight(id=3, encounterID=88, name="Boss", kill=True, startTime=0, endTime=500)
    selected = SelectedFight.from_fight("abcdEFGH1234", fight, "strategy=best")
    dumped = selected.model_dump(by_alias=True)
    assert dumped["fightID"] == 3
    assert dumped["encounterID"] == 88
    assert dumped["reportCode"] == "abcdEFGH1234"
    assert dumped["durationMs"] == 500


def test_rankings_result_selected():
    result = RankingsResult.model_validate({
        "encounterID": 88, "metric": "dps", "pageSize": 10, "rankIndex": 1,
        "rankings": [
            {"reportCode": "abcdEFGH1234", "fightID": 1},
            {"reportCode": "abcdEFGH1234", "fightID": 2},
        ],
    })
    assert result.selected.fight_id == 2
