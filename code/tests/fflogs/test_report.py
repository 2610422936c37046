from unittest.mock import AsyncMock

import pytest

from kaiseki.fflogs.errors import FFLogsAPIError, MasterDataUnavailable, ReportNotFound
from kaiseki.fflogs.report import get_report_actor_map, get_report_fights


def _fights_payload(fights, code="abcdEFGH1234"):
    return {"reportData": {"report": {"code": code, "fights": fights}}}


class TestGetReportFights:
    async def test_parses_fights(self):
        client = AsyncMock()
        client.query.return_value = _fights_payload([
            {"id": 1, "encounterID": 88, "name": "Boss", "kill": True,
             "startTime": 0, "endTime": 300000, "difficulty": 101},
            {"id": 2, "encounterID": 0, "name": "Trash", "kill": None,
             "startTime": 310000, "endTime": 320000},
        ])

        report = await get_report_fights(client, "abcdEFGH1234")

        assert report.report_code == "abcdEFGH1234"
        assert [f.id for f in report.fights] == [1, 2]
        assert report.fights[0].duration_ms == 300000
        assert report.fights[1].kill is False

    async def test_skips_malformed_fight(self):
        client = AsyncMock()
        client.query.return_value = _fights_payload([
            {"id": 1, "startTime": 500, "endTime": 100},
            {"id": 2, "startTime": 0, "endTime": 100},
        ])

        report = await get_report_fights(client, "abcdEFGH1234")

        assert [f.id for f in report.fights] == [2]

    async def test_missing_report_raises(self):
        client = AsyncMock()
        client.query.return_value = {"reportData": {"report": None}}

        with pytest.raises(ReportNotFound, match="abcdEFGH1234"):
            await get_report_fights(client, "abcdEFGH1234")

    async def test_translate_fallback(self):
        client = AsyncMock()
        client.query.side_effect = [
            FFLogsAPIError("GraphQL errors: Unknown argument 'translate'"),
            _fights_payload([{"id": 1, "startTime": 0, "endTime": 100}]),
        ]

        report = await get_report_fights(client, "abcdEFGH1234", translate=True)

        assert len(report.fights) == 1
        assert client.query.call_count == 2


class TestGetReportActorMap:
    async def test_builds_actor_and_ability_maps(self):
        client = AsyncMock()
        client.query.return_value = {"reportData": {"report": {"masterData": {
            "actors": [
                {"id": 1, "name": "Alice", "type": "Player", "subType": "Sage"},
                {"id": 50, "gameID": 9020, "name": "Boss", "type": "NPC", "subType": "Boss"},
                {"id": 60, "name": "Carbuncle", "type": "Pet", "petOwner": 1},
            ],
            "abilities": [
                {"gameID": 7, "name": "Fire"},
                {"gameID": 8, "name": ""},
                {"gameID": "9", "name": "String id"},
                {"gameID": True, "name": "Bool id"},
                {"name": "No id"},
            ],
        }}}}

        actors = await get_report_actor_map(client, "abcdEFGH1234")

        assert set(actors.by_id) == {1, 50, 60}
        assert actors.by_id[50].game_id == 9020
        assert actors.by_id[60].pet_owner == 1
        assert actors.ability_by_game_id == {7: "Fire"}

    async def test_skips_malformed_actor(self, caplog):
        client = AsyncMock()
        client.query.return_value = {"reportData": {"report": {"masterData": {
            "actors": [
                {"name": "No id", "type": "NPC"},
                {"id": "not-a-number", "name": "Bad id"},
                {"id": 1, "name": "Alice", "type": "Player"},
            ],
            "abilities": [],
        }}}}

        with caplog.at_level("WARNING", logger="kaiseki.fflogs.report"):
            actors = await get_report_actor_map(client, "abcdEFGH1234")

        assert set(actors.by_id) == {1}
        assert caplog.text.count("Skipping malformed actor") == 2

    @pytest.mark.parametrize("report", [None, {"masterData": None}])
    async def test_missing_master_data_raises(self, report):
        client = AsyncMock()
        client.query.return_value = {"reportData": {"report": report}}

        with pytest.raises(MasterDataUnavailable):
            await get_report_actor_map(client, "abcdEFGH1234")
