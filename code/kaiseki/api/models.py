"""Request and response bodies for the HTTP API."""

from pydantic import Field

from kaiseki.fflogs.models import (
    EncounterCandidate,
    EncounterGroup,
    FFLogsBaseModel,
    Fight,
    RankingEntry,
)


class AnalyzeBody(FFLogsBaseModel):
    report_code: str = ""
    strategy: str = "best"
    only_kill: bool = True
    difficulty: int | None = None
    fight_id: int | None = Field(default=None, alias="fightID")
    locale: str | None = None
    translate: bool | None = None
    xivapi_language: str | None = None
    # Rankings mode: analyze the fight behind a ranking instead of a given report
    encounter_id: int | None = Field(default=None, alias="encounterID")
    metric: str | None = None
    rank_index: int = 0
    page_size: int | None = None
    job: str | None = None
    partition: int | None = None


class FightsResponse(FFLogsBaseModel):
    report_code: str
    fights: list[Fight]


class RankingsSearchResponse(FFLogsBaseModel):
    rankings: list[RankingEntry]
    resolved_encounter_id: int
    resolved_metric: str
    resolved_difficulty: int | None = None
    resolved_partition: int | None = None
    resolved_page_size: int
    resolved_job: str | None = None
    fallback_applied: bool = False
    attempted: list[str] = []


class EncounterSearchResponse(FFLogsBaseModel):
    query: str
    encounters: list[EncounterCandidate]


class EncounterGroupsResponse(FFLogsBaseModel):
    groups: list[EncounterGroup]


class AbilityIconsResponse(FFLogsBaseModel):
    icons: dict[int, str]
