from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class FFLogsBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Fight(FFLogsBaseModel):
    id: int
    encounter_id: int = Field(default=0, alias="encounterID")
    name: str = ""
    kill: bool = False
    start_time: int
    end_time: int
    difficulty: int | None = None
    boss: int | None = None

    @field_validator("kill", mode="before")
    @classmethod
    def _null_kill(cls, v):
        # Trash pulls come back with kill: null
        return False if v is None else v

    @model_validator(mode="after")
    def _check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError(
                f"fight {self.id}: endTime ({self.end_time}) must be after "
                f"startTime ({self.start_time})"
            )
        return self

    @property
    def duration_ms(self) -> int:
        return self.end_time - self.start_time


class Actor(FFLogsBaseModel):
    id: int
    game_id: int | None = Field(default=None, alias="gameID")
    name: str | None = None
    type: str | None = None
    sub_type: str | None = None
    pet_owner: int | None = None


class AbilityRef(FFLogsBaseModel):
    model_config = ConfigDict(frozen=True)

    game_id: int | None = Field(default=None, alias="gameID")
    guid: int | None = None
    name: str | None = None


class CastEvent(FFLogsBaseModel):
    """One event row from the events API. Unknown upstream fields are dropped."""

    model_config = ConfigDict(frozen=True)

    timestamp: float
    type: str = ""
    source_id: int | None = Field(default=None, alias="sourceID")
    target_id: int | None = Field(default=None, alias="targetID")
    ability_game_id: int | None = Field(default=None, alias="abilityGameID")
    ability: AbilityRef | None = None

    @property
    def ability_id(self) -> int | None:
        if self.ability_game_id is not None:
            return self.ability_game_id
        if self.ability is not None:
            if self.ability.game_id is not None:
                return self.ability.game_id
            return self.ability.guid
        return None


@dataclass
class ActorMap:
    by_id: dict[int, Actor] = field(default_factory=dict)
    ability_by_game_id: dict[int, str] = field(default_factory=dict)


class ReportFights(FFLogsBaseModel):
    report_code: str
    fights: list[Fight] = []


class SelectedFight(FFLogsBaseModel):
    model_config = ConfigDict(frozen=True)

    report_code: str
    fight_id: int = Field(alias="fightID")
    encounter_id: int = Field(alias="encounterID")
    name: str
    start_time: int
    end_time: int
    duration_ms: int
    difficulty: int | None = None
    kill: bool
    boss: int | None = None
    reason: str

    @classmethod
    def from_fight(cls, report_code: str, fight: Fight, reason: str) -> "SelectedFight":
        return cls(
            report_code=report_code,
            fight_id=fight.id,
            encounter_id=fight.encounter_id,
            name=fight.name,
            start_time=fight.start_time,
            end_time=fight.end_time,
            duration_ms=fight.duration_ms,
            difficulty=fight.difficulty,
            kill=fight.kill,
            boss=fight.boss,
            reason=reason,
        )


class RankingEntry(FFLogsBaseModel):
    rank: int = 0
    amount: float = 0
    report_code: str
    fight_id: int = Field(alias="fightID")
    best_percent: float | None = None
    highest_rdps: float | None = None
    median_rdps: float | None = None
    kill: bool | None = None
    fastest_sec: float | None = None
    character_name: str | None = None
    server_name: str | None = None
    region: str | None = None
    class_name: str | None = None
    spec_name: str | None = None


class RankingsResult(FFLogsBaseModel):
    encounter_id: int = Field(alias="encounterID")
    metric: str
    difficulty: int | None = None
    page_size: int
    rank_index: int
    filters: dict[str, Any] = {}
    rankings: list[RankingEntry] = []
    resolved_difficulty: int | None = None
    resolved_partition: int | None = None
    fallback_applied: bool = False
    attempted: list[str] = []

    @property
    def selected(self) -> RankingEntry:
        return self.rankings[self.rank_index]


class TimelineEntry(FFLogsBaseModel):
    t: float
    source: str
    ability: str
    ability_id: int


class PlayerCastEntry(TimelineEntry):
    source_id: int


class AbilitySummary(FFLogsBaseModel):
    ability: str
    ability_id: int
    count: int
    first_use: float
    last_use: float
    avg_interval: float | None = None
    cpm: float


class PlayerSummary(FFLogsBaseModel):
    player: str
    player_id: int
    total_casts: int
    abilities: list[AbilitySummary] = []


class EncounterCandidate(FFLogsBaseModel):
    id: int
    name: str
    zone_id: int | None = None
    zone_name: str | None = None


class EncounterRef(FFLogsBaseModel):
    id: int
    name: str


class EncounterGroup(FFLogsBaseModel):
    zone_id: int
    zone_name: str
    encounters: list[EncounterRef] = []
