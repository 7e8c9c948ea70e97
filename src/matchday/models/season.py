"""Season and Week models.

See SeasonStatus for the lifecycle; transitions live in matchday.core.season.
"""

from __future__ import annotations

import uuid
from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from matchday.models.standings import StandingRow


class SeasonStatus(StrEnum):
    """Season lifecycle statuses.

    The str mixin lets a status compare equal to the raw value stored in the
    database (``season.status == SeasonStatus.ACTIVE``).
    """

    DRAFT = "draft"
    REGISTRATION = "registration"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SeasonSettings(BaseModel):
    games_per_week: int = Field(default=1, ge=1)
    playoff_teams: int = Field(default=4, ge=0)
    regular_season_weeks: int = Field(default=10, ge=1)
    round_robins: int = Field(default=1, ge=1)


class Week(BaseModel):
    """A date-bounded block of games. ``games`` holds game ids only."""

    index: int = Field(ge=1)
    start_date: date
    end_date: date
    games: list[str] = Field(default_factory=list)
    is_completed: bool = False


class Season(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    league_id: str
    name: str
    description: str = ""
    start_date: date
    end_date: date
    status: SeasonStatus = SeasonStatus.DRAFT
    teams: list[str] = Field(default_factory=list)
    weeks: list[Week] = Field(default_factory=list)
    settings: SeasonSettings = Field(default_factory=SeasonSettings)
    standings: list[StandingRow] = Field(default_factory=list)

    @field_validator("teams")
    @classmethod
    def _unique_teams(cls, teams: list[str]) -> list[str]:
        if len(set(teams)) != len(teams):
            msg = "A team can be registered for a season only once"
            raise ValueError(msg)
        return teams

    @property
    def game_ids(self) -> list[str]:
        """All scheduled game ids in week order."""
        return [game_id for week in self.weeks for game_id in week.games]


class SeasonProgress(BaseModel):
    total_weeks: int
    completed_weeks: int
    percentage: int
