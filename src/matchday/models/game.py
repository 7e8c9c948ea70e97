"""Game and GameEvent models.

A Game references its season and teams by id only. ``score`` is the
recorded counter; ``events`` are kept in recording order, which is not
necessarily minute order.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

# Longest recordable minute, extra time included.
MAX_EVENT_MINUTE = 120


class GameStatus(StrEnum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"


class EventType(StrEnum):
    GOAL = "goal"
    OWN_GOAL = "own_goal"
    ASSIST = "assist"
    YELLOW_CARD = "yellow_card"
    RED_CARD = "red_card"
    SUBSTITUTION = "substitution"
    PENALTY = "penalty"


class Venue(BaseModel):
    name: str
    address: str | None = None
    capacity: int | None = Field(default=None, ge=0)


class Score(BaseModel):
    home: int = Field(default=0, ge=0)
    away: int = Field(default=0, ge=0)


class GameEvent(BaseModel):
    """A single recorded moment: a goal, card, substitution, etc."""

    type: EventType
    player_id: str
    team_id: str
    minute: int = Field(ge=0, le=MAX_EVENT_MINUTE)
    description: str | None = None


class Game(BaseModel):
    """One fixture of a season, from pending through completion."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    season_id: str
    week_index: int | None = Field(default=None, ge=1)
    home_team_id: str
    away_team_id: str
    scheduled_date: datetime
    actual_date: datetime | None = None
    venue: Venue | None = None
    status: GameStatus = GameStatus.PENDING
    score: Score = Field(default_factory=Score)
    events: list[GameEvent] = Field(default_factory=list)
    notes: str = ""

    @model_validator(mode="after")
    def _distinct_teams(self) -> Game:
        if self.home_team_id == self.away_team_id:
            msg = "Home and away teams cannot be the same"
            raise ValueError(msg)
        return self

    @property
    def team_ids(self) -> tuple[str, str]:
        return (self.home_team_id, self.away_team_id)

    def opponent_of(self, team_id: str) -> str:
        """Return the other team in this game."""
        return self.away_team_id if team_id == self.home_team_id else self.home_team_id
