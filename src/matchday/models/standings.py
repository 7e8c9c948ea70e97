"""Derived aggregation rows: league table and scorer leaderboard."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

FormResult = Literal["W", "D", "L"]


class StandingRow(BaseModel):
    """One team's line in the league table."""

    team_id: str
    team_name: str
    position: int = 0
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0
    last5: list[FormResult] = Field(default_factory=list, max_length=5)
    win_percentage: float = 0.0


class ScorerRow(BaseModel):
    player_id: str
    player_name: str
    team_id: str
    goals: int
