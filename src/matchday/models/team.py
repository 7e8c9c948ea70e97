"""Team and Player reference models.

Both are owned by the team-management side of the league; the scheduler and
aggregators only read them (ids for pairing, names for tie-breaks).
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


def _uuid() -> str:
    return str(uuid.uuid4())


class Team(BaseModel):
    """A registered club."""

    id: str = Field(default_factory=_uuid)
    name: str
    city: str = ""
    color: str = "#000000"
    color_secondary: str = "#ffffff"


class Player(BaseModel):
    """A rostered player. Assumed to play for a single team per season."""

    id: str = Field(default_factory=_uuid)
    first_name: str
    last_name: str
    team_id: str | None = None
    jersey_number: int | None = Field(default=None, ge=0, le=99)
    position: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
