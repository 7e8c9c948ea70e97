"""League seeding: YAML config loading and demo league generation.

Supports two flows:
1. Load from YAML (hand-authored league files)
2. Generate programmatically (demo data, tests)

Either way ``seed_league`` writes the league, its teams and rosters, and an
optional draft season through the repository.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel, Field, model_validator

from matchday.core.manager import SeasonManager
from matchday.models.season import SeasonSettings

if TYPE_CHECKING:
    from matchday.db.repository import Repository

logger = logging.getLogger(__name__)


class PlayerConfig(BaseModel):
    first_name: str
    last_name: str
    jersey_number: int | None = Field(default=None, ge=0, le=99)
    position: str = ""


class TeamConfig(BaseModel):
    name: str
    city: str = ""
    color: str = "#000000"
    color_secondary: str = "#ffffff"
    players: list[PlayerConfig] = Field(default_factory=list)


class SeasonConfig(BaseModel):
    """A season to create in DRAFT with every configured team registered."""

    name: str
    start_date: date
    end_date: date
    description: str = ""
    settings: SeasonSettings = Field(default_factory=SeasonSettings)


class LeagueConfig(BaseModel):
    """Configuration for an entire league."""

    name: str = "Sunday League"
    description: str = ""
    teams: list[TeamConfig] = Field(default_factory=list)
    season: SeasonConfig | None = None

    @model_validator(mode="after")
    def _unique_team_names(self) -> LeagueConfig:
        names = [t.name for t in self.teams]
        if len(set(names)) != len(names):
            msg = "Team names must be unique within a league"
            raise ValueError(msg)
        return self


_TEAM_DATA = [
    ("Riverside Rovers", "Riverside", "#1B5E20", "#FFFFFF"),
    ("Harbor City FC", "Harbor City", "#0D47A1", "#FFD600"),
    ("Northgate United", "Northgate", "#B71C1C", "#FFFFFF"),
    ("Old Mill Athletic", "Old Mill", "#212121", "#FF6F00"),
    ("Westbrook Wanderers", "Westbrook", "#4A148C", "#E0E0E0"),
    ("Kingsley Town", "Kingsley", "#F57F17", "#000000"),
    ("Lakeshore Albion", "Lakeshore", "#006064", "#FFFFFF"),
    ("Eastfield Celtic", "Eastfield", "#2E7D32", "#FFFFFF"),
]

_FIRST_NAMES = [
    "Alex", "Sam", "Jordan", "Casey", "Robin", "Jamie", "Taylor", "Morgan",
    "Charlie", "Drew", "Riley", "Avery", "Quinn", "Rowan", "Emery", "Sasha",
]  # fmt: skip

_LAST_NAMES = [
    "Okafor", "Lindqvist", "Moreau", "Castillo", "Nakamura", "Brennan", "Adeyemi",
    "Kowalski", "Haddad", "Ferreira", "Novak", "Osei", "Duarte", "Varga", "Quinlan",
]  # fmt: skip

_POSITIONS = ["GK", "DF", "DF", "MF", "MF", "FW"]


def generate_league(
    num_teams: int = 6,
    players_per_team: int = 6,
    seed: int = 42,
    season_start: date | None = None,
) -> LeagueConfig:
    """Generate a demo league with a draft season starting ``season_start``.

    Same seed, same league.  The season spans one week per round of a single
    round-robin, with one round played per week.
    """
    rng = random.Random(seed)
    teams: list[TeamConfig] = []
    for team_idx in range(min(num_teams, len(_TEAM_DATA))):
        name, city, color, color_secondary = _TEAM_DATA[team_idx]
        players = [
            PlayerConfig(
                first_name=rng.choice(_FIRST_NAMES),
                last_name=rng.choice(_LAST_NAMES),
                jersey_number=number,
                position=_POSITIONS[(number - 1) % len(_POSITIONS)],
            )
            for number in range(1, players_per_team + 1)
        ]
        teams.append(
            TeamConfig(
                name=name,
                city=city,
                color=color,
                color_secondary=color_secondary,
                players=players,
            )
        )

    start = season_start or date(2026, 3, 1)
    rounds = len(teams) - 1 if len(teams) % 2 == 0 else len(teams)
    season = SeasonConfig(
        name=f"Season {start.year}",
        start_date=start,
        end_date=start + timedelta(weeks=max(rounds, 1)) - timedelta(days=1),
        settings=SeasonSettings(games_per_week=max(len(teams) // 2, 1)),
    )
    return LeagueConfig(teams=teams, season=season)


def save_league_yaml(config: LeagueConfig, path: Path) -> None:
    """Save league config to YAML."""
    data = config.model_dump(mode="json")
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_league_yaml(path: Path) -> LeagueConfig:
    """Load league config from YAML."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return LeagueConfig.model_validate(data or {})


@dataclass
class SeededLeague:
    league_id: str
    team_ids: list[str] = field(default_factory=list)
    player_ids: list[str] = field(default_factory=list)
    season_id: str | None = None


async def seed_league(repo: Repository, config: LeagueConfig) -> SeededLeague:
    """Write a league config to the database. Teams are registered in config order."""
    league = await repo.create_league(config.name, config.description)
    seeded = SeededLeague(league_id=league.id)

    for team_cfg in config.teams:
        team = await repo.create_team(
            team_cfg.name,
            league_id=league.id,
            city=team_cfg.city,
            color=team_cfg.color,
            color_secondary=team_cfg.color_secondary,
        )
        seeded.team_ids.append(team.id)
        for player_cfg in team_cfg.players:
            player = await repo.create_player(
                player_cfg.first_name,
                player_cfg.last_name,
                team_id=team.id,
                jersey_number=player_cfg.jersey_number,
                position=player_cfg.position,
            )
            seeded.player_ids.append(player.id)

    if config.season is not None:
        season = await SeasonManager(repo).create_season(
            league.id,
            config.season.name,
            config.season.start_date,
            config.season.end_date,
            teams=seeded.team_ids,
            settings=config.season.settings,
            description=config.season.description,
        )
        seeded.season_id = season.id

    logger.info(
        "league_seeded league=%s teams=%d players=%d season=%s",
        league.id,
        len(seeded.team_ids),
        len(seeded.player_ids),
        seeded.season_id,
    )
    return seeded
