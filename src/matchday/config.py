"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

from datetime import time

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

VALID_ENVS = frozenset({"development", "test", "production"})


class Settings(BaseSettings):
    """Matchday configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Database
    database_url: str = "sqlite+aiosqlite:///matchday.db"

    # Environment
    matchday_env: str = "development"

    # Scheduling
    default_kickoff_hour: int = Field(default=12, ge=0, le=23)
    default_games_per_week: int = Field(default=1, ge=1)
    auto_generate_schedule: bool = False  # generate on start_season when no weeks exist

    # Logging
    matchday_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_env(self) -> Settings:
        if self.matchday_env not in VALID_ENVS:
            msg = f"MATCHDAY_ENV must be one of {sorted(VALID_ENVS)} (got {self.matchday_env!r})"
            raise ValueError(msg)
        if self.matchday_env == "production" and ":memory:" in self.database_url:
            msg = "DATABASE_URL must point at a persistent database in production"
            raise ValueError(msg)
        return self

    @property
    def default_kickoff(self) -> time:
        """Time of day newly generated games are pencilled in for."""
        return time(self.default_kickoff_hour, 0)
