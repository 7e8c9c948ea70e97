"""Typed errors raised by the scheduling, lifecycle, and aggregation core.

Every error carries a stable ``code`` so a request layer can map it to a
status code or message without string matching.
"""

from __future__ import annotations


class MatchdayError(Exception):
    """Base class for all recoverable, caller-facing errors."""

    code = "matchday_error"


class InsufficientTeamsError(MatchdayError):
    """Fewer than two teams when generating a schedule."""

    code = "insufficient_teams"

    def __init__(self, team_count: int) -> None:
        self.team_count = team_count
        super().__init__(f"At least 2 teams are required to generate a schedule (got {team_count})")


class InvalidDateRangeError(MatchdayError):
    code = "invalid_date_range"


class InvalidSeasonTransitionError(MatchdayError):
    """A season operation is not legal from the season's current status.

    ``attempted`` is the target status for a status change, or the operation
    name (e.g. ``"generate_schedule"``) for operations that keep the status.
    """

    code = "invalid_season_transition"

    def __init__(self, from_status: str, attempted: str) -> None:
        self.from_status = str(from_status)
        self.attempted = str(attempted)
        super().__init__(f"Invalid season transition: {self.from_status} -> {self.attempted}")


class InvalidGameTransitionError(MatchdayError):
    code = "invalid_game_transition"

    def __init__(self, from_status: str, attempted: str) -> None:
        self.from_status = str(from_status)
        self.attempted = str(attempted)
        super().__init__(f"Invalid game transition: {self.from_status} -> {self.attempted}")


class TeamAlreadyRegisteredError(MatchdayError):
    code = "team_already_registered"

    def __init__(self, team_id: str) -> None:
        self.team_id = team_id
        super().__init__(f"Team {team_id} is already registered for this season")


class TeamNotRegisteredError(MatchdayError):
    code = "team_not_registered"

    def __init__(self, team_id: str) -> None:
        self.team_id = team_id
        super().__init__(f"Team {team_id} is not registered for this season")


class SeasonNotOpenError(MatchdayError):
    """Registration changes attempted outside the registration window."""

    code = "season_not_open"

    def __init__(self, status: str) -> None:
        self.status = str(status)
        super().__init__(f"Season registration is not open (status: {self.status})")


class SeasonClosedError(MatchdayError):
    """Game mutation attempted in a completed or cancelled season."""

    code = "season_closed"

    def __init__(self, status: str) -> None:
        self.status = str(status)
        super().__init__(f"Games cannot change once the season is {self.status}")


class InvalidTeamForGameError(MatchdayError):
    code = "invalid_team_for_game"

    def __init__(self, team_id: str, game_id: str) -> None:
        self.team_id = team_id
        self.game_id = game_id
        super().__init__(f"Team {team_id} is not playing in game {game_id}")


class NoScheduleError(MatchdayError):
    code = "no_schedule"

    def __init__(self) -> None:
        super().__init__("Must generate schedule before starting season")


class ScheduleExistsError(MatchdayError):
    code = "schedule_exists"

    def __init__(self) -> None:
        super().__init__("Season already has a schedule; regenerate it instead")


class SeasonNotFoundError(MatchdayError):
    code = "season_not_found"

    def __init__(self, season_id: str) -> None:
        self.season_id = season_id
        super().__init__(f"Season {season_id} not found")


class GameNotFoundError(MatchdayError):
    code = "game_not_found"

    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found")


class TeamNotFoundError(MatchdayError):
    code = "team_not_found"

    def __init__(self, team_id: str) -> None:
        self.team_id = team_id
        super().__init__(f"Team {team_id} not found")
