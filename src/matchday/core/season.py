"""Season state machine -- registration, schedule generation, and status changes.

Season lifecycle:
    DRAFT -> REGISTRATION -> ACTIVE -> COMPLETED
    REGISTRATION/ACTIVE -> CANCELLED
    ACTIVE/COMPLETED -> REGISTRATION (reopen)

Every operation here validates first and mutates second, so a raised error
always leaves the season exactly as it was.  Nothing in this module does I/O:
callers load the season, call in, and persist the result (see
``matchday.core.manager``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, time

from matchday.core.games import SETTLED_STATUSES
from matchday.core.scheduler import (
    DEFAULT_KICKOFF,
    generate_round_robin,
    new_game_id,
    partition_into_weeks,
)
from matchday.errors import (
    InsufficientTeamsError,
    InvalidSeasonTransitionError,
    NoScheduleError,
    ScheduleExistsError,
    SeasonClosedError,
    SeasonNotOpenError,
    TeamAlreadyRegisteredError,
    TeamNotRegisteredError,
)
from matchday.models.game import Game
from matchday.models.season import Season, SeasonProgress, SeasonStatus, Week

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

# Allowed status transitions. Key = current status, value = set of valid next statuses.
ALLOWED_TRANSITIONS: dict[SeasonStatus, set[SeasonStatus]] = {
    SeasonStatus.DRAFT: {SeasonStatus.REGISTRATION},
    SeasonStatus.REGISTRATION: {SeasonStatus.ACTIVE, SeasonStatus.CANCELLED},
    SeasonStatus.ACTIVE: {
        SeasonStatus.COMPLETED,
        SeasonStatus.CANCELLED,
        SeasonStatus.REGISTRATION,
    },
    SeasonStatus.COMPLETED: {SeasonStatus.REGISTRATION},
    SeasonStatus.CANCELLED: set(),  # terminal state
}

# Statuses in which the fixture list may be (re)built.
SCHEDULABLE_STATUSES: frozenset[SeasonStatus] = frozenset(
    {SeasonStatus.DRAFT, SeasonStatus.REGISTRATION}
)

# Statuses in which no game of the season may change any more.
CLOSED_STATUSES: frozenset[SeasonStatus] = frozenset(
    {SeasonStatus.COMPLETED, SeasonStatus.CANCELLED}
)


def _transition(season: Season, to_status: SeasonStatus) -> Season:
    current = SeasonStatus(season.status)
    if to_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidSeasonTransitionError(current.value, to_status.value)
    season.status = to_status
    logger.debug("season_status_changed season=%s from=%s to=%s", season.id, current, to_status)
    return season


def open_registration(season: Season) -> Season:
    """Open the registration window of a draft season."""
    if season.status != SeasonStatus.DRAFT:
        raise InvalidSeasonTransitionError(str(season.status), SeasonStatus.REGISTRATION.value)
    return _transition(season, SeasonStatus.REGISTRATION)


def start_season(season: Season) -> Season:
    """Close registration and start play.

    Only legal from REGISTRATION, and only once a schedule exists.
    """
    if season.status != SeasonStatus.REGISTRATION:
        raise InvalidSeasonTransitionError(str(season.status), SeasonStatus.ACTIVE.value)
    if not season.weeks:
        raise NoScheduleError()
    return _transition(season, SeasonStatus.ACTIVE)


def complete_season(season: Season) -> Season:
    """Finalize an active season. Games and standings are left untouched."""
    if season.status != SeasonStatus.ACTIVE:
        raise InvalidSeasonTransitionError(str(season.status), SeasonStatus.COMPLETED.value)
    return _transition(season, SeasonStatus.COMPLETED)


def cancel_season(season: Season) -> Season:
    return _transition(season, SeasonStatus.CANCELLED)


def reopen_registration(season: Season) -> Season:
    """Move an active or completed season back to REGISTRATION.

    Teams and weeks are kept; regenerate the schedule after changing teams.
    """
    if season.status not in (SeasonStatus.ACTIVE, SeasonStatus.COMPLETED):
        raise InvalidSeasonTransitionError(str(season.status), SeasonStatus.REGISTRATION.value)
    return _transition(season, SeasonStatus.REGISTRATION)


def ensure_deletable(season: Season) -> None:
    """A live season must not be deleted."""
    if season.status == SeasonStatus.ACTIVE:
        raise InvalidSeasonTransitionError(str(season.status), "deleted")


def ensure_games_mutable(season: Season) -> None:
    if season.status in CLOSED_STATUSES:
        raise SeasonClosedError(season.status)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def register_team(season: Season, team_id: str) -> Season:
    if season.status != SeasonStatus.REGISTRATION:
        raise SeasonNotOpenError(season.status)
    if team_id in season.teams:
        raise TeamAlreadyRegisteredError(team_id)
    season.teams.append(team_id)
    return season


def unregister_team(season: Season, team_id: str) -> Season:
    if season.status != SeasonStatus.REGISTRATION:
        raise SeasonNotOpenError(season.status)
    if team_id not in season.teams:
        raise TeamNotRegisteredError(team_id)
    season.teams.remove(team_id)
    return season


# ---------------------------------------------------------------------------
# Schedule generation
# ---------------------------------------------------------------------------


@dataclass
class ScheduleResult:
    """Outcome of (re)generating a season's fixture list.

    ``games`` must be stored and ``replaced_game_ids`` deleted in the same
    transaction as saving the season's new weeks.
    """

    weeks: list[Week]
    games: list[Game]
    replaced_game_ids: list[str] = field(default_factory=list)

    @property
    def game_count(self) -> int:
        return len(self.games)


def _build_schedule(
    season: Season,
    kickoff: time,
    id_factory: Callable[[], str],
) -> tuple[list[Week], list[Game]]:
    pairings = generate_round_robin(season.teams, rounds=season.settings.round_robins)
    return partition_into_weeks(
        pairings,
        season.start_date,
        season.end_date,
        season.settings.games_per_week,
        season_id=season.id,
        kickoff=kickoff,
        id_factory=id_factory,
    )


def _check_schedulable(season: Season, operation: str) -> None:
    if season.status not in SCHEDULABLE_STATUSES:
        raise InvalidSeasonTransitionError(str(season.status), operation)
    if len(season.teams) < 2:
        raise InsufficientTeamsError(len(season.teams))


def generate_schedule(
    season: Season,
    *,
    kickoff: time = DEFAULT_KICKOFF,
    id_factory: Callable[[], str] = new_game_id,
) -> ScheduleResult:
    """Build the first fixture list for a draft or registration season.

    Raises:
        InvalidSeasonTransitionError: Season is past registration.
        InsufficientTeamsError: Fewer than two registered teams.
        ScheduleExistsError: Weeks already exist; use ``regenerate_schedule``.
        InvalidDateRangeError: The season window cannot hold the weeks.
    """
    _check_schedulable(season, "generate_schedule")
    if season.weeks:
        raise ScheduleExistsError()

    weeks, games = _build_schedule(season, kickoff, id_factory)
    season.weeks = weeks
    season.standings = []
    return ScheduleResult(weeks=weeks, games=games)


def regenerate_schedule(
    season: Season,
    existing_games: Iterable[Game] = (),
    *,
    kickoff: time = DEFAULT_KICKOFF,
    id_factory: Callable[[], str] = new_game_id,
) -> ScheduleResult:
    """Replace a season's fixture list with one built from the current teams.

    All checks run and the new schedule is built before anything about the
    old one changes, so a failure leaves the existing weeks and games intact.
    """
    _check_schedulable(season, "regenerate_schedule")

    weeks, games = _build_schedule(season, kickoff, id_factory)
    replaced = {game.id for game in existing_games if game.season_id == season.id}
    replaced.update(season.game_ids)

    season.weeks = weeks
    season.standings = []
    return ScheduleResult(weeks=weeks, games=games, replaced_game_ids=sorted(replaced))


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


def refresh_week_completion(season: Season, games: Sequence[Game]) -> Season:
    """Recompute ``is_completed`` for every week from the given games.

    A week is complete when every game it references is completed or
    cancelled.  A week referencing a game missing from ``games`` is not.
    """
    by_id = {game.id: game for game in games}
    for week in season.weeks:
        week.is_completed = all(
            game_id in by_id and by_id[game_id].status in SETTLED_STATUSES
            for game_id in week.games
        )
    return season


def season_progress(season: Season) -> SeasonProgress:
    total = len(season.weeks)
    completed = sum(1 for week in season.weeks if week.is_completed)
    percentage = round(completed / total * 100) if total else 0
    return SeasonProgress(total_weeks=total, completed_weeks=completed, percentage=percentage)


def is_in_window(season: Season, on: date) -> bool:
    """True when the season is active and ``on`` falls inside its dates."""
    return season.status == SeasonStatus.ACTIVE and season.start_date <= on <= season.end_date
