"""Game state machine and derived per-game queries.

Game lifecycle:
    PENDING -> SCHEDULED -> IN_PROGRESS -> COMPLETED
    PENDING/SCHEDULED -> CANCELLED | POSTPONED
    POSTPONED -> SCHEDULED (rescheduled) | CANCELLED

Events can only be recorded while a game is in progress.  Recording an event
never changes ``score``: the score is a separate counter maintained through
``set_score``.  ``score_from_events`` and ``score_mismatch`` let readers
check the two against each other.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import UTC, datetime

from matchday.errors import InvalidGameTransitionError, InvalidTeamForGameError
from matchday.models.game import EventType, Game, GameEvent, GameStatus, Score, Venue

logger = logging.getLogger(__name__)

TIE = "tie"

HAT_TRICK_GOALS = 3

GAME_TRANSITIONS: dict[GameStatus, set[GameStatus]] = {
    GameStatus.PENDING: {GameStatus.SCHEDULED, GameStatus.CANCELLED, GameStatus.POSTPONED},
    GameStatus.SCHEDULED: {GameStatus.IN_PROGRESS, GameStatus.CANCELLED, GameStatus.POSTPONED},
    GameStatus.POSTPONED: {GameStatus.SCHEDULED, GameStatus.CANCELLED},
    GameStatus.IN_PROGRESS: {GameStatus.COMPLETED},
    GameStatus.COMPLETED: set(),
    GameStatus.CANCELLED: set(),
}

# Statuses after which a game no longer holds its week open.
SETTLED_STATUSES: frozenset[GameStatus] = frozenset({GameStatus.COMPLETED, GameStatus.CANCELLED})


def _transition(game: Game, to_status: GameStatus) -> Game:
    current = GameStatus(game.status)
    if to_status not in GAME_TRANSITIONS[current]:
        raise InvalidGameTransitionError(current.value, to_status.value)
    game.status = to_status
    logger.debug("game_status_changed game=%s from=%s to=%s", game.id, current, to_status)
    return game


def set_venue_and_time(game: Game, venue: Venue, when: datetime) -> Game:
    """Fix where and when a pending (or postponed) game is played."""
    current = GameStatus(game.status)
    if current not in (GameStatus.PENDING, GameStatus.POSTPONED):
        raise InvalidGameTransitionError(current.value, GameStatus.SCHEDULED.value)
    game.venue = venue
    game.scheduled_date = when
    return _transition(game, GameStatus.SCHEDULED)


def start_game(game: Game, *, started_at: datetime | None = None) -> Game:
    _transition(game, GameStatus.IN_PROGRESS)
    game.actual_date = started_at or datetime.now(UTC)
    return game


def complete_game(game: Game) -> Game:
    return _transition(game, GameStatus.COMPLETED)


def cancel_game(game: Game) -> Game:
    return _transition(game, GameStatus.CANCELLED)


def postpone_game(game: Game) -> Game:
    return _transition(game, GameStatus.POSTPONED)


def add_event(game: Game, event: GameEvent) -> Game:
    """Append an event to an in-progress game.

    The event's minute range is enforced by the GameEvent model itself.

    Raises:
        InvalidGameTransitionError: The game is not in progress.
        InvalidTeamForGameError: The event's team is not playing.
    """
    if game.status != GameStatus.IN_PROGRESS:
        raise InvalidGameTransitionError(str(game.status), "add_event")
    if event.team_id not in game.team_ids:
        raise InvalidTeamForGameError(event.team_id, game.id)
    game.events.append(event)
    return game


def set_score(game: Game, home: int, away: int) -> Game:
    """Overwrite the recorded score of an in-progress game."""
    if game.status != GameStatus.IN_PROGRESS:
        raise InvalidGameTransitionError(str(game.status), "set_score")
    game.score = Score(home=home, away=away)
    return game


# ---------------------------------------------------------------------------
# Derived queries
# ---------------------------------------------------------------------------


def score_from_events(game: Game) -> Score:
    """Rebuild the score from goal events.

    A goal counts for the event's team; an own goal counts for the opponent.
    """
    home = away = 0
    for event in game.events:
        if event.type == EventType.GOAL:
            scoring_team = event.team_id
        elif event.type == EventType.OWN_GOAL:
            scoring_team = game.opponent_of(event.team_id)
        else:
            continue
        if scoring_team == game.home_team_id:
            home += 1
        else:
            away += 1
    return Score(home=home, away=away)


def score_mismatch(game: Game) -> Score | None:
    """Return the event-derived score if it disagrees with the recorded one.

    Games without events are never reported: their score was entered
    directly.
    """
    if not game.events:
        return None
    derived = score_from_events(game)
    if derived == game.score:
        return None
    return derived


def winner(game: Game) -> str | None:
    """Winning team id, ``TIE`` for a draw, or None while not completed."""
    if game.status != GameStatus.COMPLETED:
        return None
    if game.score.home > game.score.away:
        return game.home_team_id
    if game.score.away > game.score.home:
        return game.away_team_id
    return TIE


def hat_tricks(game: Game) -> list[str]:
    """Player ids with three or more goals in a completed game.

    Own goals do not count.  Players are listed in the order they first
    scored.
    """
    if game.status != GameStatus.COMPLETED:
        return []
    goals = Counter(e.player_id for e in game.events if e.type == EventType.GOAL)
    return [player_id for player_id, count in goals.items() if count >= HAT_TRICK_GOALS]
