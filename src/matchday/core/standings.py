"""League table and scorer leaderboard, derived from completed games.

Both aggregators are read-only and deterministic: the same games in give the
same rows out, in the same order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime

from matchday.core.games import score_mismatch
from matchday.models.game import EventType, Game, GameStatus
from matchday.models.standings import FormResult, ScorerRow, StandingRow
from matchday.models.team import Player, Team

logger = logging.getLogger(__name__)

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1

FORM_LENGTH = 5


def _date_key(dt: datetime) -> datetime:
    """Comparable key for naive and tz-aware datetimes alike (aware -> naive UTC)."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def _completed(games: Iterable[Game], season_id: str | None) -> list[Game]:
    played = [
        g
        for g in games
        if g.status == GameStatus.COMPLETED and (season_id is None or g.season_id == season_id)
    ]
    # Stable: games on the same date keep their input order.
    return sorted(played, key=lambda g: _date_key(g.scheduled_date))


def compute_standings(
    teams: Sequence[Team],
    games: Iterable[Game],
    *,
    season_id: str | None = None,
) -> list[StandingRow]:
    """Compute the league table from completed games.

    Win 3, draw 1, loss 0.  Only ``teams`` get rows; a completed game against
    a team no longer registered still counts for the registered side.
    Teams without a completed game appear with an all-zero row.

    Args:
        teams: Registered teams. Names are used for the final tie-break.
        games: Candidate games; anything not completed is ignored.
        season_id: When given, games of other seasons are ignored.

    Returns:
        Rows sorted by points, goal difference, goals for (all desc), then
        team name asc; ``position`` is 1-based.
    """
    rows: dict[str, StandingRow] = {
        t.id: StandingRow(team_id=t.id, team_name=t.name) for t in teams
    }
    form: dict[str, list[FormResult]] = {t.id: [] for t in teams}

    for game in _completed(games, season_id):
        mismatch = score_mismatch(game)
        if mismatch is not None:
            logger.warning(
                "score_event_mismatch game=%s recorded=%d-%d events=%d-%d",
                game.id,
                game.score.home,
                game.score.away,
                mismatch.home,
                mismatch.away,
            )

        sides = (
            (game.home_team_id, game.score.home, game.score.away),
            (game.away_team_id, game.score.away, game.score.home),
        )
        for team_id, scored, conceded in sides:
            row = rows.get(team_id)
            if row is None:
                continue
            row.played += 1
            row.goals_for += scored
            row.goals_against += conceded
            if scored > conceded:
                row.won += 1
                form[team_id].append("W")
            elif scored < conceded:
                row.lost += 1
                form[team_id].append("L")
            else:
                row.drawn += 1
                form[team_id].append("D")

    for team_id, row in rows.items():
        row.goal_difference = row.goals_for - row.goals_against
        row.points = POINTS_FOR_WIN * row.won + POINTS_FOR_DRAW * row.drawn
        row.last5 = form[team_id][-FORM_LENGTH:]
        if row.played:
            row.win_percentage = round((row.won + 0.5 * row.drawn) / row.played, 3)

    ranked = sorted(
        rows.values(),
        key=lambda r: (-r.points, -r.goal_difference, -r.goals_for, r.team_name, r.team_id),
    )
    for position, row in enumerate(ranked, start=1):
        row.position = position
    return ranked


def compute_top_scorers(
    games: Iterable[Game],
    players: Mapping[str, Player] | None = None,
    *,
    limit: int | None = None,
) -> list[ScorerRow]:
    """Rank players by goals scored in completed games.

    Own goals are left out entirely.  A player's team is taken from their
    first counted goal.  Ties are broken by surname, then first name (player
    id when the player is unknown).
    """
    players = players or {}
    goals: dict[str, int] = {}
    teams: dict[str, str] = {}

    for game in games:
        if game.status != GameStatus.COMPLETED:
            continue
        for event in game.events:
            if event.type != EventType.GOAL:
                continue
            goals[event.player_id] = goals.get(event.player_id, 0) + 1
            teams.setdefault(event.player_id, event.team_id)

    def _sort_key(player_id: str) -> tuple[int, str, str, str]:
        player = players.get(player_id)
        last = player.last_name if player else ""
        first = player.first_name if player else ""
        return (-goals[player_id], last.casefold(), first.casefold(), player_id)

    leaders: list[ScorerRow] = []
    for player_id in sorted(goals, key=_sort_key):
        player = players.get(player_id)
        leaders.append(
            ScorerRow(
                player_id=player_id,
                player_name=player.full_name if player else player_id,
                team_id=teams[player_id],
                goals=goals[player_id],
            )
        )

    if limit is not None:
        return leaders[:limit]
    return leaders
