"""Round-robin fixture generation and week partitioning.

Generates a valid schedule where every team plays every other team once per
round-robin cycle, using the circle method (polygon scheduling), then lays
the fixtures out over the season's calendar.

Terminology:
  - **round**: one turn of the circle, a set of pairings where no team
    appears twice.  With 4 teams a round has 2 pairings.
  - **cycle** (round-robin): every team plays every other team once.
    With 4 teams that's C(4,2)=6 pairings across 3 rounds.
  - **week**: a date-bounded block holding ``games_per_week`` pairings,
    filled in round order.  Week and round boundaries only line up when
    ``games_per_week`` equals the round size.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from matchday.errors import InsufficientTeamsError, InvalidDateRangeError
from matchday.models.game import Game, GameStatus
from matchday.models.season import Week

logger = logging.getLogger(__name__)

# Placeholder opponent for odd team counts; pairings against it are dropped.
_BYE = object()

DEFAULT_KICKOFF = time(12, 0)


@dataclass(frozen=True)
class Pairing:
    """A home/away fixture not yet bound to a week or date."""

    round_number: int
    matchup_index: int
    home_team_id: str
    away_team_id: str


def generate_round_robin(
    team_ids: Sequence[str],
    rounds: int = 1,
) -> list[Pairing]:
    """Generate a round-robin schedule using the circle method.

    The first team stays fixed while the others rotate one step per round.
    With N teams (even), each round has N/2 pairings and a complete cycle
    takes N-1 rounds.  An odd field gets a bye slot, so every round one team
    sits out.

    Home/away: the fixed team's pairing alternates venue every round (home in
    round 1).  In every other slot the left side of the circle is home; a
    rotating team spends half the cycle on each side, so each team ends a
    cycle with home counts within one of each other.  This is the chosen
    deterministic tie-break for venues; swapping the odd-indexed slots each
    round would balance homes equally well but gives a different fixture
    list, and callers rely on this one staying stable.

    ``rounds`` repeats the cycle; the 2nd, 4th, ... cycles swap home and
    away so repeat meetings alternate venue.

    Args:
        team_ids: Team IDs to schedule.  Order determines the output.
        rounds: Number of complete round-robin cycles (default 1).

    Returns:
        Pairings in round-major order (round 1 first), each round ordered by
        ``matchup_index``.

    Raises:
        InsufficientTeamsError: Fewer than two teams.
        ValueError: ``rounds`` is less than 1.
    """
    if len(team_ids) < 2:
        raise InsufficientTeamsError(len(team_ids))
    if rounds < 1:
        msg = f"rounds must be at least 1 (got {rounds})"
        raise ValueError(msg)

    slots: list[object] = list(team_ids)
    if len(slots) % 2:
        slots.append(_BYE)
    n = len(slots)

    fixed = slots[0]
    pairings: list[Pairing] = []
    round_number = 0

    for cycle in range(rounds):
        rotating = slots[1:]

        for turn in range(n - 1):
            round_number += 1
            match_idx = 0

            for i in range(n // 2):
                if i == 0:
                    home, away = fixed, rotating[0]
                    if turn % 2 == 1:
                        home, away = away, home
                else:
                    home, away = rotating[i], rotating[n - 1 - i]

                if cycle % 2 == 1:
                    home, away = away, home

                if home is _BYE or away is _BYE:
                    continue

                pairings.append(
                    Pairing(
                        round_number=round_number,
                        matchup_index=match_idx,
                        home_team_id=home,  # type: ignore[arg-type]
                        away_team_id=away,  # type: ignore[arg-type]
                    )
                )
                match_idx += 1

            # Rotate: move last element to front
            rotating = [rotating[-1], *rotating[:-1]]

    logger.debug(
        "round_robin_generated teams=%d rounds=%d pairings=%d",
        len(team_ids),
        rounds,
        len(pairings),
    )
    return pairings


def new_game_id() -> str:
    return str(uuid.uuid4())


def week_date_ranges(start: date, end: date, week_count: int) -> list[tuple[date, date]]:
    """Split the inclusive range [start, end] into ``week_count`` contiguous blocks.

    Blocks have equal length; the last one absorbs the leftover days so the
    union is exactly [start, end].

    Raises:
        InvalidDateRangeError: ``end`` is not after ``start``, or the range
            has fewer days than ``week_count``.
    """
    if end <= start:
        msg = f"End date {end.isoformat()} must be after start date {start.isoformat()}"
        raise InvalidDateRangeError(msg)
    if week_count <= 0:
        return []

    total_days = (end - start).days + 1
    span = total_days // week_count
    if span == 0:
        msg = f"{total_days} days between {start} and {end} cannot hold {week_count} weeks"
        raise InvalidDateRangeError(msg)

    ranges: list[tuple[date, date]] = []
    for i in range(week_count):
        week_start = start + timedelta(days=i * span)
        if i == week_count - 1:
            week_end = end
        else:
            week_end = week_start + timedelta(days=span - 1)
        ranges.append((week_start, week_end))
    return ranges


def partition_into_weeks(
    pairings: Sequence[Pairing],
    start: date,
    end: date,
    games_per_week: int,
    *,
    season_id: str,
    kickoff: time = DEFAULT_KICKOFF,
    id_factory: Callable[[], str] = new_game_id,
) -> tuple[list[Week], list[Game]]:
    """Lay pairings out over the season calendar.

    Pairings are taken in the order given (round-major from
    ``generate_round_robin``) and dealt ``games_per_week`` at a time into
    ceil(len(pairings) / games_per_week) weeks.  Each becomes a pending
    Game dated at ``kickoff`` on its week's first day, with no venue and a
    0-0 score.

    Returns:
        ``(weeks, games)``: weeks reference their games by id; games are in
        the same order as ``pairings``.

    Raises:
        InvalidDateRangeError: See ``week_date_ranges``.
        ValueError: ``games_per_week`` is less than 1.
    """
    if games_per_week < 1:
        msg = f"games_per_week must be at least 1 (got {games_per_week})"
        raise ValueError(msg)

    week_count = math.ceil(len(pairings) / games_per_week)
    ranges = week_date_ranges(start, end, week_count)

    weeks: list[Week] = []
    games: list[Game] = []
    for idx, (week_start, week_end) in enumerate(ranges):
        chunk = pairings[idx * games_per_week : (idx + 1) * games_per_week]
        week = Week(index=idx + 1, start_date=week_start, end_date=week_end)
        for pairing in chunk:
            game = Game(
                id=id_factory(),
                season_id=season_id,
                week_index=week.index,
                home_team_id=pairing.home_team_id,
                away_team_id=pairing.away_team_id,
                scheduled_date=datetime.combine(week_start, kickoff),
                status=GameStatus.PENDING,
            )
            week.games.append(game.id)
            games.append(game)
        weeks.append(week)

    return weeks, games


def double_booked_teams(games: Sequence[Game]) -> set[str]:
    """Return teams that appear in more than one of ``games``.

    Used on a single week's games: a week that straddles two rounds can
    hand a team two fixtures.
    """
    counts = Counter(team_id for game in games for team_id in game.team_ids)
    return {team_id for team_id, count in counts.items() if count > 1}
