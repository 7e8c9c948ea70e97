"""Repository pattern for database access.

Wraps SQLAlchemy async sessions and speaks the pydantic models from
``matchday.models``: callers never see ORM rows for seasons, teams, players,
or games.  Nothing here commits; the surrounding ``get_session`` block owns
the transaction.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from matchday.db.models import GameRow, LeagueRow, PlayerRow, SeasonRow, TeamRow
from matchday.errors import GameNotFoundError, SeasonNotFoundError
from matchday.models.game import Game, GameStatus, Score
from matchday.models.season import Season, SeasonStatus
from matchday.models.team import Player, Team

# ---------------------------------------------------------------------------
# Row <-> model conversion
# ---------------------------------------------------------------------------


def _team_from_row(row: TeamRow) -> Team:
    return Team(
        id=row.id,
        name=row.name,
        city=row.city,
        color=row.color,
        color_secondary=row.color_secondary,
    )


def _player_from_row(row: PlayerRow) -> Player:
    return Player(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        team_id=row.team_id,
        jersey_number=row.jersey_number,
        position=row.position,
    )


def _season_from_row(row: SeasonRow) -> Season:
    return Season.model_validate(
        {
            "id": row.id,
            "league_id": row.league_id,
            "name": row.name,
            "description": row.description,
            "start_date": row.start_date,
            "end_date": row.end_date,
            "status": row.status,
            "teams": row.team_ids or [],
            "weeks": row.weeks or [],
            "settings": row.settings or {},
            "standings": row.standings or [],
        }
    )


def _apply_season(row: SeasonRow, season: Season) -> None:
    row.name = season.name
    row.description = season.description
    row.start_date = season.start_date
    row.end_date = season.end_date
    row.status = str(season.status)
    row.team_ids = list(season.teams)
    row.weeks = [w.model_dump(mode="json") for w in season.weeks]
    row.settings = season.settings.model_dump(mode="json")
    row.standings = [s.model_dump(mode="json") for s in season.standings]


def _game_from_row(row: GameRow) -> Game:
    return Game.model_validate(
        {
            "id": row.id,
            "season_id": row.season_id,
            "week_index": row.week_index,
            "home_team_id": row.home_team_id,
            "away_team_id": row.away_team_id,
            "scheduled_date": row.scheduled_date,
            "actual_date": row.actual_date,
            "venue": row.venue,
            "status": row.status,
            "score": Score(home=row.home_score, away=row.away_score),
            "events": row.events or [],
            "notes": row.notes,
        }
    )


def _apply_game(row: GameRow, game: Game) -> None:
    row.week_index = game.week_index
    row.home_team_id = game.home_team_id
    row.away_team_id = game.away_team_id
    row.scheduled_date = game.scheduled_date
    row.actual_date = game.actual_date
    row.venue = game.venue.model_dump(mode="json") if game.venue else None
    row.status = str(game.status)
    row.home_score = game.score.home
    row.away_score = game.score.away
    row.events = [e.model_dump(mode="json") for e in game.events]
    row.notes = game.notes


class Repository:
    """Async repository for all database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Leagues ---

    async def create_league(self, name: str, description: str = "") -> LeagueRow:
        row = LeagueRow(name=name, description=description)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_league(self, league_id: str) -> LeagueRow | None:
        return await self.session.get(LeagueRow, league_id)

    # --- Teams / Players ---

    async def create_team(
        self,
        name: str,
        league_id: str | None = None,
        city: str = "",
        color: str = "#000000",
        color_secondary: str = "#ffffff",
    ) -> Team:
        row = TeamRow(
            league_id=league_id,
            name=name,
            city=city,
            color=color,
            color_secondary=color_secondary,
        )
        self.session.add(row)
        await self.session.flush()
        return _team_from_row(row)

    async def get_team(self, team_id: str) -> Team | None:
        row = await self.session.get(TeamRow, team_id)
        return _team_from_row(row) if row else None

    async def get_teams_by_ids(self, team_ids: Sequence[str]) -> list[Team]:
        """Return teams in the order of ``team_ids``; unknown ids are skipped."""
        if not team_ids:
            return []
        stmt = select(TeamRow).where(TeamRow.id.in_(list(team_ids)))
        result = await self.session.execute(stmt)
        by_id = {row.id: row for row in result.scalars().all()}
        return [_team_from_row(by_id[tid]) for tid in team_ids if tid in by_id]

    async def get_teams_for_league(self, league_id: str) -> list[Team]:
        stmt = select(TeamRow).where(TeamRow.league_id == league_id).order_by(TeamRow.name)
        result = await self.session.execute(stmt)
        return [_team_from_row(row) for row in result.scalars().all()]

    async def create_player(
        self,
        first_name: str,
        last_name: str,
        team_id: str | None = None,
        jersey_number: int | None = None,
        position: str = "",
    ) -> Player:
        row = PlayerRow(
            first_name=first_name,
            last_name=last_name,
            team_id=team_id,
            jersey_number=jersey_number,
            position=position,
        )
        self.session.add(row)
        await self.session.flush()
        return _player_from_row(row)

    async def get_players_by_ids(self, player_ids: Iterable[str]) -> list[Player]:
        ids = list(player_ids)
        if not ids:
            return []
        stmt = select(PlayerRow).where(PlayerRow.id.in_(ids))
        result = await self.session.execute(stmt)
        return [_player_from_row(row) for row in result.scalars().all()]

    async def get_players_for_team(self, team_id: str) -> list[Player]:
        stmt = (
            select(PlayerRow)
            .where(PlayerRow.team_id == team_id)
            .order_by(PlayerRow.last_name, PlayerRow.first_name)
        )
        result = await self.session.execute(stmt)
        return [_player_from_row(row) for row in result.scalars().all()]

    # --- Seasons ---

    async def create_season(self, season: Season) -> Season:
        row = SeasonRow(id=season.id, league_id=season.league_id)
        _apply_season(row, season)
        self.session.add(row)
        await self.session.flush()
        return season

    async def load_season(self, season_id: str) -> Season | None:
        row = await self.session.get(SeasonRow, season_id)
        return _season_from_row(row) if row else None

    async def save_season(self, season: Season) -> None:
        row = await self.session.get(SeasonRow, season.id)
        if row is None:
            raise SeasonNotFoundError(season.id)
        _apply_season(row, season)
        await self.session.flush()

    async def delete_season(self, season_id: str) -> bool:
        """Delete a season and every game it owns. Returns False if it didn't exist."""
        row = await self.session.get(SeasonRow, season_id)
        if row is None:
            return False
        await self.delete_games_for_season(season_id)
        await self.session.delete(row)
        await self.session.flush()
        return True

    async def get_seasons(
        self,
        league_id: str | None = None,
        status: SeasonStatus | str | None = None,
    ) -> list[Season]:
        """Return seasons, most recent first, optionally filtered."""
        stmt = select(SeasonRow)
        if league_id:
            stmt = stmt.where(SeasonRow.league_id == league_id)
        if status:
            stmt = stmt.where(SeasonRow.status == str(status))
        stmt = stmt.order_by(SeasonRow.created_at.desc())
        result = await self.session.execute(stmt)
        return [_season_from_row(row) for row in result.scalars().all()]

    # --- Games ---

    async def create_games(self, season_id: str, games: Iterable[Game]) -> list[Game]:
        stored: list[Game] = []
        for game in games:
            if game.season_id != season_id:
                msg = f"Game {game.id} belongs to season {game.season_id}, not {season_id}"
                raise ValueError(msg)
            row = GameRow(id=game.id, season_id=season_id)
            _apply_game(row, game)
            self.session.add(row)
            stored.append(game)
        await self.session.flush()
        return stored

    async def delete_games_for_season(self, season_id: str) -> int:
        result = await self.session.execute(delete(GameRow).where(GameRow.season_id == season_id))
        await self.session.flush()
        return result.rowcount or 0

    async def get_games_for_season(
        self,
        season_id: str,
        *,
        status: GameStatus | str | None = None,
        team_id: str | None = None,
        on_date: date | None = None,
    ) -> list[Game]:
        """Games of a season ordered by scheduled date.

        Args:
            season_id: The season to query.
            status: Only games in this status.
            team_id: Only games where this team plays home or away.
            on_date: Only games scheduled on this calendar day.
        """
        stmt = select(GameRow).where(GameRow.season_id == season_id)
        if status:
            stmt = stmt.where(GameRow.status == str(status))
        if team_id:
            stmt = stmt.where(or_(GameRow.home_team_id == team_id, GameRow.away_team_id == team_id))
        if on_date:
            day_start = datetime.combine(on_date, time.min)
            stmt = stmt.where(
                GameRow.scheduled_date >= day_start,
                GameRow.scheduled_date < day_start + timedelta(days=1),
            )
        stmt = stmt.order_by(GameRow.scheduled_date, GameRow.week_index, GameRow.id)
        result = await self.session.execute(stmt)
        return [_game_from_row(row) for row in result.scalars().all()]

    async def get_game(self, game_id: str) -> Game | None:
        row = await self.session.get(GameRow, game_id)
        return _game_from_row(row) if row else None

    async def save_game(self, game: Game) -> None:
        row = await self.session.get(GameRow, game.id)
        if row is None:
            raise GameNotFoundError(game.id)
        _apply_game(row, game)
        await self.session.flush()
