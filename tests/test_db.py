"""Tests for the database layer: engine, ORM rows, and the repository."""

from datetime import date, datetime

import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

from matchday.db.engine import get_session
from matchday.db.models import Base
from matchday.db.repository import Repository
from matchday.errors import GameNotFoundError, SeasonNotFoundError
from matchday.models.game import EventType, Game, GameEvent, GameStatus, Score, Venue
from matchday.models.season import Season, SeasonSettings, SeasonStatus, Week
from matchday.models.standings import StandingRow


async def _league_with_teams(repo: Repository, n: int = 2) -> tuple[str, list[str]]:
    league = await repo.create_league("Test League")
    team_ids = []
    for i in range(n):
        team = await repo.create_team(f"Team {i}", league_id=league.id)
        team_ids.append(team.id)
    return league.id, team_ids


def _season(league_id: str, team_ids: list[str], **kwargs: object) -> Season:
    return Season(
        league_id=league_id,
        name="Spring 2026",
        start_date=date(2026, 3, 1),
        end_date=date(2026, 5, 31),
        teams=team_ids,
        **kwargs,
    )


def _game(season_id: str, home: str, away: str, day: int = 1, **kwargs: object) -> Game:
    return Game(
        season_id=season_id,
        home_team_id=home,
        away_team_id=away,
        scheduled_date=datetime(2026, 3, day, 12),
        **kwargs,
    )


class TestEngine:
    async def test_tables_created(self, engine: AsyncEngine):
        async with engine.connect() as conn:
            names = await conn.run_sync(lambda sync: inspect(sync).get_table_names())
        assert set(Base.metadata.tables) <= set(names)
        assert {"leagues", "teams", "players", "seasons", "games"} <= set(names)

    async def test_session_rolls_back_on_error(self, engine: AsyncEngine):
        with pytest.raises(RuntimeError):
            async with get_session(engine) as session:
                await Repository(session).create_league("Doomed")
                raise RuntimeError("boom")

        async with get_session(engine) as session:
            repo = Repository(session)
            league = await repo.create_league("Kept")

        async with get_session(engine) as session:
            assert await Repository(session).get_league(league.id) is not None

    async def test_session_commits(self, engine: AsyncEngine):
        async with get_session(engine) as session:
            team = await Repository(session).create_team("Committed FC")
        async with get_session(engine) as session:
            loaded = await Repository(session).get_team(team.id)
        assert loaded is not None
        assert loaded.name == "Committed FC"


class TestTeamsAndPlayers:
    async def test_create_and_get_team(self, repo: Repository):
        team = await repo.create_team("Harbor City FC", city="Harbor City", color="#0D47A1")
        loaded = await repo.get_team(team.id)
        assert loaded == team
        assert loaded.city == "Harbor City"

    async def test_missing_team(self, repo: Repository):
        assert await repo.get_team("nope") is None

    async def test_teams_by_ids_keeps_order(self, repo: Repository):
        _, ids = await _league_with_teams(repo, 3)
        wanted = [ids[2], "unknown", ids[0]]
        teams = await repo.get_teams_by_ids(wanted)
        assert [t.id for t in teams] == [ids[2], ids[0]]
        assert await repo.get_teams_by_ids([]) == []

    async def test_teams_for_league(self, repo: Repository):
        league_id, ids = await _league_with_teams(repo, 3)
        await repo.create_team("Elsewhere")
        teams = await repo.get_teams_for_league(league_id)
        assert sorted(t.id for t in teams) == sorted(ids)

    async def test_players(self, repo: Repository):
        team = await repo.create_team("Rovers")
        p1 = await repo.create_player("Sam", "Okafor", team_id=team.id, jersey_number=9)
        p2 = await repo.create_player("Alex", "Brennan", team_id=team.id, position="GK")
        roster = await repo.get_players_for_team(team.id)
        assert [p.id for p in roster] == [p2.id, p1.id]
        assert roster[1].jersey_number == 9
        found = await repo.get_players_by_ids([p1.id, "ghost"])
        assert [p.full_name for p in found] == ["Sam Okafor"]
        assert await repo.get_players_by_ids([]) == []


class TestSeasons:
    async def test_round_trip(self, repo: Repository):
        league_id, ids = await _league_with_teams(repo)
        season = _season(
            league_id,
            ids,
            description="Sunday mornings",
            settings=SeasonSettings(games_per_week=3, round_robins=2),
            weeks=[
                Week(
                    index=1, start_date=date(2026, 3, 1), end_date=date(2026, 3, 7), games=["g-1"]
                ),
            ],
            standings=[StandingRow(team_id=ids[0], team_name="Team 0", last5=["W"])],
        )
        await repo.create_season(season)
        loaded = await repo.load_season(season.id)
        assert loaded == season

    async def test_save(self, repo: Repository):
        league_id, ids = await _league_with_teams(repo)
        season = _season(league_id, ids)
        await repo.create_season(season)

        season.status = SeasonStatus.REGISTRATION
        season.teams = ids[:1]
        await repo.save_season(season)

        loaded = await repo.load_season(season.id)
        assert loaded.status == SeasonStatus.REGISTRATION
        assert loaded.teams == ids[:1]

    async def test_save_missing(self, repo: Repository):
        league_id, ids = await _league_with_teams(repo)
        with pytest.raises(SeasonNotFoundError):
            await repo.save_season(_season(league_id, ids))

    async def test_load_missing(self, repo: Repository):
        assert await repo.load_season("nope") is None

    async def test_get_seasons_filters(self, repo: Repository):
        league_id, ids = await _league_with_teams(repo)
        other = await repo.create_league("Other")
        draft = await repo.create_season(_season(league_id, ids))
        active = await repo.create_season(_season(league_id, ids, status=SeasonStatus.ACTIVE))
        await repo.create_season(_season(other.id, []))

        assert {s.id for s in await repo.get_seasons(league_id=league_id)} == {draft.id, active.id}
        assert [s.id for s in await repo.get_seasons(status=SeasonStatus.ACTIVE)] == [active.id]
        assert len(await repo.get_seasons()) == 3

    async def test_delete_season_removes_games(self, repo: Repository):
        league_id, (a, b) = await _league_with_teams(repo)
        season = await repo.create_season(_season(league_id, [a, b]))
        await repo.create_games(season.id, [_game(season.id, a, b), _game(season.id, b, a, day=8)])

        assert await repo.delete_season(season.id) is True
        assert await repo.load_season(season.id) is None
        assert await repo.get_games_for_season(season.id) == []
        assert await repo.delete_season(season.id) is False


class TestGames:
    async def _setup(self, repo: Repository) -> tuple[Season, list[str]]:
        league_id, ids = await _league_with_teams(repo, 4)
        season = await repo.create_season(_season(league_id, ids))
        return season, ids

    async def test_round_trip(self, repo: Repository):
        season, (a, b, *_) = await self._setup(repo)
        game = _game(
            season.id,
            a,
            b,
            week_index=1,
            venue=Venue(name="Riverside Park", capacity=300),
            status=GameStatus.COMPLETED,
            actual_date=datetime(2026, 3, 1, 12, 5),
            score=Score(home=2, away=1),
            events=[GameEvent(type=EventType.GOAL, player_id="p", team_id=a, minute=17)],
            notes="Rain delay",
        )
        await repo.create_games(season.id, [game])
        assert await repo.get_game(game.id) == game

    async def test_create_rejects_foreign_season(self, repo: Repository):
        season, (a, b, *_) = await self._setup(repo)
        with pytest.raises(ValueError, match="belongs to season"):
            await repo.create_games(season.id, [_game("other", a, b)])

    async def test_filters(self, repo: Repository):
        season, (a, b, c, d) = await self._setup(repo)
        g1 = _game(season.id, a, b, day=1, status=GameStatus.COMPLETED)
        g2 = _game(season.id, c, d, day=1)
        g3 = _game(season.id, b, c, day=8)
        await repo.create_games(season.id, [g3, g1, g2])

        everything = await repo.get_games_for_season(season.id)
        assert everything[-1].id == g3.id
        assert {g.id for g in everything[:2]} == {g1.id, g2.id}

        completed = await repo.get_games_for_season(season.id, status=GameStatus.COMPLETED)
        assert [g.id for g in completed] == [g1.id]

        with_b = await repo.get_games_for_season(season.id, team_id=b)
        assert [g.id for g in with_b] == [g1.id, g3.id]

        on_day = await repo.get_games_for_season(season.id, on_date=date(2026, 3, 8))
        assert [g.id for g in on_day] == [g3.id]

    async def test_save_game(self, repo: Repository):
        season, (a, b, *_) = await self._setup(repo)
        game = _game(season.id, a, b)
        await repo.create_games(season.id, [game])
        game.status = GameStatus.IN_PROGRESS
        game.score = Score(home=1, away=0)
        await repo.save_game(game)
        loaded = await repo.get_game(game.id)
        assert loaded.status == GameStatus.IN_PROGRESS
        assert loaded.score.home == 1

    async def test_save_missing_game(self, repo: Repository):
        season, (a, b, *_) = await self._setup(repo)
        with pytest.raises(GameNotFoundError):
            await repo.save_game(_game(season.id, a, b))

    async def test_delete_games_for_season(self, repo: Repository):
        season, (a, b, c, d) = await self._setup(repo)
        await repo.create_games(season.id, [_game(season.id, a, b), _game(season.id, c, d)])
        assert await repo.delete_games_for_season(season.id) == 2
        assert await repo.get_games_for_season(season.id) == []
