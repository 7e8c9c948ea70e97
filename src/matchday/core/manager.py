"""SeasonManager -- one awaitable unit per season and game operation.

Each method loads what it needs through the Repository, calls the pure state
machines in ``matchday.core.season`` / ``matchday.core.games``, and writes the
result back.  A manager lives for one transaction.  The first operation on a
season takes that season's lock (``matchday.core.locks``) and the manager
keeps it until ``release``; lifecycle events are queued and only reach the
event bus through ``flush_events``.  ``Runtime.session`` does both once the
transaction has committed:

    async with runtime.session() as manager:
        await manager.regenerate_schedule(season_id)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime
from typing import TYPE_CHECKING

from matchday.config import Settings
from matchday.core import games as game_sm
from matchday.core import season as season_sm
from matchday.core.event_bus import Topic
from matchday.core.locks import HeldLocks, SeasonLocks, default_locks
from matchday.core.scheduler import double_booked_teams
from matchday.core.standings import compute_standings, compute_top_scorers
from matchday.errors import GameNotFoundError, SeasonNotFoundError, TeamNotFoundError
from matchday.models.game import Game, GameEvent, GameStatus, Venue
from matchday.models.season import Season, SeasonProgress, SeasonSettings, SeasonStatus
from matchday.models.standings import ScorerRow, StandingRow

if TYPE_CHECKING:
    from matchday.core.event_bus import EventBus
    from matchday.db.repository import Repository

logger = logging.getLogger(__name__)


class SeasonManager:
    """Season and game lifecycle operations over a repository."""

    def __init__(
        self,
        repo: Repository,
        settings: Settings | None = None,
        event_bus: EventBus | None = None,
        locks: SeasonLocks | None = None,
    ) -> None:
        self.repo = repo
        self.settings = settings or Settings()
        self.event_bus = event_bus
        self.locks = locks if locks is not None else default_locks()
        self._held = HeldLocks(self.locks)
        self._outbox: list[tuple[Topic, dict]] = []
        self._deleted: list[str] = []

    # --- transaction scope ---

    async def claim(self, *season_ids: str) -> None:
        """Lock seasons before the first operation touches them."""
        await self._held.claim(*season_ids)

    async def flush_events(self) -> int:
        """Publish queued events. Call only after the transaction has committed."""
        outbox, self._outbox = self._outbox, []
        if self.event_bus is not None:
            for topic, data in outbox:
                await self.event_bus.publish(topic, data)
        return len(outbox)

    def release(self) -> None:
        """Drop every season lock this manager holds; the transaction is over."""
        self._held.release()
        for season_id in self._deleted:
            self.locks.discard(season_id)
        self._deleted.clear()

    # --- helpers ---

    async def _load_season(self, season_id: str) -> Season:
        season = await self.repo.load_season(season_id)
        if season is None:
            raise SeasonNotFoundError(season_id)
        return season

    async def _load_game(self, game_id: str) -> Game:
        game = await self.repo.get_game(game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    def _queue(self, topic: Topic, data: dict) -> None:
        self._outbox.append((topic, data))

    def _status_changed(self, season: Season, from_status: SeasonStatus) -> None:
        logger.info(
            "season_status_changed season=%s from=%s to=%s",
            season.id,
            from_status,
            season.status,
        )
        self._queue(
            Topic.SEASON_STATUS_CHANGED,
            {
                "season_id": season.id,
                "from_status": str(from_status),
                "to_status": str(season.status),
            },
        )

    async def _ensure_teams_exist(self, team_ids: Sequence[str]) -> None:
        found = {team.id for team in await self.repo.get_teams_by_ids(team_ids)}
        for team_id in team_ids:
            if team_id not in found:
                raise TeamNotFoundError(team_id)

    # --- seasons ---

    async def create_season(
        self,
        league_id: str,
        name: str,
        start_date: date,
        end_date: date,
        *,
        teams: Sequence[str] = (),
        settings: SeasonSettings | None = None,
        description: str = "",
    ) -> Season:
        """Create a draft season, optionally pre-seeded with teams."""
        await self._ensure_teams_exist(teams)
        season = Season(
            league_id=league_id,
            name=name,
            description=description,
            start_date=start_date,
            end_date=end_date,
            teams=list(teams),
            settings=settings
            or SeasonSettings(games_per_week=self.settings.default_games_per_week),
        )
        await self.repo.create_season(season)
        logger.info("season_created season=%s league=%s teams=%d", season.id, league_id, len(teams))
        return season

    async def _apply_transition(self, season_id: str, operation: str) -> Season:
        async with self._held.hold(season_id):
            season = await self._load_season(season_id)
            before = SeasonStatus(season.status)
            getattr(season_sm, operation)(season)
            await self.repo.save_season(season)
        self._status_changed(season, before)
        return season

    async def open_registration(self, season_id: str) -> Season:
        return await self._apply_transition(season_id, "open_registration")

    async def complete_season(self, season_id: str) -> Season:
        return await self._apply_transition(season_id, "complete_season")

    async def cancel_season(self, season_id: str) -> Season:
        return await self._apply_transition(season_id, "cancel_season")

    async def reopen_registration(self, season_id: str) -> Season:
        return await self._apply_transition(season_id, "reopen_registration")

    async def register_team(self, season_id: str, team_id: str) -> Season:
        async with self._held.hold(season_id):
            season = await self._load_season(season_id)
            await self._ensure_teams_exist([team_id])
            season_sm.register_team(season, team_id)
            await self.repo.save_season(season)
        logger.info("team_registered season=%s team=%s", season_id, team_id)
        return season

    async def unregister_team(self, season_id: str, team_id: str) -> Season:
        async with self._held.hold(season_id):
            season = await self._load_season(season_id)
            season_sm.unregister_team(season, team_id)
            await self.repo.save_season(season)
        logger.info("team_unregistered season=%s team=%s", season_id, team_id)
        return season

    async def _write_schedule(
        self,
        season: Season,
        result: season_sm.ScheduleResult,
    ) -> None:
        deleted = 0
        if result.replaced_game_ids:
            deleted = await self.repo.delete_games_for_season(season.id)
        await self.repo.create_games(season.id, result.games)
        await self.repo.save_season(season)

        by_id = {game.id: game for game in result.games}
        for week in result.weeks:
            clashes = double_booked_teams([by_id[gid] for gid in week.games])
            if clashes:
                logger.warning(
                    "week_double_booked season=%s week=%d teams=%s",
                    season.id,
                    week.index,
                    ",".join(sorted(clashes)),
                )

        logger.info(
            "schedule_generated season=%s weeks=%d games=%d replaced=%d",
            season.id,
            len(result.weeks),
            result.game_count,
            deleted,
        )

    async def _generate(self, season: Season, *, regenerate: bool) -> season_sm.ScheduleResult:
        kickoff = self.settings.default_kickoff
        if regenerate:
            existing = await self.repo.get_games_for_season(season.id)
            result = season_sm.regenerate_schedule(season, existing, kickoff=kickoff)
        else:
            result = season_sm.generate_schedule(season, kickoff=kickoff)
        await self._write_schedule(season, result)
        return result

    async def generate_schedule(self, season_id: str) -> season_sm.ScheduleResult:
        async with self._held.hold(season_id):
            season = await self._load_season(season_id)
            result = await self._generate(season, regenerate=False)
        self._schedule_generated(season, result)
        return result

    async def regenerate_schedule(self, season_id: str) -> season_sm.ScheduleResult:
        """Replace every game of the season with a fresh fixture list.

        Team count and status are checked before any game is deleted; the
        delete and the inserts happen in the caller's transaction.
        """
        async with self._held.hold(season_id):
            season = await self._load_season(season_id)
            result = await self._generate(season, regenerate=True)
        self._schedule_generated(season, result)
        return result

    def _schedule_generated(self, season: Season, result: season_sm.ScheduleResult) -> None:
        self._queue(
            Topic.SCHEDULE_GENERATED,
            {
                "season_id": season.id,
                "weeks": len(result.weeks),
                "games": result.game_count,
                "replaced": len(result.replaced_game_ids),
            },
        )

    async def start_season(self, season_id: str, *, auto_generate: bool | None = None) -> Season:
        """Start play, optionally generating the schedule first.

        ``auto_generate`` defaults to ``Settings.auto_generate_schedule``.
        Without it, a season with no weeks fails with NoScheduleError.
        """
        if auto_generate is None:
            auto_generate = self.settings.auto_generate_schedule
        generated: season_sm.ScheduleResult | None = None
        async with self._held.hold(season_id):
            season = await self._load_season(season_id)
            before = SeasonStatus(season.status)
            if auto_generate and not season.weeks and before == SeasonStatus.REGISTRATION:
                generated = await self._generate(season, regenerate=False)
            season_sm.start_season(season)
            await self.repo.save_season(season)
        if generated is not None:
            self._schedule_generated(season, generated)
        self._status_changed(season, before)
        return season

    async def delete_season(self, season_id: str) -> int:
        """Delete a non-active season and all its games. Returns games deleted."""
        async with self._held.hold(season_id):
            season = await self._load_season(season_id)
            season_sm.ensure_deletable(season)
            deleted = await self.repo.delete_games_for_season(season_id)
            await self.repo.delete_season(season_id)
        self._deleted.append(season_id)
        logger.info("season_deleted season=%s games=%d", season_id, deleted)
        return deleted

    # --- games ---

    async def _mutate_game(
        self, game_id: str, operation: str, *args: object, **kwargs: object
    ) -> Game:
        season_id = (await self._load_game(game_id)).season_id
        async with self._held.hold(season_id):
            game = await self._load_game(game_id)
            season = await self._load_season(season_id)
            season_sm.ensure_games_mutable(season)
            before = GameStatus(game.status)
            getattr(game_sm, operation)(game, *args, **kwargs)
            await self.repo.save_game(game)
            if game.status != before and game.status in game_sm.SETTLED_STATUSES:
                await self._refresh_season(season)

        if game.status != before:
            logger.info(
                "game_status_changed game=%s season=%s from=%s to=%s",
                game.id,
                season_id,
                before,
                game.status,
            )
            self._queue(
                Topic.GAME_STATUS_CHANGED,
                {
                    "game_id": game.id,
                    "season_id": season_id,
                    "from_status": str(before),
                    "to_status": str(game.status),
                },
            )
        return game

    async def _refresh_season(self, season: Season) -> None:
        """Recompute week completion and cached standings after a game settles."""
        games = await self.repo.get_games_for_season(season.id)
        season_sm.refresh_week_completion(season, games)
        teams = await self.repo.get_teams_by_ids(season.teams)
        season.standings = compute_standings(teams, games, season_id=season.id)
        await self.repo.save_season(season)

    async def set_venue_and_time(self, game_id: str, venue: Venue, when: datetime) -> Game:
        return await self._mutate_game(game_id, "set_venue_and_time", venue, when)

    async def start_game(self, game_id: str, *, started_at: datetime | None = None) -> Game:
        return await self._mutate_game(game_id, "start_game", started_at=started_at)

    async def set_score(self, game_id: str, home: int, away: int) -> Game:
        return await self._mutate_game(game_id, "set_score", home, away)

    async def complete_game(self, game_id: str) -> Game:
        return await self._mutate_game(game_id, "complete_game")

    async def cancel_game(self, game_id: str) -> Game:
        return await self._mutate_game(game_id, "cancel_game")

    async def postpone_game(self, game_id: str) -> Game:
        return await self._mutate_game(game_id, "postpone_game")

    async def add_event(self, game_id: str, event: GameEvent) -> Game:
        game = await self._mutate_game(game_id, "add_event", event)
        self._queue(
            Topic.GAME_EVENT_RECORDED,
            {
                "game_id": game.id,
                "season_id": game.season_id,
                "type": str(event.type),
                "team_id": event.team_id,
                "player_id": event.player_id,
                "minute": event.minute,
            },
        )
        return game

    # --- read models ---

    async def standings(self, season_id: str, *, persist: bool = True) -> list[StandingRow]:
        """Compute the league table; with ``persist`` also cache it on the season."""
        async with self._held.hold(season_id):
            season = await self._load_season(season_id)
            teams = await self.repo.get_teams_by_ids(season.teams)
            games = await self.repo.get_games_for_season(season_id, status=GameStatus.COMPLETED)
            rows = compute_standings(teams, games, season_id=season_id)
            if persist:
                season.standings = rows
                await self.repo.save_season(season)
        return rows

    async def top_scorers(self, season_id: str, *, limit: int | None = None) -> list[ScorerRow]:
        async with self._held.hold(season_id):
            await self._load_season(season_id)
            games = await self.repo.get_games_for_season(season_id, status=GameStatus.COMPLETED)
            player_ids = {event.player_id for game in games for event in game.events}
            players = await self.repo.get_players_by_ids(player_ids)
        return compute_top_scorers(games, {p.id: p for p in players}, limit=limit)

    async def hat_tricks(self, game_id: str) -> list[str]:
        return game_sm.hat_tricks(await self._load_game(game_id))

    async def progress(self, season_id: str) -> SeasonProgress:
        season = await self._load_season(season_id)
        return season_sm.season_progress(season)
