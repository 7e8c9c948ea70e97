"""Seed a Matchday league and play weeks for demo purposes.

Usage:
    python scripts/demo_seed.py seed [LEAGUE.yaml]  # Create league, teams, schedule; start season
    python scripts/demo_seed.py step [N]            # Play the next N weeks (default 1)
    python scripts/demo_seed.py status              # Print table, scorers, progress

Uses a local SQLite database (demo_matchday.db) unless DATABASE_URL is set.
"""

from __future__ import annotations

import asyncio
import os
import random
import sys
from pathlib import Path

from matchday.config import Settings
from matchday.core.event_bus import Envelope, Topic
from matchday.core.manager import SeasonManager
from matchday.core.seeding import generate_league, load_league_yaml, seed_league
from matchday.main import Runtime, create_runtime
from matchday.models.game import EventType, GameEvent, GameStatus, Venue

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///demo_matchday.db")


async def _runtime() -> Runtime:
    return await create_runtime(Settings())


async def _current_season_id(manager: SeasonManager) -> str | None:
    seasons = await manager.repo.get_seasons()
    return seasons[0].id if seasons else None


async def _announce(envelope: Envelope) -> None:
    data = envelope["data"]
    if envelope["type"] == Topic.SEASON_STATUS_CHANGED:
        print(f"  [season] {data['from_status']} -> {data['to_status']}")
    elif envelope["type"] == Topic.SCHEDULE_GENERATED:
        print(f"  [schedule] {data['games']} games over {data['weeks']} weeks")


async def seed(path: str | None = None):
    """Create a league from YAML (or a generated one), schedule it, and start play."""
    config = load_league_yaml(Path(path)) if path else generate_league(num_teams=6)
    runtime = await _runtime()
    runtime.event_bus.on(None, _announce)
    async with runtime.session() as manager:
        seeded = await seed_league(manager.repo, config)
        if seeded.season_id is None:
            print("League has no season block; nothing to schedule.")
            return
        await manager.open_registration(seeded.season_id)
        await manager.generate_schedule(seeded.season_id)
        await manager.start_season(seeded.season_id)

    print(f"Seeded {config.name}: {len(seeded.team_ids)} teams, {len(seeded.player_ids)} players")
    print(f"  Season {seeded.season_id}")
    await runtime.close()


async def _play_game(manager: SeasonManager, game_id: str, rng: random.Random) -> str:
    game = await manager.repo.get_game(game_id)
    home = await manager.repo.get_team(game.home_team_id)
    away = await manager.repo.get_team(game.away_team_id)

    await manager.set_venue_and_time(
        game_id,
        Venue(name=f"{home.city or home.name} Ground"),
        game.scheduled_date,
    )
    await manager.start_game(game_id, started_at=game.scheduled_date)

    goals: list[tuple[int, str, str]] = []
    for team in (home, away):
        roster = await manager.repo.get_players_for_team(team.id)
        for _ in range(rng.randint(0, 3)):
            scorer = rng.choice(roster).id if roster else f"{team.id}-unknown"
            goals.append((rng.randint(1, 90), team.id, scorer))

    for minute, team_id, player_id in sorted(goals):
        await manager.add_event(
            game_id,
            GameEvent(type=EventType.GOAL, player_id=player_id, team_id=team_id, minute=minute),
        )

    home_goals = sum(1 for _, team_id, _ in goals if team_id == home.id)
    await manager.set_score(game_id, home_goals, len(goals) - home_goals)
    await manager.complete_game(game_id)
    return f"  {home.name} {home_goals} - {len(goals) - home_goals} {away.name}"


async def step(weeks: int = 1):
    """Play every open game of the next N unfinished weeks."""
    rng = random.Random()
    runtime = await _runtime()
    async with runtime.session() as manager:
        season_id = await _current_season_id(manager)
        if not season_id:
            print("No season found. Run 'seed' first.")
            return

        season = await manager.repo.load_season(season_id)
        pending = [w for w in season.weeks if not w.is_completed][:weeks]
        if not pending:
            print("Every week has been played.")
        for week in pending:
            print(f"Week {week.index} ({week.start_date} - {week.end_date})")
            for game_id in week.games:
                game = await manager.repo.get_game(game_id)
                if game.status != GameStatus.PENDING:
                    continue
                print(await _play_game(manager, game_id, rng))

        progress = await manager.progress(season_id)
        print(f"Progress: {progress.completed_weeks}/{progress.total_weeks} weeks")
    await runtime.close()


async def status():
    """Print current league state."""
    runtime = await _runtime()
    async with runtime.session() as manager:
        season_id = await _current_season_id(manager)
        if not season_id:
            print("No season found.")
            return

        season = await manager.repo.load_season(season_id)
        rows = await manager.standings(season_id)
        scorers = await manager.top_scorers(season_id, limit=5)
        progress = await manager.progress(season_id)

    print(f"{season.name} [{season.status}] {progress.percentage}% played")
    print(f"{'#':>2}  {'Team':<22} {'P':>2} {'W':>2} {'D':>2} {'L':>2} {'GD':>4} {'Pts':>4}  Form")
    for r in rows:
        print(
            f"{r.position:>2}  {r.team_name:<22} {r.played:>2} {r.won:>2} {r.drawn:>2} "
            f"{r.lost:>2} {r.goal_difference:>+4} {r.points:>4}  {''.join(r.last5)}"
        )
    if scorers:
        print("\nTop scorers:")
        for s in scorers:
            print(f"  {s.goals:>2}  {s.player_name}")
    await runtime.close()


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        return

    cmd = sys.argv[1]
    if cmd == "seed":
        asyncio.run(seed(sys.argv[2] if len(sys.argv) > 2 else None))
    elif cmd == "step":
        n = int(sys.argv[2]) if len(sys.argv) > 2 else 1
        asyncio.run(step(n))
    elif cmd == "status":
        asyncio.run(status())
    else:
        print(f"Unknown command: {cmd}")
        print(__doc__)


if __name__ == "__main__":
    main()
