"""Tests for the season state machine: transitions, registration, schedule building."""

import itertools
from datetime import date, datetime

import pytest

from matchday.core.season import (
    ALLOWED_TRANSITIONS,
    cancel_season,
    complete_season,
    ensure_deletable,
    ensure_games_mutable,
    generate_schedule,
    is_in_window,
    open_registration,
    refresh_week_completion,
    regenerate_schedule,
    register_team,
    reopen_registration,
    season_progress,
    start_season,
    unregister_team,
)
from matchday.errors import (
    InsufficientTeamsError,
    InvalidDateRangeError,
    InvalidSeasonTransitionError,
    NoScheduleError,
    ScheduleExistsError,
    SeasonClosedError,
    SeasonNotOpenError,
    TeamAlreadyRegisteredError,
    TeamNotRegisteredError,
)
from matchday.models.game import Game, GameStatus
from matchday.models.season import Season, SeasonSettings, SeasonStatus, Week
from matchday.models.standings import StandingRow


def _season(
    status: SeasonStatus = SeasonStatus.DRAFT,
    teams: int = 4,
    games_per_week: int = 2,
    **kwargs: object,
) -> Season:
    return Season(
        id="s-1",
        league_id="l-1",
        name="Spring",
        start_date=date(2026, 3, 1),
        end_date=date(2026, 5, 31),
        status=status,
        teams=[f"t-{i}" for i in range(teams)],
        settings=SeasonSettings(games_per_week=games_per_week),
        **kwargs,
    )


def _ids(prefix: str = "g"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def _scheduled(status: SeasonStatus = SeasonStatus.REGISTRATION, teams: int = 4) -> Season:
    season = _season(SeasonStatus.DRAFT, teams=teams)
    generate_schedule(season, id_factory=_ids())
    season.status = status
    return season


class TestTransitionTable:
    def test_every_status_has_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(SeasonStatus)

    def test_cancelled_is_terminal(self):
        assert ALLOWED_TRANSITIONS[SeasonStatus.CANCELLED] == set()


class TestOpenRegistration:
    def test_from_draft(self):
        season = open_registration(_season())
        assert season.status == SeasonStatus.REGISTRATION

    @pytest.mark.parametrize(
        "status",
        [
            SeasonStatus.REGISTRATION,
            SeasonStatus.ACTIVE,
            SeasonStatus.COMPLETED,
            SeasonStatus.CANCELLED,
        ],
    )
    def test_only_from_draft(self, status: SeasonStatus):
        with pytest.raises(InvalidSeasonTransitionError) as exc:
            open_registration(_season(status))
        assert exc.value.from_status == str(status)
        assert exc.value.attempted == "registration"


class TestStartSeason:
    def test_starts_with_schedule(self):
        season = start_season(_scheduled())
        assert season.status == SeasonStatus.ACTIVE

    def test_requires_schedule(self):
        season = _season(SeasonStatus.REGISTRATION)
        with pytest.raises(NoScheduleError):
            start_season(season)
        assert season.status == SeasonStatus.REGISTRATION

    def test_not_from_draft(self):
        season = _scheduled(SeasonStatus.DRAFT)
        with pytest.raises(InvalidSeasonTransitionError) as exc:
            start_season(season)
        assert (exc.value.from_status, exc.value.attempted) == ("draft", "active")
        assert season.status == SeasonStatus.DRAFT


class TestCompleteSeason:
    def test_from_active(self):
        season = _scheduled(SeasonStatus.ACTIVE)
        weeks = list(season.weeks)
        complete_season(season)
        assert season.status == SeasonStatus.COMPLETED
        assert season.weeks == weeks

    def test_from_registration_rejected(self):
        season = _season(SeasonStatus.REGISTRATION)
        with pytest.raises(InvalidSeasonTransitionError) as exc:
            complete_season(season)
        assert exc.value.from_status == "registration"
        assert exc.value.attempted == "completed"
        assert season.status == SeasonStatus.REGISTRATION


class TestCancelSeason:
    @pytest.mark.parametrize("status", [SeasonStatus.REGISTRATION, SeasonStatus.ACTIVE])
    def test_cancel(self, status: SeasonStatus):
        assert cancel_season(_season(status)).status == SeasonStatus.CANCELLED

    @pytest.mark.parametrize(
        "status", [SeasonStatus.DRAFT, SeasonStatus.COMPLETED, SeasonStatus.CANCELLED]
    )
    def test_cannot_cancel(self, status: SeasonStatus):
        with pytest.raises(InvalidSeasonTransitionError) as exc:
            cancel_season(_season(status))
        assert exc.value.attempted == "cancelled"


class TestReopenRegistration:
    @pytest.mark.parametrize("status", [SeasonStatus.ACTIVE, SeasonStatus.COMPLETED])
    def test_reopen_keeps_teams_and_weeks(self, status: SeasonStatus):
        season = _scheduled(status)
        teams, weeks = list(season.teams), list(season.weeks)
        reopen_registration(season)
        assert season.status == SeasonStatus.REGISTRATION
        assert season.teams == teams
        assert season.weeks == weeks

    @pytest.mark.parametrize(
        "status", [SeasonStatus.DRAFT, SeasonStatus.REGISTRATION, SeasonStatus.CANCELLED]
    )
    def test_reopen_rejected(self, status: SeasonStatus):
        with pytest.raises(InvalidSeasonTransitionError):
            reopen_registration(_season(status))


class TestGuards:
    def test_active_not_deletable(self):
        with pytest.raises(InvalidSeasonTransitionError) as exc:
            ensure_deletable(_season(SeasonStatus.ACTIVE))
        assert exc.value.attempted == "deleted"

    @pytest.mark.parametrize(
        "status",
        [
            SeasonStatus.DRAFT,
            SeasonStatus.REGISTRATION,
            SeasonStatus.COMPLETED,
            SeasonStatus.CANCELLED,
        ],
    )
    def test_others_deletable(self, status: SeasonStatus):
        ensure_deletable(_season(status))

    @pytest.mark.parametrize("status", [SeasonStatus.COMPLETED, SeasonStatus.CANCELLED])
    def test_closed_season_freezes_games(self, status: SeasonStatus):
        with pytest.raises(SeasonClosedError) as exc:
            ensure_games_mutable(_season(status))
        assert exc.value.status == str(status)

    def test_active_season_games_mutable(self):
        ensure_games_mutable(_season(SeasonStatus.ACTIVE))


class TestRegistration:
    def test_register(self):
        season = register_team(_season(SeasonStatus.REGISTRATION, teams=2), "new")
        assert season.teams == ["t-0", "t-1", "new"]

    def test_duplicate_rejected(self):
        season = _season(SeasonStatus.REGISTRATION, teams=2)
        with pytest.raises(TeamAlreadyRegisteredError) as exc:
            register_team(season, "t-1")
        assert exc.value.team_id == "t-1"
        assert season.teams == ["t-0", "t-1"]

    @pytest.mark.parametrize(
        "status",
        [
            SeasonStatus.DRAFT,
            SeasonStatus.ACTIVE,
            SeasonStatus.COMPLETED,
            SeasonStatus.CANCELLED,
        ],
    )
    def test_closed_outside_registration(self, status: SeasonStatus):
        season = _season(status, teams=2)
        with pytest.raises(SeasonNotOpenError):
            register_team(season, "new")
        with pytest.raises(SeasonNotOpenError):
            unregister_team(season, "t-0")
        assert season.teams == ["t-0", "t-1"]

    def test_unregister(self):
        season = unregister_team(_season(SeasonStatus.REGISTRATION, teams=3), "t-1")
        assert season.teams == ["t-0", "t-2"]

    def test_unregister_unknown(self):
        with pytest.raises(TeamNotRegisteredError):
            unregister_team(_season(SeasonStatus.REGISTRATION), "ghost")

    def test_model_rejects_duplicate_teams(self):
        with pytest.raises(ValueError, match="only once"):
            Season(
                league_id="l",
                name="x",
                start_date=date(2026, 1, 1),
                end_date=date(2026, 2, 1),
                teams=["a", "a"],
            )


class TestGenerateSchedule:
    def test_builds_weeks_and_games(self):
        season = _season()
        result = generate_schedule(season, id_factory=_ids())
        assert result.game_count == 6
        assert len(season.weeks) == 3
        assert season.game_ids == [g.id for g in result.games]
        assert result.replaced_game_ids == []
        assert season.status == SeasonStatus.DRAFT

    def test_from_registration(self):
        season = _season(SeasonStatus.REGISTRATION)
        generate_schedule(season)
        assert len(season.weeks) == 3

    def test_round_robins_setting(self):
        season = _season()
        season.settings.round_robins = 2
        result = generate_schedule(season)
        assert result.game_count == 12

    def test_clears_cached_standings(self):
        season = _season(standings=[StandingRow(team_id="t-0", team_name="A", points=3)])
        generate_schedule(season)
        assert season.standings == []

    @pytest.mark.parametrize(
        "status", [SeasonStatus.ACTIVE, SeasonStatus.COMPLETED, SeasonStatus.CANCELLED]
    )
    def test_rejected_after_registration(self, status: SeasonStatus):
        season = _season(status)
        with pytest.raises(InvalidSeasonTransitionError) as exc:
            generate_schedule(season)
        assert exc.value.attempted == "generate_schedule"
        assert season.weeks == []

    @pytest.mark.parametrize("teams", [0, 1])
    def test_insufficient_teams(self, teams: int):
        season = _season(teams=teams)
        with pytest.raises(InsufficientTeamsError):
            generate_schedule(season)
        assert season.weeks == []

    def test_existing_schedule(self):
        season = _scheduled(SeasonStatus.DRAFT)
        before = list(season.weeks)
        with pytest.raises(ScheduleExistsError):
            generate_schedule(season)
        assert season.weeks == before

    def test_window_too_short(self):
        season = _season(games_per_week=1)
        season.end_date = date(2026, 3, 3)
        with pytest.raises(InvalidDateRangeError):
            generate_schedule(season)
        assert season.weeks == []


class TestRegenerateSchedule:
    def test_replaces_previous_games(self):
        season = _scheduled()
        old_ids = season.game_ids
        register_team(season, "t-4")
        result = regenerate_schedule(season, id_factory=_ids("new"))
        assert result.replaced_game_ids == sorted(old_ids)
        assert result.game_count == 10
        assert all(gid.startswith("new-") for gid in season.game_ids)

    def test_includes_orphaned_games(self):
        season = _scheduled()
        stray = Game(
            id="stray",
            season_id="s-1",
            home_team_id="t-0",
            away_team_id="t-1",
            scheduled_date=datetime(2026, 3, 1, 12),
        )
        other = stray.model_copy(update={"id": "other", "season_id": "s-2"})
        result = regenerate_schedule(season, [stray, other])
        assert "stray" in result.replaced_game_ids
        assert "other" not in result.replaced_game_ids

    def test_failure_leaves_schedule_intact(self):
        season = _scheduled()
        weeks = [w.model_copy(deep=True) for w in season.weeks]
        unregister_team(season, "t-0")
        unregister_team(season, "t-1")
        unregister_team(season, "t-2")
        with pytest.raises(InsufficientTeamsError):
            regenerate_schedule(season)
        assert season.weeks == weeks

    def test_bad_window_leaves_schedule_intact(self):
        season = _scheduled()
        weeks = [w.model_copy(deep=True) for w in season.weeks]
        season.end_date = season.start_date
        with pytest.raises(InvalidDateRangeError):
            regenerate_schedule(season)
        assert season.weeks == weeks

    def test_rejected_when_active(self):
        season = _scheduled(SeasonStatus.ACTIVE)
        with pytest.raises(InvalidSeasonTransitionError) as exc:
            regenerate_schedule(season)
        assert exc.value.attempted == "regenerate_schedule"

    def test_without_previous_schedule(self):
        result = regenerate_schedule(_season())
        assert result.replaced_game_ids == []
        assert result.game_count == 6


class TestProgress:
    def _games(self, season: Season, settled: int) -> list[Game]:
        counter = itertools.count()
        games = []
        for week in season.weeks:
            for gid in week.games:
                status = GameStatus.COMPLETED if next(counter) < settled else GameStatus.PENDING
                games.append(
                    Game(
                        id=gid,
                        season_id=season.id,
                        home_team_id="t-0",
                        away_team_id="t-1",
                        scheduled_date=datetime(2026, 3, 1, 12),
                        status=status,
                    )
                )
        return games

    def test_no_weeks(self):
        progress = season_progress(_season())
        assert (progress.total_weeks, progress.completed_weeks, progress.percentage) == (0, 0, 0)

    def test_partial(self):
        season = _scheduled(SeasonStatus.ACTIVE)
        refresh_week_completion(season, self._games(season, settled=3))
        assert [w.is_completed for w in season.weeks] == [True, False, False]
        progress = season_progress(season)
        assert progress.completed_weeks == 1
        assert progress.percentage == 33

    def test_cancelled_games_settle_a_week(self):
        season = _scheduled(SeasonStatus.ACTIVE)
        games = self._games(season, settled=0)
        games[0].status = GameStatus.COMPLETED
        games[1].status = GameStatus.CANCELLED
        refresh_week_completion(season, games)
        assert season.weeks[0].is_completed

    def test_missing_game_keeps_week_open(self):
        season = _scheduled(SeasonStatus.ACTIVE)
        games = self._games(season, settled=6)[1:]
        refresh_week_completion(season, games)
        assert [w.is_completed for w in season.weeks] == [False, True, True]

    def test_all_done(self):
        season = _scheduled(SeasonStatus.ACTIVE)
        refresh_week_completion(season, self._games(season, settled=6))
        assert season_progress(season).percentage == 100

    def test_empty_week_counts_as_complete(self):
        week = Week(index=1, start_date=date(2026, 3, 1), end_date=date(2026, 3, 7))
        season = _season(weeks=[week])
        refresh_week_completion(season, [])
        assert season.weeks[0].is_completed


class TestIsInWindow:
    def test_active_inside(self):
        season = _season(SeasonStatus.ACTIVE)
        assert is_in_window(season, date(2026, 3, 1))
        assert is_in_window(season, date(2026, 5, 31))

    def test_active_outside(self):
        assert not is_in_window(_season(SeasonStatus.ACTIVE), date(2026, 6, 1))

    def test_not_active(self):
        assert not is_in_window(_season(SeasonStatus.REGISTRATION), date(2026, 4, 1))
