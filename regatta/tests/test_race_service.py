"""
Tests for the race control service: results, race start, schedule and knockout writes.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from regatta.errors import NotFoundError, ValidationError
from regatta.models import BoatSet, LeagueConfig, Settings
from regatta.persistence.db import get_connection, init_db, set_db_path
from regatta.services.knockout import KnockoutMatchup
from regatta.services.race_service import RaceService, parse_team_input, validate_result

S1 = BoatSet("s1", "Red", "Blue")
S2 = BoatSet("s2", "Green", "Yellow")


@pytest.fixture
def db_conn(tmp_path):
    db_path = tmp_path / "race_service_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def service():
    return RaceService()


@pytest.fixture
def scheduled(db_conn, service):
    """Settings with four teams on two boat sets and a generated six-race schedule."""
    service.update_settings(db_conn, Settings(team_input="A\nB, C\nD", boat_sets=[S1, S2]))
    return service.generate_schedule(db_conn)


def test_parse_team_input():
    assert parse_team_input("A\nB, C\n\n D ") == ["A", "B", "C", "D"]
    assert parse_team_input("") == []


class TestValidateResult:
    def test_accepts_positions(self):
        assert validate_result([1, 2, 3, 4], "2v2") == [1, 2, 3, 4]
        assert validate_result([1.0, 2, 3, 4, 5, 6], "3v3") == [1, 2, 3, 4, 5, 6]

    @pytest.mark.parametrize(
        "result",
        [[1, 2, 3, 4, 5], [1, 2, 3, 4, 5, 0], [1, 2, 3, 4, 5, -1], [True, 2, 3, 4, 5, 6], [1.5, 2, 3, 4, 5, 6], ["1", 2, 3, 4, 5, 6]],
    )
    def test_rejects_bad_results(self, result):
        with pytest.raises(ValidationError):
            validate_result(result, "3v3")


class TestSchedule:
    def test_generate_from_settings(self, db_conn, service, scheduled):
        assert len(scheduled) == 6
        assert service.get_races(db_conn) == scheduled
        assert scheduled[0].is_launching
        assert scheduled[1].is_launching

    def test_generate_from_request_overrides_settings(self, db_conn, service, scheduled):
        races = service.generate_schedule(db_conn, teams=["X", "Y", "Z"], boat_sets=[S1], racing_format="2v2")
        assert len(races) == 3
        assert {r.racing_format for r in races} == {"2v2"}
        assert [r.race_number for r in service.get_races(db_conn)] == [1, 2, 3]

    def test_add_round_robin_appends(self, db_conn, service, scheduled):
        races = service.add_round_robin(db_conn)
        assert len(races) == 12
        assert [r.race_number for r in races] == list(range(1, 13))
        assert races[:6] == scheduled

    def test_leagues_from_settings(self, db_conn, service):
        service.update_settings(
            db_conn,
            Settings(
                use_leagues=True,
                leagues=[
                    LeagueConfig("Gold", ["A", "B", "C"], [S1]),
                    LeagueConfig("Silver", ["D", "E"], [S2]),
                ],
            ),
        )
        races = service.generate_schedule(db_conn)
        assert [r.league for r in races] == ["Gold", "Silver", "Gold", "Gold"]

        only_silver = service.generate_schedule(db_conn, league_names=["Silver"])
        assert [r.league for r in only_silver] == ["Silver"]

    def test_unknown_league(self, db_conn, service):
        service.update_settings(db_conn, Settings(use_leagues=True, leagues=[LeagueConfig("Gold", ["A", "B"], [S1])]))
        with pytest.raises(NotFoundError):
            service.generate_schedule(db_conn, league_names=["Bronze"])

    def test_validation_leaves_schedule_untouched(self, db_conn, service, scheduled):
        with pytest.raises(ValidationError):
            service.generate_schedule(db_conn, teams=["Solo"], boat_sets=[S1])
        assert service.get_races(db_conn) == scheduled

    def test_invalid_settings_format(self, db_conn, service):
        with pytest.raises(ValidationError):
            service.update_settings(db_conn, Settings(racing_format="5v5"))
        assert service.get_settings(db_conn) == Settings()


class TestResults:
    def test_submit_result_updates_leaderboard(self, db_conn, service, scheduled):
        first = scheduled[0]
        race = service.submit_result(db_conn, first.race_number, result=[1, 2, 3, 4, 5, 6], status="finished")
        assert race.result == [1, 2, 3, 4, 5, 6]
        assert race.status == "finished"
        board = service.leaderboard(db_conn)["main"]
        assert board[0].team == first.team_a
        assert board[0].wins == 1

    def test_finishing_a_race_moves_launch_flag(self, db_conn, service, scheduled):
        service.submit_result(db_conn, 1, result=[1, 2, 3, 4, 5, 6], status="finished")
        races = {r.race_number: r for r in service.get_races(db_conn)}
        assert not races[1].is_launching
        assert races[3].is_launching

    def test_bad_result_not_saved(self, db_conn, service, scheduled):
        with pytest.raises(ValidationError):
            service.submit_result(db_conn, 1, result=[1, 2, 3])
        assert service.get_race(db_conn, 1).result is None

    def test_unknown_race(self, db_conn, service, scheduled):
        with pytest.raises(NotFoundError):
            service.submit_result(db_conn, 99, result=[1, 2, 3, 4, 5, 6])
        with pytest.raises(NotFoundError):
            service.get_race(db_conn, 99)

    def test_invalid_status(self, db_conn, service, scheduled):
        with pytest.raises(ValidationError):
            service.submit_result(db_conn, 1, status="abandoned")

    def test_start_race(self, db_conn, service, scheduled):
        race = service.start_race(db_conn, 2, "2024-06-01T10:00:00Z")
        assert race.status == "in_progress"
        assert race.start_time == "2024-06-01T10:00:00Z"

    def test_clear_result(self, db_conn, service, scheduled):
        service.submit_result(db_conn, 1, result=[1, 2, 3, 4, 5, 6], status="finished")
        race = service.submit_result(db_conn, 1, result=None)
        assert race.result is None
        assert race.status == "finished"
        assert all(t.total_races == 0 for t in service.leaderboard(db_conn)["main"])

    def test_omitted_result_is_kept(self, db_conn, service, scheduled):
        service.submit_result(db_conn, 1, result=[1, 2, 3, 4, 5, 6])
        race = service.submit_result(db_conn, 1, status="finished")
        assert race.result == [1, 2, 3, 4, 5, 6]

    def test_reset_leaderboard_keeps_races(self, db_conn, service, scheduled):
        service.start_race(db_conn, 1, "2024-06-01T10:00:00Z")
        service.submit_result(db_conn, 1, result=[1, 2, 3, 4, 5, 6], status="finished", end_time="2024-06-01T10:05:00Z")
        before = service.get_races(db_conn)
        board = service.reset_leaderboard(db_conn)
        assert service.get_races(db_conn) == before
        race = service.get_race(db_conn, 1)
        assert (race.result, race.status, race.start_time, race.end_time) == (
            [1, 2, 3, 4, 5, 6], "finished", "2024-06-01T10:00:00Z", "2024-06-01T10:05:00Z",
        )
        assert board == service.leaderboard(db_conn)
        assert board["main"][0].wins == 1

    def test_metrics(self, db_conn, service, scheduled):
        service.submit_result(
            db_conn, 1, status="finished", start_time="2024-06-01T10:00:00Z", end_time="2024-06-01T10:04:00Z"
        )
        assert service.metrics(db_conn).average_race_length == "4m 0s"


class TestKnockouts:
    def test_generate_and_remove(self, db_conn, service, scheduled):
        new = service.generate_knockouts(db_conn, [KnockoutMatchup("A", "B"), KnockoutMatchup("C", "D")], 3, "semi")
        assert [r.race_number for r in new] == list(range(7, 13))
        assert {r.boats.set_id for r in new} == {"s1", "s2"}
        assert len(service.get_races(db_conn)) == 12

        removal = service.remove_knockouts(db_conn)
        assert len(removal.removed) == 6
        assert service.get_races(db_conn) == removal.kept
        assert len(removal.kept) == 6

    def test_knockouts_need_configured_boat_sets(self, db_conn, service):
        with pytest.raises(ValidationError):
            service.generate_knockouts(db_conn, [KnockoutMatchup("A", "B")], 1, "final")
