"""
Tests for per-league leaderboards.
Win percentage ordering, dense places, league scoping, knockout exclusion, idempotence.
"""
from __future__ import annotations

import copy

from regatta.models import BoatAssignment, LeagueMode, Race
from regatta.services.leaderboard import (
    compute_leaderboard,
    league_mode,
    leaderboard_to_dict,
    partition_by_league,
    team_records,
)

A_WINS = [1, 2, 3, 4, 5, 6]


def _race(n, a, b, result=A_WINS, league=None, **kwargs):
    return Race(
        race_number=n,
        team_a=a,
        team_b=b,
        boats=BoatAssignment("Red", "Blue"),
        league=league,
        racing_format="3v3",
        result=result,
        **kwargs,
    )


def _four_team_races():
    return [
        _race(1, "A", "B"),
        _race(2, "A", "C"),
        _race(3, "A", "D"),
        _race(4, "B", "D"),
        _race(5, "C", "D"),
        _race(6, "B", "C", [1, 2, 6, 3, 4, 5]),
        _race(7, "C", "B", [1, 2, 6, 3, 4, 5]),
    ]


def test_implicit_main_league():
    races = [_race(1, "A", "B"), _race(2, "B", "C")]
    assert league_mode(races) == LeagueMode.IMPLICIT_MAIN
    board = compute_leaderboard(races)
    assert list(board) == ["main"]
    assert [t.team for t in board["main"]] == ["A", "B", "C"]
    assert all(t.league == "main" for t in board["main"])


def test_scoped_leagues_ignore_unassigned_races():
    races = [
        _race(1, "A", "B", league="Gold"),
        _race(2, "X", "Y", league="Silver"),
        _race(3, "A", "Z"),
    ]
    assert league_mode(races) == LeagueMode.SCOPED
    board = compute_leaderboard(races)
    assert set(board) == {"Gold", "Silver"}
    assert [t.team for t in board["Gold"]] == ["A", "B"]
    assert board["Gold"][0].total_races == 1
    assert "Z" not in {t.team for rows in board.values() for t in rows}


def test_knockout_races_do_not_count():
    races = [
        _race(1, "A", "B"),
        _race(2, "B", "A", is_knockout=True, stage="final", match_number=1, best_of=1),
    ]
    assert [r.race_number for r in partition_by_league(races)["main"]] == [1]
    a = compute_leaderboard(races)["main"][0]
    assert (a.team, a.wins, a.total_races) == ("A", 1, 1)


def test_team_records_skip_incomplete_results():
    races = [_race(1, "A", "B"), _race(2, "A", "C", None), _race(3, "B", "C", [1, 2, 3])]
    records = {t.team: t for t in team_records("main", races)}
    assert records["A"].wins == 1
    assert records["A"].total_races == 1
    assert records["C"].total_races == 0
    assert records["C"].win_percentage == 0.0


def test_win_percentage_order_and_tiebreak():
    board = compute_leaderboard(_four_team_races())["main"]
    assert [t.team for t in board] == ["A", "C", "B", "D"]
    assert [t.place for t in board] == [1, 2, 3, 4]
    assert board[0].win_percentage == 100.0
    assert board[1].win_percentage == 50.0
    # C and B split their series 1-1 on equal points, race 7 decides
    assert board[1].tiebreak_note == "Won last race against B (race 7, 9 to 12 points)"
    assert board[0].tiebreak_note is None


def test_shared_places_stay_dense():
    races = [_race(1, "A", "C"), _race(2, "B", "D")]
    board = compute_leaderboard(races)["main"]
    places = {t.team: t.place for t in board}
    assert places == {"A": 1, "B": 1, "C": 2, "D": 2}


def test_every_team_ranked_once():
    board = compute_leaderboard(_four_team_races())["main"]
    teams = [t.team for t in board]
    assert sorted(teams) == ["A", "B", "C", "D"]
    assert len(set(teams)) == len(teams)


def test_idempotent_and_pure():
    races = _four_team_races()
    before = copy.deepcopy(races)
    first = compute_leaderboard(races)
    second = compute_leaderboard(races)
    assert first == second
    assert races == before


def test_leaderboard_to_dict_camel_case():
    out = leaderboard_to_dict(compute_leaderboard(_four_team_races()))
    row = out["main"][1]
    assert row["team"] == "C"
    assert row["totalRaces"] == 4
    assert row["winPercentage"] == 50.0
    assert row["points"] == 0
    assert row["place"] == 2
    assert "tiebreakNote" in row
    assert "tiebreakNote" not in out["main"][0]


def test_empty_schedule():
    assert compute_leaderboard([]) == {"main": []}
