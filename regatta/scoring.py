"""
Completion and scoring primitives for team races.

A team's score in a race is the sum of its boats' finish positions (lower is better).
Equal sums go to the team that did NOT finish first (see side_a_holds_first).
Pure functions; malformed results are treated as not completed, never raised.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from regatta import config
from regatta.models import Race, RacingFormat

_BOATS_PER_TEAM: dict[str, int] = {f.value: f.boats_per_team for f in RacingFormat}
DEFAULT_BOATS_PER_TEAM = _BOATS_PER_TEAM[config.DEFAULT_RACING_FORMAT]


class Side(str, Enum):
    A = "A"
    B = "B"


def boats_per_team(racing_format: str | None) -> int:
    """2v2 -> 2, 3v3 -> 3, 4v4 -> 4; anything else (including None) -> 3."""
    if racing_format is None:
        return DEFAULT_BOATS_PER_TEAM
    return _BOATS_PER_TEAM.get(str(racing_format), DEFAULT_BOATS_PER_TEAM)


def expected_result_length(racing_format: str | None) -> int:
    return 2 * boats_per_team(racing_format)


def is_position(value: object) -> bool:
    # bool is an int subclass; True must not count as position 1
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def is_completed_race(race: Race) -> bool:
    """
    True iff the result has exactly 2 × boats_per_team entries, is not all zeros,
    and every entry is a number > 0. Partially filled or malformed results are not completed.
    """
    result = race.result
    if result is None or not isinstance(result, (list, tuple)):
        return False
    if len(result) != expected_result_length(race.racing_format):
        return False
    if all(v == 0 for v in result):
        return False
    return all(is_position(v) for v in result)


def _require_result(race: Race) -> list[int]:
    if race.result is None:
        raise ValueError(f"Race {race.race_number} has no result")
    return race.result


def team_points(race: Race, side: Side) -> float:
    """Sum of one side's slice of the result. Caller must check is_completed_race first."""
    n = boats_per_team(race.racing_format)
    result = _require_result(race)
    chunk = result[:n] if side == Side.A else result[n:]
    return sum(chunk)


def side_of(race: Race, team: str) -> Side | None:
    if race.team_a == team:
        return Side.A
    if race.team_b == team:
        return Side.B
    return None


def points_for(race: Race, team: str) -> float:
    side = side_of(race, team)
    if side is None:
        raise ValueError(f"{team} did not sail race {race.race_number}")
    return team_points(race, side)


def side_a_holds_first(race: Race) -> bool:
    """
    Whether position 1 is among side A's boats.
    A result with no 1 in it counts as side A holding it, so tied totals then go to side B.
    """
    result = _require_result(race)
    n = boats_per_team(race.racing_format)
    first_index = result.index(1) if 1 in result else -1
    return first_index < n


def winning_side(race: Race) -> Side | None:
    """Lower total wins; on equal totals the side that did not take position 1 wins."""
    if not is_completed_race(race):
        return None
    a = team_points(race, Side.A)
    b = team_points(race, Side.B)
    if a < b:
        return Side.A
    if a > b:
        return Side.B
    return Side.B if side_a_holds_first(race) else Side.A


def match_winner(race: Race) -> str | None:
    side = winning_side(race)
    if side is None:
        return None
    return race.team_a if side == Side.A else race.team_b


def tie_broken_on_first_place(race: Race) -> bool:
    """True when the winner was decided by the position-1 rule rather than on points."""
    if not is_completed_race(race):
        return False
    return team_points(race, Side.A) == team_points(race, Side.B)


# ---------- Head-to-head ----------


@dataclass(frozen=True)
class HeadToHead:
    """First team's record against the second across every completed race between them."""
    team: str
    opponent: str
    wins: int
    matches: int
    total_points: float

    @property
    def losses(self) -> int:
        return self.matches - self.wins

    @property
    def avg_points(self) -> float:
        """Mean points per race; +inf when they never met (no data)."""
        if self.matches == 0:
            return math.inf
        return self.total_points / self.matches


def races_between(team: str, opponent: str, races: Iterable[Race]) -> list[Race]:
    """Completed races between the pair in schedule order, either side, whole best-of series."""
    return [
        r for r in races
        if ((r.team_a == team and r.team_b == opponent) or (r.team_a == opponent and r.team_b == team))
        and is_completed_race(r)
    ]


def head_to_head(team: str, opponent: str, races: Iterable[Race]) -> HeadToHead:
    wins = 0
    total = 0.0
    matches = races_between(team, opponent, races)
    for race in matches:
        total += points_for(race, team)
        if match_winner(race) == team:
            wins += 1
    return HeadToHead(team=team, opponent=opponent, wins=wins, matches=len(matches), total_points=total)


def last_race_between(team: str, opponent: str, races: Sequence[Race]) -> Race | None:
    """Most recent completed race between the pair, by race number."""
    matches = races_between(team, opponent, races)
    if not matches:
        return None
    return max(matches, key=lambda r: r.race_number)


def opponents_faced(team: str, races: Iterable[Race]) -> list[str]:
    """Opponents met in completed races, in the order first met."""
    seen: list[str] = []
    for race in races:
        if race.involves(team) and is_completed_race(race):
            opponent = race.opponent_of(team)
            if opponent not in seen:
                seen.append(opponent)
    return seen
