"""
Tie resolution for teams level on win percentage.

Cascade, each step tried only when the previous one left the group tied:
  1. Head-to-head (only if every team in the group has met every other):
     a. cumulative head-to-head win percentage, sub-ties resolved recursively;
     b. cumulative head-to-head average points (lower is better).
  2. Last race between the two teams (two-team groups only).
  3. Points against common opponents (lower is better).
  4. Shared place.

Entities are never mutated: every step returns new TeamRanking values.
Recursion only ever runs on a strict subset of the current group, so it terminates.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Sequence

from regatta.models import Race, TeamRanking
from regatta.scoring import (
    head_to_head,
    is_completed_race,
    last_race_between,
    match_winner,
    opponents_faced,
    points_for,
    tie_broken_on_first_place,
)

logger = logging.getLogger(__name__)

# Percentages and averages are compared at this precision to ignore float noise
_PRECISION = 2


def _fmt(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".") if value != int(value) else str(int(value))


def _start_place(group: Sequence[TeamRanking]) -> int:
    return min((t.place or 1) for t in group)


def _races_touching(teams: Sequence[TeamRanking], races: Sequence[Race]) -> list[Race]:
    names = {t.team for t in teams}
    return [r for r in races if r.team_a in names or r.team_b in names]


def _bucket(group: Sequence[TeamRanking], key: dict[str, float], descending: bool) -> list[list[TeamRanking]]:
    """Split the group into runs of equal key, best first. Group order is kept inside a run."""
    values = sorted(set(key.values()), reverse=descending)
    return [[t for t in group if key[t.team] == v] for v in values]


def _beat_lost_parts(team: str, buckets: list[list[TeamRanking]]) -> list[str]:
    index = next(i for i, b in enumerate(buckets) if any(t.team == team for t in b))
    beaten = [t.team for b in buckets[index + 1:] for t in b]
    lost_to = [t.team for b in buckets[:index] for t in b]
    parts: list[str] = []
    if beaten:
        parts.append(f"Beat {', '.join(beaten)}")
    if lost_to:
        parts.append(f"Lost to {', '.join(lost_to)}")
    return parts


def _place_buckets(
    buckets: list[list[TeamRanking]],
    start: int,
    parent_size: int,
    notes: dict[str, str],
    races_for: Callable[[list[TeamRanking]], Sequence[Race]],
) -> list[TeamRanking]:
    """
    Assign sequential places bucket by bucket. Singletons take the next place with their note;
    larger buckets are resolved recursively and the counter continues after them.
    """
    ordered: list[TeamRanking] = []
    place = start
    for bucket in buckets:
        if len(bucket) == 1:
            team = bucket[0]
            ordered.append(replace(team, place=place, tiebreak_note=notes.get(team.team)))
            place += 1
            continue
        if len(bucket) >= parent_size:
            raise RuntimeError(f"Tie sub-group did not shrink: {[t.team for t in bucket]}")
        logger.debug("Sub-tie between %s at place %d", ", ".join(t.team for t in bucket), place)
        sub = [replace(t, place=place, tiebreak_note=None) for t in bucket]
        resolved = resolve_tie_group(sub, races_for(bucket))
        ordered.extend(resolved)
        place = max(t.place for t in resolved) + 1
    return ordered


# ---------- Step 1: head-to-head ----------


def _by_head_to_head(
    group: Sequence[TeamRanking], races: Sequence[Race], start: int
) -> list[TeamRanking] | None:
    teams = [t.team for t in group]
    matrix = {
        (a, b): head_to_head(a, b, races)
        for a in teams
        for b in teams
        if a != b
    }
    missing = [(a, b) for (a, b), rec in matrix.items() if rec.matches == 0 and a < b]
    if missing:
        logger.debug(
            "Head-to-head incomplete for %s (never met: %s)",
            ", ".join(teams),
            "; ".join(f"{a} v {b}" for a, b in missing),
        )
        return None

    wins: dict[str, int] = {}
    matches: dict[str, int] = {}
    total_points: dict[str, float] = {}
    for team in teams:
        records = [matrix[(team, other)] for other in teams if other != team]
        wins[team] = sum(r.wins for r in records)
        matches[team] = sum(r.matches for r in records)
        total_points[team] = sum(r.total_points for r in records)

    pct = {team: round(wins[team] / matches[team] * 100, _PRECISION) for team in teams}
    logger.debug(
        "Head-to-head win %%: %s",
        ", ".join(f"{t} {wins[t]}/{matches[t]} ({pct[t]:.2f}%)" for t in teams),
    )
    if len(set(pct.values())) > 1:
        buckets = _bucket(group, pct, descending=True)
        notes = {}
        for bucket in buckets:
            if len(bucket) == 1:
                team = bucket[0].team
                record = f"{wins[team]}-{matches[team] - wins[team]}"
                notes[team] = f"{'. '.join(_beat_lost_parts(team, buckets))} in head-to-head matches ({record})"
        logger.debug("Tie broken by head-to-head win percentage")
        return _place_buckets(
            buckets, start, len(group), notes, lambda b: _races_touching(b, races)
        )

    avg = {team: round(total_points[team] / matches[team], _PRECISION) for team in teams}
    logger.debug("Head-to-head avg points: %s", ", ".join(f"{t} {avg[t]:.2f}" for t in teams))
    if len(set(avg.values())) > 1:
        buckets = _bucket(group, avg, descending=False)
        notes = {}
        for bucket in buckets:
            if len(bucket) == 1:
                team = bucket[0].team
                notes[team] = (
                    f"{'. '.join(_beat_lost_parts(team, buckets))} on head-to-head average points "
                    f"({avg[team]:.2f})"
                )
        logger.debug("Tie broken by head-to-head average points")
        return _place_buckets(
            buckets, start, len(group), notes, lambda b: _races_touching(b, races)
        )

    logger.debug("Head-to-head did not separate %s", ", ".join(teams))
    return None


# ---------- Step 2: last race ----------


def _by_last_race(
    group: Sequence[TeamRanking], races: Sequence[Race], start: int
) -> list[TeamRanking] | None:
    if len(group) != 2:
        return None
    first, second = group
    race = last_race_between(first.team, second.team, races)
    if race is None:
        logger.debug("No completed race between %s and %s", first.team, second.team)
        return None
    winner_name = match_winner(race)
    winner, loser = (first, second) if winner_name == first.team else (second, first)
    w_pts = _fmt(points_for(race, winner.team))
    l_pts = _fmt(points_for(race, loser.team))
    if tie_broken_on_first_place(race):
        reason = f"level on {w_pts} points, {loser.team} took first place"
    else:
        reason = f"{w_pts} to {l_pts} points"
    logger.debug("Last race %d decides %s over %s", race.race_number, winner.team, loser.team)
    return [
        replace(
            winner,
            place=start,
            tiebreak_note=f"Won last race against {loser.team} (race {race.race_number}, {reason})",
        ),
        replace(
            loser,
            place=start + 1,
            tiebreak_note=f"Lost last race to {winner.team} (race {race.race_number}, {reason})",
        ),
    ]


# ---------- Step 3: common opponents ----------


def common_opponents(teams: Sequence[str], races: Sequence[Race]) -> list[str]:
    """Opponents outside the group that every team in it has a completed race against."""
    if not teams:
        return []
    faced = [set(opponents_faced(t, races)) for t in teams]
    return [
        opponent
        for opponent in opponents_faced(teams[0], races)
        if opponent not in teams and all(opponent in s for s in faced)
    ]


def points_against(team: str, opponents: Sequence[str], races: Sequence[Race]) -> float:
    return sum(
        points_for(r, team)
        for r in races
        if r.involves(team) and r.opponent_of(team) in opponents and is_completed_race(r)
    )


def _by_common_opponents(
    group: Sequence[TeamRanking], races: Sequence[Race], start: int
) -> list[TeamRanking] | None:
    teams = [t.team for t in group]
    opponents = common_opponents(teams, races)
    if not opponents:
        logger.debug("No common opponents for %s", ", ".join(teams))
        return None
    totals = {team: points_against(team, opponents, races) for team in teams}
    logger.debug(
        "Points vs common opponents (%s): %s",
        ", ".join(opponents),
        ", ".join(f"{t} {_fmt(totals[t])}" for t in teams),
    )
    if len(set(totals.values())) == 1:
        return None
    buckets = _bucket(group, totals, descending=False)
    opp_list = ", ".join(opponents)
    notes = {}
    for bucket in buckets:
        if len(bucket) == 1:
            team = bucket[0].team
            notes[team] = (
                f"{'. '.join(_beat_lost_parts(team, buckets))} against common opponents "
                f"({opp_list}): {_fmt(totals[team])} points"
            )
    logger.debug("Tie broken by common opponents")
    return _place_buckets(buckets, start, len(group), notes, lambda b: races)


# ---------- Step 4: shared place ----------


def _share_place(group: Sequence[TeamRanking], start: int) -> list[TeamRanking]:
    logger.debug("Unable to break tie; %s share place %d", ", ".join(t.team for t in group), start)
    return [
        replace(
            t,
            place=start,
            tiebreak_note=f"Tied with {', '.join(o.team for o in group if o.team != t.team)}",
        )
        for t in group
    ]


def resolve_tie_group(group: Sequence[TeamRanking], races: Sequence[Race]) -> list[TeamRanking]:
    """
    Order a group of teams tied on win percentage and assign their places.
    The group's lowest current place (or 1) is where numbering starts.
    Returns new entities in final order; exhausting every step is a valid outcome (shared place).
    """
    if len(group) <= 1:
        return list(group)
    start = _start_place(group)
    logger.debug(
        "Resolving tie between %s (%.2f%%) from place %d",
        ", ".join(t.team for t in group),
        group[0].win_percentage,
        start,
    )
    for step in (_by_head_to_head, _by_last_race, _by_common_opponents):
        resolved = step(group, races, start)
        if resolved is not None:
            return resolved
    return _share_place(group, start)
