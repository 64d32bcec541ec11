"""
Per-league leaderboard: win percentage from completed races, then tie-breaks.

Recomputed in full on every request; nothing is cached or persisted.
Knockout races never count toward the regular leaderboard.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Sequence

from regatta.models import IMPLICIT_LEAGUE, LeagueMode, Race, TeamRanking
from regatta.scoring import is_completed_race, match_winner
from regatta.services.tiebreak import resolve_tie_group

logger = logging.getLogger(__name__)


def league_mode(races: Sequence[Race]) -> LeagueMode:
    """Implicit single league when no race carries a league value."""
    if any(r.league for r in races):
        return LeagueMode.SCOPED
    return LeagueMode.IMPLICIT_MAIN


def partition_by_league(races: Sequence[Race]) -> dict[str, list[Race]]:
    """
    Map league name -> its races in schedule order. Knockout races are dropped.
    In scoped mode, races without a league belong to no league and are left out.
    """
    regular = [r for r in races if not r.is_knockout]
    mode = league_mode(regular)
    if mode == LeagueMode.IMPLICIT_MAIN:
        return {IMPLICIT_LEAGUE: regular}
    by_league: dict[str, list[Race]] = defaultdict(list)
    unassigned = 0
    for race in regular:
        if not race.league:
            unassigned += 1
            continue
        by_league[race.league].append(race)
    if unassigned:
        logger.debug("%d races without a league ignored in scoped leaderboard", unassigned)
    return dict(by_league)


def team_records(league: str, races: Sequence[Race]) -> list[TeamRanking]:
    """One entity per team appearing in the league's races (first appearance order), with wins and totals."""
    order: list[str] = []
    wins: dict[str, int] = {}
    totals: dict[str, int] = {}
    for race in races:
        for team in (race.team_a, race.team_b):
            if team not in wins:
                order.append(team)
                wins[team] = 0
                totals[team] = 0
    skipped = 0
    for race in races:
        if not is_completed_race(race):
            if race.result is not None and any(v for v in race.result if v):
                skipped += 1
            continue
        totals[race.team_a] += 1
        totals[race.team_b] += 1
        winner = match_winner(race)
        if winner is not None:
            wins[winner] += 1
    if skipped:
        logger.debug("%s: %d races with malformed results excluded from scoring", league, skipped)
    return [
        TeamRanking(
            team=team,
            wins=wins[team],
            total_races=totals[team],
            win_percentage=(wins[team] / totals[team] * 100) if totals[team] else 0.0,
            league=league,
        )
        for team in order
    ]


def rank_league(league: str, races: Sequence[Race]) -> list[TeamRanking]:
    """
    Group teams by exact win percentage (highest first) and hand multi-team groups to the tie resolver.
    Places are dense: the next group starts right after the last place the previous group used,
    so a shared place leaves no gap (two teams tied on 1 are followed by 2, not 3).
    """
    records = team_records(league, races)
    groups: dict[float, list[TeamRanking]] = defaultdict(list)
    for record in records:
        groups[record.win_percentage].append(record)

    ranked: list[TeamRanking] = []
    place = 1
    for pct in sorted(groups, reverse=True):
        group = groups[pct]
        if len(group) == 1:
            ranked.append(replace(group[0], place=place))
            place += 1
            continue
        tentative = [replace(t, place=place) for t in group]
        resolved = resolve_tie_group(tentative, races)
        ranked.extend(resolved)
        # Dense numbering, not place + len(group)
        place = max(t.place for t in resolved) + 1
    return ranked


def compute_leaderboard(races: Sequence[Race]) -> dict[str, list[TeamRanking]]:
    """League name -> ordered rankings. Pure: the input races are not modified."""
    leaderboard = {
        league: rank_league(league, league_races)
        for league, league_races in partition_by_league(races).items()
    }
    logger.debug(
        "Leaderboard computed for %s",
        ", ".join(f"{name} ({len(rows)} teams)" for name, rows in leaderboard.items()) or "no leagues",
    )
    return leaderboard


def leaderboard_to_dict(leaderboard: dict[str, list[TeamRanking]]) -> dict[str, list[dict]]:
    return {league: [t.to_dict() for t in rows] for league, rows in leaderboard.items()}
