"""
Deterministic round-robin schedule generation across boat sets.

Every unordered pairing of a league's teams is raced exactly once. Pairings are
picked one boat set at a time so crews get rest and boat familiarity:
  1. teams that just raced on another boat set are held back;
  2. pairings that keep a team from this boat set's last race are preferred;
  3. no team sails three races in a row on the same boat set while an alternative exists;
  4. fewest recent appearances on this set, then fewest races overall, then pairing order.
No randomness: the same input always yields the same schedule.

With several leagues, generation walks boat-set slots across all leagues before moving to
the next slot, so leagues interleave instead of one finishing before the next starts.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from regatta import config
from regatta.errors import ValidationError
from regatta.models import BoatSet, LeagueConfig, Race, RacingFormat
from regatta.services.changeover import update_changeover_flags

logger = logging.getLogger(__name__)

Pairing = tuple[str, str]

# Fairness window: how many recent races count as "just raced"
RECENT_WINDOW = 2


@dataclass
class LeagueQueue:
    """Generation state for one league (or the single implicit queue)."""
    name: str | None
    teams: list[str]
    boat_sets: list[BoatSet]
    remaining_pairings: list[Pairing]
    races: list[Race] = field(default_factory=list)


def generate_pairings(teams: Sequence[str]) -> list[Pairing]:
    """Every unordered combination once, in team order: (t0,t1), (t0,t2), ..., (t1,t2), ..."""
    pairings: list[Pairing] = []
    for i in range(len(teams)):
        for j in range(i + 1, len(teams)):
            if teams[i] != teams[j]:
                pairings.append((teams[i], teams[j]))
    return pairings


def _distinct_teams(teams: Sequence[str]) -> list[str]:
    out: list[str] = []
    for team in teams:
        name = str(team).strip()
        if name and name not in out:
            out.append(name)
    return out


def validate_racing_format(racing_format: str | None) -> str:
    value = racing_format or config.DEFAULT_RACING_FORMAT
    if value not in {f.value for f in RacingFormat}:
        raise ValidationError(f"Invalid racing format {value!r}. Must be 2v2, 3v3, or 4v4")
    return value


def _validate_queue(teams: Sequence[str], boat_sets: Sequence[BoatSet], label: str = "") -> list[str]:
    distinct = _distinct_teams(teams)
    suffix = f" for league {label}" if label else ""
    if len(distinct) < 2:
        raise ValidationError(f"Please provide at least 2 teams{suffix}")
    if not boat_sets:
        raise ValidationError(f"Please provide at least one boat set{suffix}")
    return distinct


def _next_race_number(races: Sequence[Race]) -> int:
    return max((r.race_number for r in races), default=0) + 1


# ---------- Fairness helpers ----------


def _on_boat_set(race: Race, boat_set: BoatSet) -> bool:
    return race.boats.pair_key == boat_set.pair_key


def _count_recent_on_set(team: str, boat_set: BoatSet, races: Sequence[Race]) -> int:
    """Appearances of team on this boat set among the last RECENT_WINDOW races."""
    recent = races[-RECENT_WINDOW:]
    return sum(1 for r in recent if r.involves(team) and _on_boat_set(r, boat_set))


def _in_both_last_two_on_set(team: str, boat_set: BoatSet, races: Sequence[Race]) -> bool:
    same_set = [r for r in races if _on_boat_set(r, boat_set)]
    last_two = same_set[-2:]
    if len(last_two) < 2:
        return False
    return all(r.involves(team) for r in last_two)


def _total_races(team: str, races: Sequence[Race]) -> int:
    return sum(1 for r in races if r.involves(team))


def _last_race_on_set(boat_set: BoatSet, races: Sequence[Race]) -> Race | None:
    for race in reversed(races):
        if _on_boat_set(race, boat_set):
            return race
    return None


def _assign_sides(pairing: Pairing, last_on_set: Race | None) -> Pairing:
    """Keep a returning team on the side (boat colour) it sailed in this set's previous race."""
    team_a, team_b = pairing
    if last_on_set is None:
        return team_a, team_b

    def position(team: str) -> str | None:
        if last_on_set.team_a == team:
            return "A"
        if last_on_set.team_b == team:
            return "B"
        return None

    pos_a = position(team_a)
    pos_b = position(team_b)
    if pos_a and pos_b:
        if pos_a == "B" and pos_b == "A":
            return team_b, team_a
    elif pos_a == "B" or pos_b == "A":
        return team_b, team_a
    return team_a, team_b


def select_next_pairing(
    remaining: Sequence[Pairing], races: Sequence[Race], boat_set: BoatSet
) -> Pairing:
    """
    Choose the next (teamA, teamB) for boat_set from the remaining pairings.
    races is the fairness history in schedule order (existing plus newly generated).
    """
    if not remaining:
        raise ValidationError("No remaining pairings to schedule")

    # 1-2: hold back teams from the latest races on other boat sets
    recent_elsewhere = [r for r in races[-RECENT_WINDOW:] if not _on_boat_set(r, boat_set)]
    busy = {t for r in recent_elsewhere for t in (r.team_a, r.team_b)}
    candidates = [p for p in remaining if p[0] not in busy and p[1] not in busy]
    if not candidates:
        candidates = list(remaining)

    # 3: continuity with this boat set's last race
    unfiltered = candidates
    last_on_set = _last_race_on_set(boat_set, races)
    if last_on_set is not None:
        continuing = [p for p in candidates if last_on_set.involves(p[0]) or last_on_set.involves(p[1])]
        if continuing:
            candidates = continuing

    # 4: nobody three in a row on the same boats; widen the pool before giving up on it.
    # Falling back only to the continuity candidates would allow a third straight race
    # while another remaining pairing avoids it, so the fallback goes to every remaining pairing.
    for pool in (candidates, unfiltered, remaining):
        rested = [
            p for p in pool
            if not _in_both_last_two_on_set(p[0], boat_set, races)
            and not _in_both_last_two_on_set(p[1], boat_set, races)
        ]
        if rested:
            candidates = rested
            break

    # 5: fewest recent appearances on this set, then fewest races overall, then first in order
    best = min(
        candidates,
        key=lambda p: (
            _count_recent_on_set(p[0], boat_set, races) + _count_recent_on_set(p[1], boat_set, races),
            _total_races(p[0], races) + _total_races(p[1], races),
        ),
    )
    selected = _assign_sides(best, last_on_set)
    logger.debug(
        "Boat set %s: %s vs %s (busy elsewhere: %s, %d candidates)",
        boat_set.id,
        selected[0],
        selected[1],
        ", ".join(sorted(busy)) or "-",
        len(candidates),
    )
    return selected


def _remove_pairing(remaining: list[Pairing], team_a: str, team_b: str) -> list[Pairing]:
    """Drop the first pairing matching the two teams in either orientation."""
    for i, (a, b) in enumerate(remaining):
        if (a == team_a and b == team_b) or (a == team_b and b == team_a):
            return remaining[:i] + remaining[i + 1:]
    return remaining


def _schedule_one(
    queue: LeagueQueue,
    boat_set: BoatSet,
    history: Sequence[Race],
    race_number: int,
    racing_format: str,
) -> Race:
    team_a, team_b = select_next_pairing(queue.remaining_pairings, history, boat_set)
    race = Race(
        race_number=race_number,
        team_a=team_a,
        team_b=team_b,
        boats=boat_set.assignment(),
        league=queue.name,
        racing_format=racing_format,
    )
    queue.races.append(race)
    queue.remaining_pairings = _remove_pairing(queue.remaining_pairings, team_a, team_b)
    return race


# ---------- Generation ----------


def generate_round_robin(
    teams: Sequence[str],
    boat_sets: Sequence[BoatSet],
    racing_format: str | None = None,
    existing_races: Sequence[Race] = (),
    league: str | None = None,
) -> list[Race]:
    """
    One full round robin for a single queue, rotating through boat_sets race by race.
    Race numbers continue after existing_races. Returns only the new races.
    """
    fmt = validate_racing_format(racing_format)
    distinct = _validate_queue(teams, boat_sets, league or "")
    queue = LeagueQueue(
        name=league,
        teams=distinct,
        boat_sets=list(boat_sets),
        remaining_pairings=generate_pairings(distinct),
    )
    prior = [r for r in existing_races if league is None or r.league == league]
    number = _next_race_number(existing_races)
    while queue.remaining_pairings:
        boat_set = queue.boat_sets[len(queue.races) % len(queue.boat_sets)]
        _schedule_one(queue, boat_set, [*prior, *queue.races], number, fmt)
        number += 1
    logger.info("Generated %d round-robin races for %d teams", len(queue.races), len(distinct))
    return queue.races


def generate_league_round_robin(
    leagues: Sequence[LeagueConfig],
    racing_format: str | None = None,
    existing_races: Sequence[Race] = (),
) -> list[Race]:
    """
    Round robins for several leagues at once, interleaved by boat-set slot.
    Each league's fairness history is its own existing races plus its new races.
    """
    fmt = validate_racing_format(racing_format)
    if not leagues:
        raise ValidationError("Please provide at least one league")
    queues = []
    for lg in leagues:
        distinct = _validate_queue(lg.teams, lg.boat_sets, lg.name)
        queues.append(
            LeagueQueue(
                name=lg.name,
                teams=distinct,
                boat_sets=list(lg.boat_sets),
                remaining_pairings=generate_pairings(distinct),
            )
        )

    number = _next_race_number(existing_races)
    new_races: list[Race] = []
    max_slots = max(len(q.boat_sets) for q in queues)
    while any(q.remaining_pairings for q in queues):
        for slot in range(max_slots):
            for queue in queues:
                if not queue.remaining_pairings or slot >= len(queue.boat_sets):
                    continue
                history = [*(r for r in existing_races if r.league == queue.name), *queue.races]
                new_races.append(_schedule_one(queue, queue.boat_sets[slot], history, number, fmt))
                number += 1
    logger.info(
        "Generated %d round-robin races across leagues %s",
        len(new_races),
        ", ".join(q.name or "" for q in queues),
    )
    return new_races


def add_round_robin(
    existing_races: Sequence[Race],
    teams: Sequence[str] | None = None,
    boat_sets: Sequence[BoatSet] | None = None,
    leagues: Sequence[LeagueConfig] | None = None,
    racing_format: str | None = None,
) -> list[Race]:
    """Append a round robin to an existing schedule; returns the whole schedule with flags recomputed."""
    if leagues:
        new_races = generate_league_round_robin(leagues, racing_format, existing_races)
    else:
        new_races = generate_round_robin(teams or [], boat_sets or [], racing_format, existing_races)
    return update_changeover_flags([*existing_races, *new_races])


def build_schedule(
    teams: Sequence[str] | None = None,
    boat_sets: Sequence[BoatSet] | None = None,
    leagues: Sequence[LeagueConfig] | None = None,
    racing_format: str | None = None,
) -> list[Race]:
    """A fresh schedule numbered from 1, replacing whatever existed."""
    return add_round_robin([], teams, boat_sets, leagues, racing_format)
