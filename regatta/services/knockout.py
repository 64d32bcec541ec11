"""
Knockout bracket scheduling.

Simpler than the round robin: matchups are fixed by the caller. Each matchup gets best_of
races on one boat set, a boat set's matches are sailed back to back, and races from
different boat sets are interleaved one at a time so the sets run in parallel.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Sequence

from regatta.errors import NotFoundError, ValidationError
from regatta.models import BoatSet, KnockoutStage, Race, RaceStatus
from regatta.services.scheduling import validate_racing_format

logger = logging.getLogger(__name__)

VALID_BEST_OF = (1, 3, 5)


@dataclass(frozen=True)
class KnockoutMatchup:
    team_a: str
    team_b: str
    league: str | None = None
    boat_set: str | None = None  # BoatSet id; None = next set in rotation
    match_number: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KnockoutMatchup:
        return cls(
            team_a=str(data.get("teamA", "")).strip(),
            team_b=str(data.get("teamB", "")).strip(),
            league=data.get("league") or None,
            boat_set=data.get("boatSet") or None,
            match_number=data.get("matchNumber"),
        )


@dataclass
class KnockoutRemoval:
    kept: list[Race]
    removed: list[Race]


def _validate(matchups: Sequence[KnockoutMatchup], best_of: int, stage: str) -> None:
    if not matchups:
        raise ValidationError("Please provide at least one knockout matchup")
    if best_of not in VALID_BEST_OF:
        raise ValidationError(f"bestOf must be one of {', '.join(map(str, VALID_BEST_OF))}")
    if stage not in {s.value for s in KnockoutStage}:
        raise ValidationError(f"Invalid knockout stage {stage!r}. Must be quarter, semi, or final")
    for m in matchups:
        if not m.team_a or not m.team_b:
            raise ValidationError("Each knockout matchup needs teamA and teamB")
        if m.team_a == m.team_b:
            raise ValidationError(f"Team {m.team_a} cannot race itself")


def generate_knockouts(
    matchups: Sequence[KnockoutMatchup],
    best_of: int,
    stage: str,
    boat_sets: Sequence[BoatSet],
    existing_races: Sequence[Race] = (),
    racing_format: str | None = None,
) -> list[Race]:
    """Build the knockout races, numbered after the existing schedule. Returns only the new races."""
    _validate(matchups, best_of, stage)
    fmt = validate_racing_format(racing_format)
    if not boat_sets:
        raise ValidationError("Please configure at least one boat set")
    sets_by_id = {b.id: b for b in boat_sets}

    per_set: dict[str, list[Race]] = {}
    for index, matchup in enumerate(matchups):
        if matchup.boat_set is not None:
            boat_set = sets_by_id.get(matchup.boat_set)
            if boat_set is None:
                raise NotFoundError(f"Boat set {matchup.boat_set} not found")
        else:
            boat_set = boat_sets[index % len(boat_sets)]
        match_number = matchup.match_number or index + 1
        races = per_set.setdefault(boat_set.id, [])
        for _ in range(best_of):
            races.append(
                Race(
                    race_number=0,
                    team_a=matchup.team_a,
                    team_b=matchup.team_b,
                    boats=boat_set.assignment(include_id=True),
                    league=matchup.league,
                    racing_format=fmt,
                    status=RaceStatus.NOT_STARTED.value,
                    is_knockout=True,
                    stage=stage,
                    match_number=match_number,
                    best_of=best_of,
                )
            )

    # One race per boat set per round
    ordered: list[Race] = []
    longest = max(len(rs) for rs in per_set.values())
    for i in range(longest):
        for races in per_set.values():
            if i < len(races):
                ordered.append(races[i])

    start = max((r.race_number for r in existing_races), default=0) + 1
    numbered = [replace(r, race_number=start + i) for i, r in enumerate(ordered)]
    logger.info(
        "Created %d %s knockout races (best of %d) on %d boat sets",
        len(numbered), stage, best_of, len(per_set),
    )
    return numbered


def is_unsailed(race: Race) -> bool:
    return not race.result or all(v == 0 for v in race.result)


def remove_knockouts(races: Sequence[Race], unsailed_only: bool = False) -> KnockoutRemoval:
    """
    Drop knockout races (all, or only unsailed ones) and renumber the rest 1..N in race order.
    """
    removed = [r for r in races if r.is_knockout and (not unsailed_only or is_unsailed(r))]
    removed_ids = {id(r) for r in removed}
    kept = sorted((r for r in races if id(r) not in removed_ids), key=lambda r: r.race_number)
    renumbered = [replace(r, race_number=i) for i, r in enumerate(kept, start=1)]
    logger.info("Removed %d knockout races, %d races remain", len(removed), len(renumbered))
    return KnockoutRemoval(kept=renumbered, removed=removed)
