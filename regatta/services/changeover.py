"""
Launch / changeover flags per boat set.

A boat set's lineage is every race sharing the same unordered pair of boats.
Within a lineage (by race number), the first race not yet finished is launching.
Each later race may go to changeover once the race two numbers before its predecessor
has finished anywhere in the schedule; the crew then has two races of lead time.

Flags are derived data: they are recomputed from scratch on every pass.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Sequence

from regatta.models import Race, RaceStatus

logger = logging.getLogger(__name__)

# How many races ahead of the rotation a crew must be before changeover prep
CHANGEOVER_LEAD = 2


def lineages(races: Sequence[Race]) -> dict[frozenset[str], list[Race]]:
    """Unordered boat pair -> its races ordered by race number."""
    groups: dict[frozenset[str], list[Race]] = defaultdict(list)
    for race in races:
        groups[race.boats.pair_key].append(race)
    return {key: sorted(group, key=lambda r: r.race_number) for key, group in groups.items()}


def update_changeover_flags(races: Sequence[Race]) -> list[Race]:
    """
    Return a new race list (same order as the input) with is_launching / go_to_changeover recomputed.
    Finished races keep both flags cleared.
    """
    status_by_number = {r.race_number: r.status for r in races}
    flags: dict[int, tuple[bool, bool]] = {}

    for lineage in lineages(races).values():
        launched = False
        for index, race in enumerate(lineage):
            if race.status == RaceStatus.FINISHED:
                continue
            if not launched:
                flags[race.race_number] = (True, False)
                launched = True
                continue
            trigger = lineage[index - 1].race_number - CHANGEOVER_LEAD
            if trigger < 1:
                changeover = True
            else:
                changeover = status_by_number.get(trigger) == RaceStatus.FINISHED
            flags[race.race_number] = (False, changeover)

    updated = []
    for race in races:
        launching, changeover = flags.get(race.race_number, (False, False))
        updated.append(replace(race, is_launching=launching, go_to_changeover=changeover))
    logger.debug(
        "Changeover pass: %d launching, %d to changeover",
        sum(1 for r in updated if r.is_launching),
        sum(1 for r in updated if r.go_to_changeover),
    )
    return updated
