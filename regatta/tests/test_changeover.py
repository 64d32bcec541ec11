"""
Tests for launching / changeover flags per boat-set lineage.
"""
from __future__ import annotations

from regatta.models import BoatAssignment, Race
from regatta.services.changeover import lineages, update_changeover_flags

RED_BLUE = BoatAssignment("Red", "Blue")
GREEN_YELLOW = BoatAssignment("Green", "Yellow")


def _race(n, boats, status=None):
    return Race(race_number=n, team_a=f"T{n}a", team_b=f"T{n}b", boats=boats, status=status)


def _flags(races):
    return {r.race_number: (r.is_launching, r.go_to_changeover) for r in races}


def test_swapped_boats_share_a_lineage():
    races = [_race(1, RED_BLUE), _race(2, BoatAssignment("Blue", "Red")), _race(3, GREEN_YELLOW)]
    groups = lineages(races)
    assert len(groups) == 2
    assert [r.race_number for r in groups[frozenset({"Red", "Blue"})]] == [1, 2]


def test_single_lineage_nothing_finished():
    races = [_race(n, RED_BLUE) for n in range(1, 5)]
    flags = _flags(update_changeover_flags(races))
    assert flags[1] == (True, False)
    assert flags[2] == (False, True)   # trigger -1
    assert flags[3] == (False, True)   # trigger 0
    assert flags[4] == (False, False)  # waits on race 1


def test_single_lineage_after_first_finish():
    races = [_race(1, RED_BLUE, "finished")] + [_race(n, RED_BLUE) for n in range(2, 5)]
    flags = _flags(update_changeover_flags(races))
    assert flags[1] == (False, False)
    assert flags[2] == (True, False)
    assert flags[3] == (False, True)
    assert flags[4] == (False, True)


def test_interleaved_boat_sets():
    races = [_race(n, RED_BLUE if n % 2 else GREEN_YELLOW) for n in range(1, 7)]
    flags = _flags(update_changeover_flags(races))
    assert flags[1] == (True, False)
    assert flags[2] == (True, False)
    assert flags[3] == (False, True)
    assert flags[4] == (False, True)
    assert flags[5] == (False, False)
    assert flags[6] == (False, False)

    races[0] = _race(1, RED_BLUE, "finished")
    flags = _flags(update_changeover_flags(races))
    assert flags[3] == (True, False)
    assert flags[5] == (False, True)
    assert flags[6] == (False, False)


def test_changeover_trigger_on_another_boat_set():
    # Red/Blue sails 1, 4, 5; race 5 waits on race 2, which is on Green/Yellow
    layout = {1: RED_BLUE, 2: GREEN_YELLOW, 3: GREEN_YELLOW, 4: RED_BLUE, 5: RED_BLUE}
    races = [_race(n, boats) for n, boats in layout.items()]
    flags = _flags(update_changeover_flags(races))
    assert flags[4] == (False, True)   # trigger -1
    assert flags[5] == (False, False)  # trigger 2, not finished

    races[1] = _race(2, GREEN_YELLOW, "finished")
    flags = _flags(update_changeover_flags(races))
    assert flags[1] == (True, False)
    assert flags[5] == (False, True)
    assert flags[2] == (False, False)
    assert flags[3] == (True, False)


def test_stale_flags_are_recomputed_and_input_untouched():
    races = [
        Race(race_number=1, team_a="A", team_b="B", boats=RED_BLUE, status="finished",
             is_launching=True, go_to_changeover=True),
        _race(2, RED_BLUE),
    ]
    updated = update_changeover_flags(races)
    assert _flags(updated) == {1: (False, False), 2: (True, False)}
    assert races[0].is_launching is True
    assert [r.race_number for r in updated] == [1, 2]
