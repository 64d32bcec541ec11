"""
Tests for race timing metrics.
"""
from __future__ import annotations

from datetime import datetime, timezone

from regatta.metrics import compute_metrics, format_duration
from regatta.models import BoatAssignment, Race

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _race(n, start=None, end=None, status="finished"):
    return Race(
        race_number=n,
        team_a="A",
        team_b="B",
        boats=BoatAssignment("Red", "Blue"),
        status=status,
        start_time=start,
        end_time=end,
    )


def test_format_duration():
    assert format_duration(0) == "0m 0s"
    assert format_duration(270_000) == "4m 30s"
    assert format_duration(61_999) == "1m 1s"


def test_no_finished_races_uses_default_gap():
    metrics = compute_metrics([_race(1, status="not_started")], now=NOW)
    assert metrics.average_race_length == "0m 0s"
    assert metrics.time_between_races == "0m 0s"
    assert metrics.time_between_races_ms == 180_000
    assert metrics.last_updated == NOW.isoformat()


def test_average_length_and_gap():
    races = [
        _race(1, "2024-06-01T10:00:00Z", "2024-06-01T10:05:00Z"),
        _race(2, "2024-06-01T10:06:00Z", "2024-06-01T10:10:00Z"),
        _race(3, "2024-06-01T10:11:00Z", None, status="in_progress"),
    ]
    metrics = compute_metrics(races, now=NOW)
    assert metrics.average_race_length == "4m 30s"
    # Latest finish first: |start of race 1 - end of race 2|
    assert metrics.time_between_races_ms == 600_000
    assert metrics.time_between_races == "10m 0s"


def test_only_five_most_recent_finishes_count_for_gap():
    races = [
        _race(n, f"2024-06-01T{9 + n:02d}:00:00+00:00", f"2024-06-01T{9 + n:02d}:10:00+00:00")
        for n in range(1, 8)
    ]
    metrics = compute_metrics(races, now=NOW)
    assert metrics.average_race_length == "10m 0s"
    # Each consecutive pair is 1h10m apart from end to previous start
    assert metrics.time_between_races_ms == 70 * 60_000


def test_to_dict_keys():
    d = compute_metrics([], now=NOW).to_dict()
    assert set(d) == {"averageRaceLength", "timeBetweenRaces", "timeBetweenRacesMs", "lastUpdated"}
