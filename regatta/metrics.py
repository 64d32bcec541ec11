"""
Race timing metrics.
Read-only: consumes race timestamps, returns structured stats. No persistence.
Used by GET /metrics to estimate when upcoming races will start.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Sequence

from regatta import config
from regatta.models import Race, RaceStatus

# Only the most recent finishes count toward the gap between races
RECENT_FINISHES = 5


@dataclass(frozen=True)
class RaceMetrics:
    average_race_length: str
    time_between_races: str
    time_between_races_ms: float
    last_updated: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "averageRaceLength": self.average_race_length,
            "timeBetweenRaces": self.time_between_races,
            "timeBetweenRacesMs": self.time_between_races_ms,
            "lastUpdated": self.last_updated,
        }


def _parse(ts: str) -> datetime:
    dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_duration(ms: float) -> str:
    """Milliseconds -> "Xm Ys"."""
    minutes = int(ms // 60_000)
    seconds = int((ms % 60_000) // 1000)
    return f"{minutes}m {seconds}s"


def _timed_finishes(races: Sequence[Race]) -> list[tuple[datetime, datetime]]:
    out = []
    for race in races:
        if race.status != RaceStatus.FINISHED or not race.start_time or not race.end_time:
            continue
        try:
            out.append((_parse(race.start_time), _parse(race.end_time)))
        except ValueError:
            # Unparseable timestamps are skipped like untimed races
            continue
    return out


def compute_metrics(races: Sequence[Race], now: datetime | None = None) -> RaceMetrics:
    """
    Average race length over every timed finished race, and average gap between the
    RECENT_FINISHES most recently finished races (falls back to DEFAULT_TIME_BETWEEN_RACES_MS).
    """
    finishes = _timed_finishes(races)
    lengths = [(end - start).total_seconds() * 1000 for start, end in finishes]
    average_length = sum(lengths) / len(lengths) if lengths else 0.0

    latest = sorted(finishes, key=lambda f: f[1], reverse=True)[:RECENT_FINISHES]
    gaps = [
        abs((latest[i + 1][0] - latest[i][1]).total_seconds() * 1000)
        for i in range(len(latest) - 1)
    ]
    average_gap = sum(gaps) / len(gaps) if gaps else 0.0

    stamp = now or datetime.now(timezone.utc)
    return RaceMetrics(
        average_race_length=format_duration(average_length),
        time_between_races=format_duration(average_gap),
        time_between_races_ms=average_gap or config.DEFAULT_TIME_BETWEEN_RACES_MS,
        last_updated=stamp.isoformat(),
    )
