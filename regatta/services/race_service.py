"""
Race control service: result entry, race start, schedule and knockout writes.
Every write checks the whole schedule out, changes it, recomputes changeover flags and
saves it back. Validation happens before anything is saved. Last writer wins.
"""
from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Sequence

from regatta.errors import NotFoundError, ValidationError
from regatta.metrics import RaceMetrics, compute_metrics
from regatta.models import BoatSet, LeagueConfig, Race, RaceStatus, Settings, TeamRanking
from regatta.persistence.repositories import RaceRepository, SettingsRepository
from regatta.scoring import is_position, expected_result_length
from regatta.services.changeover import update_changeover_flags
from regatta.services.knockout import KnockoutMatchup, KnockoutRemoval, generate_knockouts, remove_knockouts
from regatta.services.leaderboard import compute_leaderboard
from regatta.services.scheduling import add_round_robin, validate_racing_format

logger = logging.getLogger(__name__)

_VALID_STATUSES = {s.value for s in RaceStatus}

# Marks a field the caller left out, so an explicit None can mean "clear it".
UNSET: Any = object()


def parse_team_input(team_input: str) -> list[str]:
    """Settings keep teams as free text, one per line or comma separated."""
    return [t.strip() for t in re.split(r"[\n,]", team_input or "") if t.strip()]


def validate_result(result: Sequence[object], racing_format: str | None) -> list[int]:
    expected = expected_result_length(racing_format)
    if len(result) != expected:
        raise ValidationError(
            f"Result must have {expected} positions for {racing_format or 'the default format'}, got {len(result)}"
        )
    for value in result:
        if not is_position(value) or not float(value).is_integer():
            raise ValidationError(f"Invalid position {value!r}: positions must be positive integers")
    return [int(v) for v in result]


class RaceService:
    """
    Orchestrates the race store: load, change, recompute flags, save.
    Domain rules live in scoring / tiebreak / scheduling; this class only sequences them.
    """

    def __init__(self) -> None:
        self._race_repo = RaceRepository()
        self._settings_repo = SettingsRepository()

    # ---------- Reads ----------

    def get_races(self, conn: sqlite3.Connection) -> list[Race]:
        return self._race_repo.load_races(conn)

    def get_race(self, conn: sqlite3.Connection, race_number: int) -> Race:
        race = self._race_repo.get(conn, race_number)
        if race is None:
            raise NotFoundError(f"Race {race_number} not found")
        return race

    def leaderboard(self, conn: sqlite3.Connection) -> dict[str, list[TeamRanking]]:
        return compute_leaderboard(self._race_repo.load_races(conn))

    def metrics(self, conn: sqlite3.Connection, now: datetime | None = None) -> RaceMetrics:
        return compute_metrics(self._race_repo.load_races(conn), now=now)

    def get_settings(self, conn: sqlite3.Connection) -> Settings:
        return self._settings_repo.load_settings(conn)

    # ---------- Settings ----------

    def update_settings(self, conn: sqlite3.Connection, settings: Settings) -> Settings:
        validate_racing_format(settings.racing_format)
        self._settings_repo.save_settings(conn, settings)
        logger.info(
            "Settings saved: event=%s format=%s leagues=%d boat_sets=%d",
            settings.event_name, settings.racing_format, len(settings.leagues), len(settings.boat_sets),
        )
        return settings

    # ---------- Race control ----------

    def _save(self, conn: sqlite3.Connection, races: Sequence[Race]) -> list[Race]:
        flagged = update_changeover_flags(races)
        self._race_repo.save_races(conn, flagged)
        return flagged

    def submit_result(
        self,
        conn: sqlite3.Connection,
        race_number: int,
        result: Sequence[object] | None = UNSET,
        status: str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
    ) -> Race:
        """
        Record a result and/or status change for one race. Fields left as None are unchanged,
        except result: passing None clears it, leaving it out keeps it.
        Returns the saved race with its recomputed flags.
        """
        races = self._race_repo.load_races(conn)
        index = next((i for i, r in enumerate(races) if r.race_number == race_number), None)
        if index is None:
            raise NotFoundError(f"Race {race_number} not found")
        race = races[index]

        changes: dict[str, object] = {}
        if result is None:
            changes["result"] = None
        elif result is not UNSET:
            changes["result"] = validate_result(result, race.racing_format)
        if status is not None:
            if status not in _VALID_STATUSES:
                raise ValidationError(f"Invalid status {status!r}. Must be one of {sorted(_VALID_STATUSES)}")
            changes["status"] = status
        if start_time:
            changes["start_time"] = start_time
        if end_time:
            changes["end_time"] = end_time

        races[index] = replace(race, **changes)
        saved = self._save(conn, races)
        logger.info("Race %d updated: %s", race_number, ", ".join(sorted(changes)) or "no changes")
        return saved[index]

    def start_race(self, conn: sqlite3.Connection, race_number: int, start_time: str | None = None) -> Race:
        stamp = start_time or datetime.now(timezone.utc).isoformat()
        return self.submit_result(conn, race_number, status=RaceStatus.IN_PROGRESS.value, start_time=stamp)

    def reset_leaderboard(self, conn: sqlite3.Connection) -> dict[str, list[TeamRanking]]:
        """
        The leaderboard is never stored, so there is nothing to drop: races and results stay
        as they are. Returns the leaderboard recomputed from them.
        """
        leaderboard = compute_leaderboard(self._race_repo.load_races(conn))
        logger.info("Leaderboard reset: %d leagues recomputed", len(leaderboard))
        return leaderboard

    # ---------- Schedule ----------

    def _resolve_leagues(self, settings: Settings, league_names: Sequence[str] | None) -> list[LeagueConfig]:
        if not league_names:
            return list(settings.leagues)
        leagues = []
        for name in league_names:
            league = settings.find_league(name)
            if league is None:
                raise NotFoundError(f"League {name} not found in settings")
            leagues.append(league)
        return leagues

    def _round_robin(
        self,
        conn: sqlite3.Connection,
        existing: Sequence[Race],
        teams: Sequence[str] | None,
        boat_sets: Sequence[BoatSet] | None,
        league_names: Sequence[str] | None,
        racing_format: str | None,
    ) -> list[Race]:
        settings = self._settings_repo.load_settings(conn)
        fmt = racing_format or settings.racing_format
        if teams is None and (league_names or settings.use_leagues):
            leagues = self._resolve_leagues(settings, league_names)
            return add_round_robin(existing, leagues=leagues, racing_format=fmt)
        return add_round_robin(
            existing,
            teams=list(teams) if teams is not None else parse_team_input(settings.team_input),
            boat_sets=list(boat_sets) if boat_sets is not None else settings.boat_sets,
            racing_format=fmt,
        )

    def generate_schedule(
        self,
        conn: sqlite3.Connection,
        teams: Sequence[str] | None = None,
        boat_sets: Sequence[BoatSet] | None = None,
        league_names: Sequence[str] | None = None,
        racing_format: str | None = None,
    ) -> list[Race]:
        """Replace the schedule with a fresh round robin (numbered from 1)."""
        races = self._round_robin(conn, [], teams, boat_sets, league_names, racing_format)
        self._race_repo.save_races(conn, races)
        logger.info("Generated new schedule with %d races", len(races))
        return races

    def add_round_robin(
        self,
        conn: sqlite3.Connection,
        teams: Sequence[str] | None = None,
        boat_sets: Sequence[BoatSet] | None = None,
        league_names: Sequence[str] | None = None,
        racing_format: str | None = None,
    ) -> list[Race]:
        """Append another round robin after the existing races."""
        existing = self._race_repo.load_races(conn)
        races = self._round_robin(conn, existing, teams, boat_sets, league_names, racing_format)
        self._race_repo.save_races(conn, races)
        logger.info("Added %d races to schedule (now %d)", len(races) - len(existing), len(races))
        return races

    # ---------- Knockouts ----------

    def generate_knockouts(
        self,
        conn: sqlite3.Connection,
        matchups: Sequence[KnockoutMatchup],
        best_of: int,
        stage: str,
        racing_format: str | None = None,
    ) -> list[Race]:
        """Append knockout races; returns the new races only."""
        settings = self._settings_repo.load_settings(conn)
        existing = self._race_repo.load_races(conn)
        new_races = generate_knockouts(
            matchups,
            best_of,
            stage,
            settings.all_boat_sets(),
            existing_races=existing,
            racing_format=racing_format or settings.racing_format,
        )
        self._save(conn, [*existing, *new_races])
        return new_races

    def remove_knockouts(self, conn: sqlite3.Connection, unsailed_only: bool = False) -> KnockoutRemoval:
        removal = remove_knockouts(self._race_repo.load_races(conn), unsailed_only=unsailed_only)
        kept = self._save(conn, removal.kept)
        return KnockoutRemoval(kept=kept, removed=removal.removed)
