"""
Repository interfaces for regatta documents.
No business logic, only read/write operations.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Sequence

from regatta.models import Race, Settings

logger = logging.getLogger(__name__)

SCHEDULE_DOC = "schedule"
SETTINGS_DOC = "settings"


def _read_doc(conn: sqlite3.Connection, name: str) -> Any | None:
    row = conn.execute("SELECT body FROM documents WHERE name = ?", (name,)).fetchone()
    if row is None:
        return None
    return json.loads(row["body"])


def _write_doc(conn: sqlite3.Connection, name: str, body: Any) -> None:
    now = datetime.now(timezone.utc).isoformat()
    conn.execute(
        "INSERT INTO documents (name, body, updated_at) VALUES (?, ?, ?) "
        "ON CONFLICT(name) DO UPDATE SET body = excluded.body, updated_at = excluded.updated_at",
        (name, json.dumps(body, indent=2), now),
    )
    conn.commit()


# ---------- RaceRepository ----------


class RaceRepository:
    """The schedule: every race, in schedule order. Saved and loaded as one document."""

    def load_races(self, conn: sqlite3.Connection) -> list[Race]:
        data = _read_doc(conn, SCHEDULE_DOC)
        if not data:
            return []
        return [Race.from_dict(r) for r in data]

    def save_races(self, conn: sqlite3.Connection, races: Sequence[Race]) -> None:
        """Replace the entire stored collection."""
        _write_doc(conn, SCHEDULE_DOC, [r.to_dict() for r in races])
        logger.debug("Saved schedule with %d races", len(races))

    def get(self, conn: sqlite3.Connection, race_number: int) -> Race | None:
        for race in self.load_races(conn):
            if race.race_number == race_number:
                return race
        return None


# ---------- SettingsRepository ----------


class SettingsRepository:
    """Event settings. Missing document or fields load as defaults."""

    def load_settings(self, conn: sqlite3.Connection) -> Settings:
        return Settings.from_dict(_read_doc(conn, SETTINGS_DOC))

    def save_settings(self, conn: sqlite3.Connection, settings: Settings) -> None:
        _write_doc(conn, SETTINGS_DOC, settings.to_dict())
        logger.debug("Saved settings for %s", settings.event_name)
