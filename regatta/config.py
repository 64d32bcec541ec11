"""
Runtime configuration read from the environment.
Values are resolved once at import; tests override the DB path via persistence.db.set_db_path.
"""
from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DB_PATH = Path(os.environ.get("REGATTA_DB_PATH", str(PROJECT_ROOT / "data" / "regatta.db")))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "REGATTA_CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    ).split(",")
    if origin.strip()
]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

DEFAULT_RACING_FORMAT = "3v3"
DEFAULT_EVENT_NAME = os.environ.get("REGATTA_DEFAULT_EVENT_NAME", "IUSA Event 1")

# Fallback gap between races when no finished races exist yet (3 minutes)
DEFAULT_TIME_BETWEEN_RACES_MS = 180_000
