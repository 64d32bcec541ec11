"""
Persistence layer for regatta data.
No business logic or scoring here, only read/write interfaces.
"""
from .db import get_connection, init_db
from .repositories import (
    RaceRepository,
    SettingsRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "RaceRepository",
    "SettingsRepository",
]
