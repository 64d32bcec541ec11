#!/usr/bin/env python3
"""
Demo event: Save settings → Generate schedule → Enter results → Print leaderboard.
Run from project root: python3 scripts/demo_event.py
"""
from __future__ import annotations

import json
import random
import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from regatta.logging_config import setup_logging
from regatta.models import BoatSet, Settings
from regatta.persistence import get_connection, init_db
from regatta.persistence.db import get_db_path, set_db_path
from regatta.services.leaderboard import leaderboard_to_dict
from regatta.services.race_service import RaceService


def main() -> None:
    setup_logging()
    # Use data/demo_event.db for demo (distinct from regatta.db)
    db_path = PROJECT_ROOT / "data" / "demo_event.db"
    set_db_path(db_path)
    init_db(db_path=db_path)

    service = RaceService()
    rng = random.Random(2024)
    conn = get_connection()
    try:
        # 1. Settings: six teams, two boat sets
        settings = Settings(
            team_input="Harbour\nLighthouse\nNorth Shore\nRiverside\nSouth Point\nWestbay",
            boat_sets=[BoatSet("s1", "Red", "Blue"), BoatSet("s2", "Green", "Yellow")],
            event_name="Demo Regatta",
        )
        service.update_settings(conn, settings)

        # 2. Round robin from settings
        races = service.generate_schedule(conn)
        print(f"Generated {len(races)} races")

        # 3. Sail two thirds of them with shuffled finishing positions
        for race in races[: len(races) * 2 // 3]:
            positions = list(range(1, 7))
            rng.shuffle(positions)
            service.submit_result(conn, race.race_number, result=positions, status="finished")

        # 4. Leaderboard
        board = leaderboard_to_dict(service.leaderboard(conn))
        print(json.dumps(board, indent=2))
        print(f"DB path: {get_db_path()}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
