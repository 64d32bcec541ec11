"""
Serve the regatta API.
Run from project root: python -m regatta.run_server --port 8000
Set LOG_LEVEL=DEBUG to see every tie-break and pairing step.
"""
from __future__ import annotations

import argparse

import uvicorn

from regatta.persistence.db import set_db_path


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the regatta API server.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--db", help="SQLite file (default: REGATTA_DB_PATH or data/regatta.db)")
    args = parser.parse_args()

    if args.db:
        set_db_path(args.db)
    # Logging is configured by the app lifespan
    uvicorn.run("regatta.api:app", host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
