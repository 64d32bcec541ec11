"""
SQLite schema for regatta documents.
Migration-friendly: each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def documents_schema() -> str:
    """
    Whole-document store. The schedule (race list) and settings are each one JSON body,
    checked out, changed and written back in full; there is no row-level locking.
    """
    return """
    CREATE TABLE IF NOT EXISTS documents (
        name TEXT PRIMARY KEY,
        body TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """


def all_schema_sql() -> str:
    return documents_schema()
