"""SQLite connection handling and table definitions for the crawler state."""

from __future__ import annotations

import sqlite3
from pathlib import Path

_DB_FILE_NAME = "db.sqlite"

_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS crawl_queue (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        domain TEXT NOT NULL,
        url TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL,
        num_retries INTEGER NOT NULL DEFAULT 0,
        crawl_type TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS fetch_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        protocol TEXT NOT NULL,
        domain TEXT NOT NULL,
        path TEXT NOT NULL,
        hash TEXT,
        status INTEGER NOT NULL,
        no_index INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS indexed_document (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        domain TEXT NOT NULL,
        url TEXT NOT NULL,
        doc_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS resource_rules (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        domain TEXT NOT NULL,
        rule TEXT NOT NULL,
        no_index INTEGER NOT NULL,
        allow_crawl INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS link (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        src_domain TEXT NOT NULL,
        src_url TEXT NOT NULL,
        dst_domain TEXT NOT NULL,
        dst_url TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS lens (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        author TEXT NOT NULL,
        description TEXT,
        version TEXT NOT NULL,
        is_enabled INTEGER NOT NULL,
        lens_type TEXT NOT NULL,
        "trigger" TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bootstrap_queue (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        seed_url TEXT NOT NULL UNIQUE,
        count INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
)


def connect(path) -> sqlite3.Connection:
    """Open a SQLite database at ``path`` with rows addressable by column name."""
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


def create_connection(data_dir, is_test=False) -> sqlite3.Connection:
    """Open the application database, in memory when ``is_test`` is true.

    Otherwise the database lives in ``data_dir`` and is created if missing.
    """
    if is_test:
        return connect(":memory:")
    if data_dir is None:
        raise ValueError("a data directory is required outside of tests")
    directory = Path(data_dir)
    directory.mkdir(parents=True, exist_ok=True)
    return connect(directory / _DB_FILE_NAME)


def setup_schema(conn: sqlite3.Connection) -> None:
    """Create every table that does not exist yet."""
    with conn:
        for ddl in _TABLES:
            conn.execute(ddl)


def setup_test_db() -> sqlite3.Connection:
    """Return an in-memory database with all tables created."""
    conn = create_connection(None, True)
    setup_schema(conn)
    return conn