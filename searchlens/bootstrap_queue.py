"""Record of seed URLs that have been used to bootstrap crawls."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class BootstrapEntry:
    """A seed URL and the number of URLs it added to the crawl queue."""

    id: int
    seed_url: str
    count: int
    created_at: datetime
    updated_at: datetime


def _from_row(row: sqlite3.Row) -> BootstrapEntry:
    return BootstrapEntry(
        id=row["id"],
        seed_url=row["seed_url"],
        count=row["count"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def has_seed_url(conn: sqlite3.Connection, seed_url: str) -> bool:
    """True if ``seed_url`` has been recorded."""
    row = conn.execute(
        "SELECT 1 FROM bootstrap_queue WHERE seed_url = ? LIMIT 1", (seed_url,)
    ).fetchone()
    return row is not None


def enqueue(conn: sqlite3.Connection, seed_url: str, count: int) -> BootstrapEntry:
    """Record ``seed_url``; raises sqlite3.IntegrityError if already present."""
    now = datetime.now(timezone.utc).isoformat()
    with conn:
        cursor = conn.execute(
            "INSERT INTO bootstrap_queue (seed_url, count, created_at, updated_at) "
            "VALUES (?, ?, ?, ?)",
            (seed_url, count, now, now),
        )
    row = conn.execute(
        "SELECT * FROM bootstrap_queue WHERE id = ?", (cursor.lastrowid,)
    ).fetchone()
    return _from_row(row)


def dequeue(conn: sqlite3.Connection, seed_url: str) -> None:
    """Forget ``seed_url`` if it was recorded."""
    with conn:
        conn.execute("DELETE FROM bootstrap_queue WHERE seed_url = ?", (seed_url,))