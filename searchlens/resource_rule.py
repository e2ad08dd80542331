"""Per-domain crawl and indexing rules."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class ResourceRule:
    """A rule for URLs of a domain."""

    id: int
    domain: str
    rule: str
    no_index: bool
    allow_crawl: bool
    created_at: datetime
    updated_at: datetime


def _from_row(row: sqlite3.Row) -> ResourceRule:
    return ResourceRule(
        id=row["id"],
        domain=row["domain"],
        rule=row["rule"],
        no_index=bool(row["no_index"]),
        allow_crawl=bool(row["allow_crawl"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def insert(
    conn: sqlite3.Connection, domain: str, rule: str, no_index: bool, allow_crawl: bool
) -> ResourceRule:
    """Add a rule for ``domain``."""
    now = datetime.now(timezone.utc).isoformat()
    with conn:
        cursor = conn.execute(
            "INSERT INTO resource_rules "
            "(domain, rule, no_index, allow_crawl, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (domain, rule, int(no_index), int(allow_crawl), now, now),
        )
    row = conn.execute(
        "SELECT * FROM resource_rules WHERE id = ?", (cursor.lastrowid,)
    ).fetchone()
    return _from_row(row)


def find_by_domain(conn: sqlite3.Connection, domain: str) -> list[ResourceRule]:
    """All rules for ``domain`` in insertion order."""
    rows = conn.execute(
        "SELECT * FROM resource_rules WHERE domain = ? ORDER BY id", (domain,)
    ).fetchall()
    return [_from_row(row) for row in rows]