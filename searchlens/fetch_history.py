"""History of fetched pages, used to detect changes between crawls."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit


class FetchProtocol(str, Enum):
    HTTP = "HTTP"


@dataclass(frozen=True)
class FetchHistory:
    """The last fetch of a path on a domain."""

    id: int
    protocol: FetchProtocol
    domain: str
    path: str
    hash: Optional[str]
    status: int
    no_index: bool
    created_at: datetime
    updated_at: datetime


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _from_row(row: sqlite3.Row) -> FetchHistory:
    return FetchHistory(
        id=row["id"],
        protocol=FetchProtocol(row["protocol"]),
        domain=row["domain"],
        path=row["path"],
        hash=row["hash"],
        status=row["status"],
        no_index=bool(row["no_index"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _by_id(conn: sqlite3.Connection, row_id: int) -> FetchHistory:
    row = conn.execute("SELECT * FROM fetch_history WHERE id = ?", (row_id,)).fetchone()
    return _from_row(row)


def insert(conn: sqlite3.Connection, domain: str, path: str, hash, status: int) -> FetchHistory:
    """Add a new history entry."""
    now = _now()
    with conn:
        cursor = conn.execute(
            "INSERT INTO fetch_history "
            "(protocol, domain, path, hash, status, no_index, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, 0, ?, ?)",
            (FetchProtocol.HTTP.value, domain, path, hash, status, now, now),
        )
    return _by_id(conn, cursor.lastrowid)


def find(conn: sqlite3.Connection, domain: str, path: str) -> Optional[FetchHistory]:
    """The entry for ``path`` on ``domain``, if any."""
    row = conn.execute(
        "SELECT * FROM fetch_history WHERE domain = ? AND path = ? LIMIT 1",
        (domain, path),
    ).fetchone()
    return _from_row(row) if row is not None else None


def find_by_url(conn: sqlite3.Connection, url: str) -> Optional[FetchHistory]:
    """The entry for the host and path of ``url``; raises ValueError without a host."""
    parts = urlsplit(url)
    if not parts.hostname:
        raise ValueError(f"URL has no host: {url!r}")
    return find(conn, parts.hostname, parts.path or "/")


def upsert(conn: sqlite3.Connection, domain: str, path: str, hash, status: int) -> FetchHistory:
    """Update the entry for ``path`` on ``domain``, creating it if needed."""
    existing = find(conn, domain, path)
    if existing is None:
        return insert(conn, domain, path, hash, status)
    with conn:
        conn.execute(
            "UPDATE fetch_history SET hash = ?, status = ?, updated_at = ? WHERE id = ?",
            (hash, status, _now(), existing.id),
        )
    return _by_id(conn, existing.id)