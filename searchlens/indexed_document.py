"""Documents that have been added to the search index."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

logger = logging.getLogger(__name__)

# Keeps each IN (...) clause well below SQLite's bound-parameter limit.
_URL_BATCH_SIZE = 500


@dataclass(frozen=True)
class IndexedDocument:
    """A URL that was indexed and the id of its document in the index."""

    id: int
    domain: str
    url: str
    doc_id: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class CountByDomain:
    """Number of indexed documents of a domain."""

    count: int
    domain: str


def _from_row(row: sqlite3.Row) -> IndexedDocument:
    return IndexedDocument(
        id=row["id"],
        domain=row["domain"],
        url=row["url"],
        doc_id=row["doc_id"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def insert(conn: sqlite3.Connection, domain: str, url: str, doc_id: str) -> IndexedDocument:
    """Record that ``url`` on ``domain`` was indexed as ``doc_id``."""
    now = datetime.now(timezone.utc).isoformat()
    with conn:
        cursor = conn.execute(
            "INSERT INTO indexed_document (domain, url, doc_id, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (domain, url, doc_id, now, now),
        )
    row = conn.execute(
        "SELECT * FROM indexed_document WHERE id = ?", (cursor.lastrowid,)
    ).fetchone()
    return _from_row(row)


def find_by_urls(conn: sqlite3.Connection, urls: Iterable[str]) -> list[IndexedDocument]:
    """All indexed documents whose URL is one of ``urls``."""
    url_list = list(dict.fromkeys(urls))
    found: list[IndexedDocument] = []
    for start in range(0, len(url_list), _URL_BATCH_SIZE):
        chunk = url_list[start : start + _URL_BATCH_SIZE]
        placeholders = ", ".join("?" for _ in chunk)
        rows = conn.execute(
            f"SELECT * FROM indexed_document WHERE url IN ({placeholders}) ORDER BY id",
            chunk,
        ).fetchall()
        found.extend(_from_row(row) for row in rows)
    return found


def indexed_stats(conn: sqlite3.Connection) -> list[CountByDomain]:
    """Number of indexed documents per domain."""
    rows = conn.execute(
        "SELECT count(id) AS count, domain FROM indexed_document GROUP BY domain"
    ).fetchall()
    return [CountByDomain(count=row["count"], domain=row["domain"]) for row in rows]


def remove_by_rule(conn: sqlite3.Connection, rule: str) -> list[str]:
    """Delete documents whose URL matches the SQL LIKE pattern ``rule``.

    Returns the index ids of the removed documents.
    """
    rows = conn.execute(
        "SELECT doc_id FROM indexed_document WHERE url LIKE ?", (rule,)
    ).fetchall()
    removed = [row["doc_id"] for row in rows]
    with conn:
        conn.execute("DELETE FROM indexed_document WHERE url LIKE ?", (rule,))
    if removed:
        logger.info("removed %d docs due to '%s'", len(removed), rule)
    return removed