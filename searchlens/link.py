"""Links discovered between crawled pages."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from urllib.parse import urlsplit


@dataclass(frozen=True)
class Link:
    """A link from one URL to another."""

    id: int
    src_domain: str
    src_url: str
    dst_domain: str
    dst_url: str


def _host(url: str) -> str:
    host = urlsplit(url).hostname
    if not host:
        raise ValueError(f"URL has no host: {url!r}")
    return host


def save_link(conn: sqlite3.Connection, src: str, dst: str) -> Link:
    """Record a link from ``src`` to ``dst``; both need a host."""
    src_domain = _host(src)
    dst_domain = _host(dst)
    with conn:
        cursor = conn.execute(
            "INSERT INTO link (src_domain, src_url, dst_domain, dst_url) VALUES (?, ?, ?, ?)",
            (src_domain, src, dst_domain, dst),
        )
    return Link(cursor.lastrowid, src_domain, src, dst_domain, dst)


def all_links(conn: sqlite3.Connection) -> list[Link]:
    """Every recorded link in insertion order."""
    rows = conn.execute("SELECT * FROM link ORDER BY id").fetchall()
    return [
        Link(row["id"], row["src_domain"], row["src_url"], row["dst_domain"], row["dst_url"])
        for row in rows
    ]