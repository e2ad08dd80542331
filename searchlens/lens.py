"""Installed lenses and whether they are enabled."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LensType(str, Enum):
    """How a lens supplies its URLs and rules."""

    # URLs and rules listed in the lens itself.
    SIMPLE = "Simple"
    # Queueing and rules supplied dynamically by a plugin.
    PLUGIN = "Plugin"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class LensRecord:
    """A lens as stored in the database."""

    id: int
    name: str
    author: str
    description: Optional[str]
    version: str
    is_enabled: bool
    lens_type: LensType
    trigger: Optional[str]


def _from_row(row: sqlite3.Row) -> LensRecord:
    return LensRecord(
        id=row["id"],
        name=row["name"],
        author=row["author"],
        description=row["description"],
        version=row["version"],
        is_enabled=bool(row["is_enabled"]),
        lens_type=LensType(row["lens_type"]),
        trigger=row["trigger"],
    )


def find_by_name(conn: sqlite3.Connection, name: str) -> Optional[LensRecord]:
    """The lens called ``name``, if installed."""
    row = conn.execute("SELECT * FROM lens WHERE name = ?", (name,)).fetchone()
    return _from_row(row) if row is not None else None


def reset(conn: sqlite3.Connection) -> None:
    """Disable every simple lens; plugin lenses keep their state."""
    with conn:
        conn.execute(
            "UPDATE lens SET is_enabled = 0 WHERE lens_type LIKE ?",
            (f"%{LensType.SIMPLE.value}%",),
        )


def add_or_enable(
    conn: sqlite3.Connection,
    name: str,
    author: str,
    description: Optional[str],
    version: str,
    lens_type: LensType,
) -> bool:
    """Add the lens, or refresh it if it exists.

    Returns True if the lens was added, False if it already existed. Only
    simple lenses are enabled automatically.
    """
    lens_type = LensType(lens_type)
    existing = find_by_name(conn, name)
    with conn:
        if existing is not None:
            is_enabled = True if lens_type is LensType.SIMPLE else existing.is_enabled
            conn.execute(
                "UPDATE lens SET author = ?, version = ?, description = ?, is_enabled = ? "
                "WHERE id = ?",
                (author, version, description, int(is_enabled), existing.id),
            )
            return False

        conn.execute(
            'INSERT INTO lens (name, author, description, version, is_enabled, lens_type, "trigger") '
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                name,
                author,
                description,
                version,
                int(lens_type is LensType.SIMPLE),
                lens_type.value,
                name,
            ),
        )
    return True