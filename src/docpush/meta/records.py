"""SQLite metadata-record store: one JSON record per project slug."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RecordStoreError(Exception):
    """Raised when the metadata record cannot be read or written."""


def open_db(db_path: Path | str) -> sqlite3.Connection:
    """Open (or create) the records database.

    Returns a connection with ``sqlite3.Row`` row factory.
    """
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def _identifier(name: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        msg = f"Invalid SQL identifier: {name!r}"
        raise RecordStoreError(msg)
    return name


class RecordStore:
    """Fetch and upsert project records in one table.

    The table has a text primary key named after the (possibly mapped)
    ``slug`` column and a ``data`` column holding the full record as JSON.

    Args:
        conn: Open SQLite connection.
        table: Table name.
        slug_column: Record key holding the project slug.
    """

    def __init__(self, conn: sqlite3.Connection, table: str, slug_column: str = "slug") -> None:
        self.conn = conn
        self.table = _identifier(table)
        self.slug_column = _identifier(slug_column)

    def create_schema(self) -> None:
        try:
            self.conn.execute(
                f"CREATE TABLE IF NOT EXISTS {self.table} ("  # noqa: S608
                f"{self.slug_column} TEXT PRIMARY KEY, "
                "data TEXT NOT NULL DEFAULT '{}')"
            )
            self.conn.commit()
        except sqlite3.Error as exc:
            msg = f"Could not create table {self.table}: {exc}"
            raise RecordStoreError(msg) from exc

    def fetch(self, slug: str) -> dict[str, Any] | None:
        """Return the record stored for *slug*, or None."""
        try:
            row = self.conn.execute(
                f"SELECT data FROM {self.table} WHERE {self.slug_column} = ?",  # noqa: S608
                (slug,),
            ).fetchone()
        except sqlite3.Error as exc:
            msg = f"Could not retrieve database entry: {exc}"
            raise RecordStoreError(msg) from exc
        if row is None:
            return None
        record: dict[str, Any] = json.loads(row["data"])
        return record

    def upsert(self, entry: Mapping[str, Any]) -> None:
        """Insert or replace *entry*, keyed by its slug column."""
        slug = entry.get(self.slug_column)
        if not slug:
            msg = f"Failed to upsert database entry: missing {self.slug_column!r}"
            raise RecordStoreError(msg)
        try:
            self.conn.execute(
                f"INSERT INTO {self.table} ({self.slug_column}, data) VALUES (?, ?) "  # noqa: S608
                f"ON CONFLICT({self.slug_column}) DO UPDATE SET data = excluded.data",
                (str(slug), json.dumps(dict(entry), sort_keys=True)),
            )
            self.conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as exc:
            msg = f"Failed to upsert database entry: {exc}"
            raise RecordStoreError(msg) from exc
        logger.info("Upserted %s record for %s", self.table, slug)
