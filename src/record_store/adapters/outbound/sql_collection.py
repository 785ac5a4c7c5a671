"""SQLite-backed Collection implementation.

Each collection is one table in its own database file:

    CREATE TABLE "<name>" (id TEXT PRIMARY KEY, data TEXT)

where ``data`` holds the whole record as JSON. Rows are returned in rowid
order, which an upsert preserves, so search order is insertion order.

Thread Safety:
    A collection owns one sqlite3 connection and must be used from the
    thread that created it (the event loop thread in async code).
"""

from __future__ import annotations

import json
import re
import sqlite3
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from record_store.domain.entities import (
    Record,
    RecordId,
    deep_merge,
    ensure_id,
    require_id,
)
from record_store.domain.value_objects import Condition, compile_condition
from record_store.infrastructure.config import Config, get_config
from record_store.infrastructure.logging import get_logger
from record_store.ports.outbound.collection import RecordNotFoundError

IN_MEMORY = ":memory:"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

logger = get_logger(__name__)


class SqlCollection:
    """Synchronous Collection persisted in an embedded SQLite database.

    Attributes:
        name: Collection (and table) name.
        path: Database file path, or ":memory:".
    """

    def __init__(
        self,
        name: str,
        path: str | Path | None = None,
        config: Config | None = None,
    ) -> None:
        """Open (or create) the collection.

        Args:
            name: Collection name, also used as the table name.
            path: Database file. Defaults to ``<data_dir>/<name>.sqlite``;
                pass ":memory:" for a throwaway database.
            config: Supplies ``data_dir``; the global config when omitted.

        Raises:
            ValueError: If ``name`` is not a valid SQL identifier.
            sqlite3.Error: If the database cannot be opened.
        """
        if not _IDENTIFIER.match(name):
            raise ValueError(f"Invalid collection name for SQL backend: {name!r}")

        self._name = name
        # Quoted so SQL keywords such as "order" work as table names
        self._table = f'"{name}"'
        if path is None:
            config = config or get_config()
            config.ensure_directories()
            path = config.storage.data_dir / f"{name}.sqlite"
        elif path != IN_MEMORY:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._path = str(path)

        self._conn = sqlite3.connect(self._path)
        with self._conn:
            self._conn.execute(
                f"CREATE TABLE IF NOT EXISTS {self._table} (id TEXT PRIMARY KEY, data TEXT NOT NULL)"
            )
        logger.debug("collection_opened", backend="sql", collection=name, path=self._path)

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> str:
        return self._path

    def _rows(self) -> Iterator[Record]:
        cursor = self._conn.execute(f"SELECT data FROM {self._table} ORDER BY rowid")
        for (data,) in cursor:
            yield json.loads(data)

    def _fetch(self, record_id: RecordId) -> Record | None:
        row = self._conn.execute(
            f"SELECT data FROM {self._table} WHERE id = ?", (record_id,)
        ).fetchone()
        return json.loads(row[0]) if row else None

    def _upsert(self, record: Mapping[str, Any]) -> None:
        self._conn.execute(
            f"INSERT INTO {self._table} (id, data) VALUES (?, ?) "
            "ON CONFLICT(id) DO UPDATE SET data = excluded.data",
            (record["_id"], json.dumps(record)),
        )

    def search(self, condition: Condition = None) -> list[Record]:
        matches = compile_condition(condition)
        return [record for record in self._rows() if matches(record)]

    def search_one(self, condition: Condition = None) -> Record | None:
        matches = compile_condition(condition)
        return next((record for record in self._rows() if matches(record)), None)

    def get_by_id(self, record_id: RecordId) -> Record | None:
        return self._fetch(record_id)

    def save(self, *items: dict[str, Any]) -> list[Record]:
        with self._conn:
            for item in items:
                ensure_id(item)
                self._upsert(item)
        return list(items)

    def update(self, *items: Mapping[str, Any]) -> None:
        with self._conn:
            for item in items:
                record_id = require_id(item)
                existing = self._fetch(record_id)
                if existing is None:
                    raise RecordNotFoundError(self._name, record_id)
                self._upsert(deep_merge(existing, item))

    def delete_by_id(self, record_id: RecordId) -> bool:
        with self._conn:
            cursor = self._conn.execute(
                f"DELETE FROM {self._table} WHERE id = ?", (record_id,)
            )
        return cursor.rowcount > 0

    def delete(self, condition: Condition) -> list[Record]:
        removed = self.search(condition)
        with self._conn:
            self._conn.executemany(
                f"DELETE FROM {self._table} WHERE id = ?",
                [(record["_id"],) for record in removed],
            )
        return removed

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def __enter__(self) -> SqlCollection:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SqlCollection(name={self._name!r}, path={self._path!r})"
