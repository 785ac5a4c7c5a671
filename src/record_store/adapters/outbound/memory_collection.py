"""In-memory Collection implementation backed by a dict."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from record_store.domain.entities import (
    Record,
    RecordId,
    clone_record,
    deep_merge,
    ensure_id,
    require_id,
)
from record_store.domain.value_objects import Condition, compile_condition
from record_store.ports.outbound.collection import RecordNotFoundError


class MemoryCollection:
    """Synchronous Collection holding records in process memory.

    Records are kept in insertion order. Stored records are private
    copies; every read returns a fresh copy.

    Usage:
        users = MemoryCollection("users")
        users.save({"name": "Alice"})
        users.search({"name": "Alice"})
    """

    def __init__(self, name: str = "memory") -> None:
        self._name = name
        self._records: dict[RecordId, Record] = {}

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._records)

    def search(self, condition: Condition = None) -> list[Record]:
        matches = compile_condition(condition)
        return [clone_record(record) for record in self._records.values() if matches(record)]

    def search_one(self, condition: Condition = None) -> Record | None:
        matches = compile_condition(condition)
        for record in self._records.values():
            if matches(record):
                return clone_record(record)
        return None

    def get_by_id(self, record_id: RecordId) -> Record | None:
        record = self._records.get(record_id)
        return clone_record(record) if record is not None else None

    def save(self, *items: dict[str, Any]) -> list[Record]:
        for item in items:
            record_id = ensure_id(item)
            self._records[record_id] = clone_record(item)
        return list(items)

    def update(self, *items: Mapping[str, Any]) -> None:
        # Validate every target before touching anything
        for item in items:
            record_id = require_id(item)
            if record_id not in self._records:
                raise RecordNotFoundError(self._name, record_id)

        for item in items:
            deep_merge(self._records[item["_id"]], item)

    def delete_by_id(self, record_id: RecordId) -> bool:
        return self._records.pop(record_id, None) is not None

    def delete(self, condition: Condition) -> list[Record]:
        removed = self.search(condition)
        for record in removed:
            del self._records[record["_id"]]
        return removed

    def __repr__(self) -> str:
        return f"MemoryCollection(name={self._name!r}, records={len(self._records)})"
