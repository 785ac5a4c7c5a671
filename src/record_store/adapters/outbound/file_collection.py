"""Key-value file Collection implementation.

Records of one namespace live in a single JSON object file keyed by
``_id``. The file is read lazily on first use and cached; every mutation
rewrites it atomically (temp file in the same directory, then
``os.replace``), so a crash never leaves a half-written file behind.

All methods are coroutines. Blocking file I/O runs in a worker thread via
``asyncio.to_thread``; an ``asyncio.Lock`` serialises loading and writes.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
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
from record_store.infrastructure.config import Config, get_config
from record_store.infrastructure.logging import get_logger
from record_store.ports.outbound.collection import RecordNotFoundError

logger = get_logger(__name__)


def _read_file(path: Path) -> dict[RecordId, Record]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_file(path: Path, records: dict[RecordId, Record]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(records, f, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise


class FileCollection:
    """Asynchronous Collection persisted as a JSON key-value file.

    Attributes:
        namespace: Namespace (and collection name) of the records.
        path: Backing JSON file.
    """

    def __init__(
        self,
        namespace: str,
        path: str | Path | None = None,
        config: Config | None = None,
    ) -> None:
        """Create the collection. Nothing is read until first use.

        Args:
            namespace: Collection name; also names the default file.
            path: Backing file. Defaults to ``<data_dir>/<namespace>.json``.
            config: Supplies ``data_dir``; the global config when omitted.
        """
        self._namespace = namespace
        if path is None:
            path = (config or get_config()).storage.data_dir / f"{namespace}.json"
        self._path = Path(path)
        self._records: dict[RecordId, Record] | None = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def path(self) -> Path:
        return self._path

    async def _load(self) -> dict[RecordId, Record]:
        if self._records is None:
            self._records = await asyncio.to_thread(_read_file, self._path)
            logger.debug(
                "collection_opened",
                backend="file",
                collection=self._namespace,
                path=str(self._path),
                records=len(self._records),
            )
        return self._records

    async def _flush(self, records: dict[RecordId, Record]) -> None:
        await asyncio.to_thread(_write_file, self._path, records)

    async def search(self, condition: Condition = None) -> list[Record]:
        async with self._lock:
            records = await self._load()
        matches = compile_condition(condition)
        return [clone_record(record) for record in records.values() if matches(record)]

    async def search_one(self, condition: Condition = None) -> Record | None:
        async with self._lock:
            records = await self._load()
        matches = compile_condition(condition)
        for record in records.values():
            if matches(record):
                return clone_record(record)
        return None

    async def get_by_id(self, record_id: RecordId) -> Record | None:
        async with self._lock:
            records = await self._load()
        record = records.get(record_id)
        return clone_record(record) if record is not None else None

    async def save(self, *items: dict[str, Any]) -> list[Record]:
        async with self._lock:
            records = dict(await self._load())
            for item in items:
                record_id = ensure_id(item)
                records[record_id] = clone_record(item)
            await self._flush(records)
            self._records = records
        return list(items)

    async def update(self, *items: Mapping[str, Any]) -> None:
        async with self._lock:
            current = await self._load()
            for item in items:
                record_id = require_id(item)
                if record_id not in current:
                    raise RecordNotFoundError(self._namespace, record_id)

            records = dict(current)
            for item in items:
                record_id = item["_id"]
                records[record_id] = deep_merge(clone_record(records[record_id]), item)
            await self._flush(records)
            self._records = records

    async def delete_by_id(self, record_id: RecordId) -> bool:
        async with self._lock:
            current = await self._load()
            if record_id not in current:
                return False
            records = {key: value for key, value in current.items() if key != record_id}
            await self._flush(records)
            self._records = records
        return True

    async def delete(self, condition: Condition) -> list[Record]:
        matches = compile_condition(condition)
        async with self._lock:
            current = await self._load()
            removed = [record for record in current.values() if matches(record)]
            if removed:
                gone = {record["_id"] for record in removed}
                records = {key: value for key, value in current.items() if key not in gone}
                await self._flush(records)
                self._records = records
        return [clone_record(record) for record in removed]

    def __repr__(self) -> str:
        return f"FileCollection(namespace={self._namespace!r}, path={str(self._path)!r})"
