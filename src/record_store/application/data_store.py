"""DataStore - single entry point for collections, transactions and queries.

Usage:
    from record_store.application import DataStore

    store = DataStore()
    users = store.sql("users")
    sessions = store.memory("sessions")

    txn = store.transaction("signup-1", users)
    await txn.save({"name": "Alice"})
    await txn.rollback()

    rows = await store.select(users).where({"name": "Bob"}).to_array()

    await store.close()
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from record_store.adapters.outbound import FileCollection, MemoryCollection, SqlCollection
from record_store.domain.services import Select, Transaction, TransactionManager
from record_store.infrastructure.config import Config, get_config
from record_store.infrastructure.logging import get_logger
from record_store.infrastructure.metrics import MetricsRegistry, get_metrics
from record_store.ports.outbound.collection import Collection

logger = get_logger(__name__)

BackendKind = Literal["memory", "sql", "file"]


class DataStore:
    """Owns backend collections and the transaction registry.

    Collections are cached per backend and name, so asking twice for
    ``store.sql("users")`` returns the same collection.
    """

    def __init__(
        self,
        config: Config | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._config = config or get_config()
        self._metrics = metrics or get_metrics()
        self._collections: dict[tuple[BackendKind, str], Collection] = {}
        self._transactions = TransactionManager(
            timeout_seconds=self._config.transaction.timeout_seconds,
            timeout_action=self._config.transaction.timeout_action,
            metrics=self._metrics,
        )

    @property
    def config(self) -> Config:
        return self._config

    @property
    def transactions(self) -> TransactionManager:
        return self._transactions

    def memory(self, name: str = "memory") -> MemoryCollection:
        """Get or create an in-memory collection."""
        key: tuple[BackendKind, str] = ("memory", name)
        if key not in self._collections:
            self._collections[key] = MemoryCollection(name)
        return self._collections[key]  # type: ignore[return-value]

    def sql(self, name: str, path: str | Path | None = None) -> SqlCollection:
        """Get or create a SQLite collection (default file under data_dir)."""
        key: tuple[BackendKind, str] = ("sql", name)
        if key not in self._collections:
            self._collections[key] = SqlCollection(name, path, config=self._config)
            logger.info("collection_created", backend="sql", collection=name)
        return self._collections[key]  # type: ignore[return-value]

    def file(self, namespace: str, path: str | Path | None = None) -> FileCollection:
        """Get or create a JSON key-value file collection."""
        key: tuple[BackendKind, str] = ("file", namespace)
        if key not in self._collections:
            self._collections[key] = FileCollection(namespace, path, config=self._config)
            logger.info("collection_created", backend="file", collection=namespace)
        return self._collections[key]  # type: ignore[return-value]

    def transaction(self, transaction_id: str, collection: Collection) -> Transaction:
        """Get the transaction for ``transaction_id``, targeting ``collection``."""
        return self._transactions.get(transaction_id, collection)

    def select(self, collection: Collection) -> Select:
        """Start a query on ``collection``."""
        return Select.from_(collection, metrics=self._metrics)

    async def close(self, pending: Literal["rollback", "end"] = "rollback") -> None:
        """Settle open transactions and release backend resources.

        Args:
            pending: Roll back (default) or just end the transactions that
                are still registered.
        """
        if pending == "rollback":
            await self._transactions.rollback_all()
        else:
            self._transactions.end_all()

        for collection in self._collections.values():
            if isinstance(collection, SqlCollection):
                collection.close()
        self._collections.clear()
        logger.info("data_store_closed", pending=pending)
