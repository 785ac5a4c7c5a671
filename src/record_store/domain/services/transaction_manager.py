"""Registry of in-flight transactions keyed by caller-supplied id.

The manager is an explicit object handed to whatever code creates or
looks up transactions; there is no module-level registry. At most one
transaction is registered per id: ``get`` with a known id returns the same
instance, re-pointed at the given collection.
"""

from __future__ import annotations

from collections.abc import Iterator

from record_store.domain.services.transaction import Transaction
from record_store.domain.value_objects import TimeoutAction
from record_store.infrastructure.config import get_config
from record_store.infrastructure.logging import get_logger
from record_store.infrastructure.metrics import MetricsRegistry, get_metrics
from record_store.ports.outbound.collection import Collection

logger = get_logger(__name__)


class TransactionManager:
    """Creates, tracks and ends transactions.

    Usage:
        manager = TransactionManager(timeout_seconds=10)
        txn = manager.get("t1", users)
        ...
        manager.get("t1", posts)   # same transaction, now targeting posts
        await txn.rollback()       # undoes work on users and posts

    Thread Safety:
        Not thread-safe. Meant to be used from a single event loop.
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        timeout_action: TimeoutAction | str | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            timeout_seconds: Inactivity timeout for new transactions
                (default from config).
            timeout_action: "end" or "rollback" on timeout (default from
                config).
            metrics: Metrics registry (default: the global one).

        Raises:
            ValueError: If timeout_seconds is not positive.
        """
        if timeout_seconds is None or timeout_action is None:
            defaults = get_config().transaction
            if timeout_seconds is None:
                timeout_seconds = defaults.timeout_seconds
            if timeout_action is None:
                timeout_action = defaults.timeout_action
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")

        self._timeout_seconds = timeout_seconds
        self._timeout_action = TimeoutAction(timeout_action)
        self._metrics = metrics or get_metrics()
        self._transactions: dict[str, Transaction] = {}

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    @property
    def timeout_action(self) -> TimeoutAction:
        return self._timeout_action

    def get(self, transaction_id: str, collection: Collection) -> Transaction:
        """Return the transaction registered under ``transaction_id``.

        A registered transaction is re-pointed at ``collection``; its undo
        log and state are kept. Otherwise a new transaction is created,
        begun and registered.

        Raises:
            RuntimeError: If a new transaction must be begun outside a
                running event loop.
        """
        txn = self._transactions.get(transaction_id)
        if txn is not None:
            txn.collection = collection
            return txn

        txn = Transaction(
            transaction_id,
            collection,
            manager=self,
            timeout_seconds=self._timeout_seconds,
            timeout_action=self._timeout_action,
            metrics=self._metrics,
        )
        txn.begin()
        self._transactions[transaction_id] = txn
        self._metrics.transactions_active.set(len(self._transactions))
        logger.info("transaction_registered", transaction=transaction_id, collection=collection.name)
        return txn

    def end(self, transaction_id: str) -> bool:
        """End the transaction registered under ``transaction_id``.

        Returns:
            False if no such transaction is registered.
        """
        txn = self._transactions.get(transaction_id)
        if txn is None:
            return False
        txn.end()
        return True

    def end_all(self) -> None:
        """End every registered transaction, keeping their undo logs."""
        for txn in list(self._transactions.values()):
            txn.end()

    async def rollback_all(self) -> None:
        """Roll back every registered transaction, most recent first."""
        for txn in reversed(list(self._transactions.values())):
            await txn.rollback()

    def ids(self) -> list[str]:
        return list(self._transactions)

    def _discard(self, txn: Transaction) -> None:
        if self._transactions.get(txn.id) is txn:
            del self._transactions[txn.id]
            self._metrics.transactions_active.set(len(self._transactions))

    def __contains__(self, transaction_id: object) -> bool:
        return transaction_id in self._transactions

    def __len__(self) -> int:
        return len(self._transactions)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(list(self._transactions.values()))

    def __repr__(self) -> str:
        return f"TransactionManager(active={len(self._transactions)})"
