"""Compensation-based transactions over any Collection.

A Transaction wraps one collection and forwards every call to it. While
the transaction is ACTIVE each successful mutation appends a compensating
action to an undo log:

    save(items)         -> delete the new ids, re-save overwritten records
    update(items)       -> re-save the records as they were before
    delete(condition)   -> re-save the deleted records
    delete_by_id(id)    -> re-save the deleted record

``rollback()`` replays the log newest-first, one action at a time, since
an action may depend on state restored by a later-registered one. There
is no isolation: concurrent transactions on the same collection may
interleave freely.

Each transaction arms an inactivity timer on ``begin()``. When it fires,
the transaction ends on its own; whether the undo log is discarded or
replayed first is decided by its TimeoutAction.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from record_store.domain.entities import Record, RecordId, clone_record, require_id
from record_store.domain.value_objects import (
    Condition,
    TimeoutAction,
    TransactionState,
    ids_in,
)
from record_store.infrastructure.logging import get_logger
from record_store.infrastructure.metrics import MetricsRegistry
from record_store.infrastructure.tracing import trace_span
from record_store.ports.outbound.collection import Collection, resolve

if TYPE_CHECKING:
    from record_store.domain.services.transaction_manager import TransactionManager

logger = get_logger(__name__)

Compensation = Callable[[], Awaitable[Any]]

DEFAULT_TIMEOUT_SECONDS = 30.0


class Transaction:
    """Undo-log wrapper implementing the Collection protocol.

    Usage:
        txn = manager.get("import-42", users)
        await txn.save({"name": "Alice"})
        await txn.delete({"name": "Bob"})
        await txn.rollback()          # Alice gone, Bob back

    or, ending on success and rolling back on error:

        async with manager.get("import-42", users) as txn:
            await txn.update({"_id": "1", "name": "Alicia"})

    Attributes:
        collection: The collection subsequent calls apply to. Compensations
            already logged keep targeting the collection they were made on.
    """

    def __init__(
        self,
        transaction_id: str,
        collection: Collection,
        manager: TransactionManager | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        timeout_action: TimeoutAction = TimeoutAction.END,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Create an ended transaction. Call ``begin()`` to start recording.

        Args:
            transaction_id: Caller-chosen id, the registry key in ``manager``.
            collection: The collection to wrap.
            manager: Registry this transaction removes itself from on end.
            timeout_seconds: Inactivity timeout armed by ``begin()``.
            timeout_action: What to do with the undo log on timeout.
            metrics: Optional metrics registry.

        Raises:
            ValueError: If timeout_seconds is not positive.
        """
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")

        self._id = transaction_id
        self.collection = collection
        self._manager = manager
        self._timeout_seconds = timeout_seconds
        self._timeout_action = TimeoutAction(timeout_action)
        self._metrics = metrics

        self._state = TransactionState.ENDED
        self._compensations: list[tuple[str, Compensation]] = []
        self._timer: asyncio.TimerHandle | None = None
        self._expiry_task: asyncio.Task[None] | None = None
        self._rollback_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        """Name of the currently wrapped collection."""
        return self.collection.name

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state.is_active()

    @property
    def pending_compensations(self) -> int:
        """Number of compensating actions waiting in the undo log."""
        return len(self._compensations)

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    @property
    def timeout_action(self) -> TimeoutAction:
        return self._timeout_action

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def begin(self) -> None:
        """Start recording mutations and arm the inactivity timer.

        Idempotent: while a timer is armed this does nothing, so neither
        the deadline nor the undo log is reset.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        if self._timer is not None:
            return

        loop = asyncio.get_running_loop()
        self._state = TransactionState.ACTIVE
        self._timer = loop.call_later(self._timeout_seconds, self._expire)
        logger.debug(
            "transaction_begun",
            transaction=self._id,
            collection=self.name,
            timeout_seconds=self._timeout_seconds,
        )

    def end(self) -> None:
        """Stop recording, deregister and cancel the timer.

        The undo log is left as it is.
        """
        self._finish("ended")

    async def rollback(self) -> None:
        """Replay the undo log newest-first, then end the transaction.

        Compensations are awaited one after another. If one raises, the
        error propagates, that compensation and all older ones stay in the
        log, and the transaction is neither ended nor deregistered.

        Concurrent calls (e.g. an expiry rollback racing ``close()``) run
        one at a time; a call that finds the work already done returns.
        """
        async with self._rollback_lock:
            if not self._compensations and not self.active:
                return

            pending = len(self._compensations)
            with trace_span(
                "transaction.rollback",
                {"transaction.id": self._id, "transaction.pending": pending},
            ):
                while self._compensations:
                    operation, compensate = self._compensations[-1]
                    try:
                        await compensate()
                    except Exception:
                        logger.error(
                            "compensation_failed",
                            transaction=self._id,
                            operation=operation,
                            remaining=len(self._compensations),
                            exc_info=True,
                        )
                        raise
                    self._compensations.pop()
                    if self._metrics is not None:
                        self._metrics.compensations_replayed_total.inc()

            logger.info("transaction_rolled_back", transaction=self._id, replayed=pending)
            self._finish("rolled_back")

    def _finish(self, outcome: str) -> None:
        was_active = self._state.is_active()
        self._state = TransactionState.ENDED
        if self._manager is not None:
            self._manager._discard(self)
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if was_active and self._metrics is not None:
            self._metrics.transactions_total.labels(outcome=outcome).inc()

    def _expire(self) -> None:
        # The handle has fired; it must not be cancelled again
        self._timer = None
        logger.warning(
            "transaction_expired",
            transaction=self._id,
            collection=self.name,
            pending=len(self._compensations),
            action=self._timeout_action.value,
        )
        if self._timeout_action is TimeoutAction.ROLLBACK:
            self._expiry_task = asyncio.get_running_loop().create_task(self._rollback_expired())
        else:
            self._compensations.clear()
            self._finish("expired")

    async def _rollback_expired(self) -> None:
        try:
            await self.rollback()
        except Exception:
            # Nobody awaits this task; the failure is reported here only
            logger.error("transaction_expiry_rollback_failed", transaction=self._id, exc_info=True)

    def _record(self, operation: str, compensate: Compensation) -> None:
        self._compensations.append((operation, compensate))
        if self._metrics is not None:
            self._metrics.compensations_total.labels(operation=operation).inc()
        logger.debug(
            "compensation_recorded",
            transaction=self._id,
            operation=operation,
            pending=len(self._compensations),
        )

    def _record_resave(self, operation: str, collection: Collection, records: list[Record]) -> None:
        snapshot = [clone_record(record) for record in records]

        async def resave() -> None:
            await resolve(collection.save(*(clone_record(record) for record in snapshot)))

        self._record(operation, resave)

    # ------------------------------------------------------------------
    # Collection protocol
    # ------------------------------------------------------------------

    async def search(self, condition: Condition = None) -> list[Record]:
        return await resolve(self.collection.search(condition))

    async def search_one(self, condition: Condition = None) -> Record | None:
        return await resolve(self.collection.search_one(condition))

    async def get_by_id(self, record_id: RecordId) -> Record | None:
        return await resolve(self.collection.get_by_id(record_id))

    async def save(self, *items: dict[str, Any]) -> list[Record]:
        collection = self.collection
        overwritten: list[Record] = []
        incoming_ids = [item["_id"] for item in items if item.get("_id") is not None]
        if incoming_ids and self.active:
            overwritten = [
                clone_record(record)
                for record in await resolve(collection.search(ids_in(incoming_ids)))
            ]

        saved = await resolve(collection.save(*items))
        if saved and self.active:
            existed = {record["_id"] for record in overwritten}
            fresh_ids = [record["_id"] for record in saved if record["_id"] not in existed]

            async def unsave() -> None:
                # Overwritten records are upserted back in place
                if fresh_ids:
                    await resolve(collection.delete(ids_in(fresh_ids)))
                if overwritten:
                    await resolve(collection.save(*(clone_record(r) for r in overwritten)))

            self._record("save", unsave)
        return saved

    async def update(self, *items: Mapping[str, Any]) -> None:
        collection = self.collection
        target_ids = [require_id(item) for item in items]
        before = await resolve(collection.search(ids_in(target_ids)))
        await resolve(collection.update(*items))
        if before and self.active:
            self._record_resave("update", collection, before)

    async def delete(self, condition: Condition) -> list[Record]:
        collection = self.collection
        removed = await resolve(collection.delete(condition))
        if removed and self.active:
            self._record_resave("delete", collection, removed)
        return removed

    async def delete_by_id(self, record_id: RecordId) -> bool:
        collection = self.collection
        record = await resolve(collection.get_by_id(record_id))
        if record is None:
            return False
        deleted = await resolve(collection.delete_by_id(record_id))
        if deleted and self.active:
            self._record_resave("delete_by_id", collection, [record])
        return deleted

    # ------------------------------------------------------------------
    # Async context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> Transaction:
        self.begin()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is None:
            self.end()
        else:
            await self.rollback()

    def __repr__(self) -> str:
        return (
            f"Transaction(id={self._id!r}, collection={self.name!r}, "
            f"state={self._state.value}, pending={len(self._compensations)})"
        )
