"""Unit tests for TransactionManager."""

from __future__ import annotations

import asyncio

import pytest

from record_store.adapters.outbound import MemoryCollection
from record_store.domain.services import TransactionManager
from record_store.domain.value_objects import TimeoutAction, TransactionState
from record_store.infrastructure.config import get_config
from record_store.infrastructure.metrics import MetricsRegistry


@pytest.mark.unit
class TestTransactionManager:
    """Registry behaviour."""

    @pytest.fixture
    def manager(self, metrics_registry: MetricsRegistry) -> TransactionManager:
        return TransactionManager(timeout_seconds=5, metrics=metrics_registry)

    @pytest.mark.asyncio
    async def test_get_creates_and_begins(self, manager: TransactionManager) -> None:
        """An unknown id yields a new, active, registered transaction."""
        col = MemoryCollection("a")

        txn = manager.get("t1", col)

        assert txn.id == "t1"
        assert txn.collection is col
        assert txn.state is TransactionState.ACTIVE
        assert "t1" in manager
        assert len(manager) == 1
        txn.end()

    @pytest.mark.asyncio
    async def test_get_existing_repoints(self, manager: TransactionManager) -> None:
        """The same id returns the same instance aimed at the new collection."""
        col_a = MemoryCollection("a")
        col_b = MemoryCollection("b")

        txn = manager.get("t1", col_a)
        await txn.save({"_id": "x"})
        again = manager.get("t1", col_b)

        assert again is txn
        assert again.collection is col_b
        assert again.name == "b"
        assert again.pending_compensations == 1
        assert len(manager) == 1
        txn.end()

    @pytest.mark.asyncio
    async def test_rollback_spans_repointed_collections(self, manager: TransactionManager) -> None:
        """Compensations keep targeting the collection they were made on."""
        col_a = MemoryCollection("a")
        col_b = MemoryCollection("b")
        col_b.save({"_id": "keep"})

        txn = manager.get("t1", col_a)
        await txn.save({"_id": "1"})
        manager.get("t1", col_b)
        await txn.delete_by_id("keep")

        await txn.rollback()

        assert col_a.search() == []
        assert col_b.search() == [{"_id": "keep"}]
        assert "t1" not in manager

    @pytest.mark.asyncio
    async def test_end_deregisters(self, manager: TransactionManager) -> None:
        """Ending removes the id; a later get creates a fresh transaction."""
        col = MemoryCollection()
        first = manager.get("t1", col)
        await first.save({"_id": "1"})

        assert manager.end("t1") is True
        assert manager.end("t1") is False
        assert "t1" not in manager

        second = manager.get("t1", col)
        assert second is not first
        assert second.pending_compensations == 0
        second.end()

    @pytest.mark.asyncio
    async def test_stale_transaction_does_not_deregister_successor(
        self, manager: TransactionManager
    ) -> None:
        """Ending an old instance leaves a newer one under the same id alone."""
        col = MemoryCollection()
        first = manager.get("t1", col)
        first.end()
        second = manager.get("t1", col)

        first.end()

        assert "t1" in manager
        assert list(manager) == [second]
        second.end()

    @pytest.mark.asyncio
    async def test_iteration_and_ids(self, manager: TransactionManager) -> None:
        """Registered transactions can be listed for diagnostics."""
        col = MemoryCollection()
        t1 = manager.get("t1", col)
        t2 = manager.get("t2", col)

        assert manager.ids() == ["t1", "t2"]
        assert list(manager) == [t1, t2]

        manager.end_all()
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_rollback_all(self, manager: TransactionManager) -> None:
        """rollback_all undoes every registered transaction."""
        col = MemoryCollection()
        await manager.get("t1", col).save({"_id": "1"})
        await manager.get("t2", col).save({"_id": "2"})

        await manager.rollback_all()

        assert col.search() == []
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_expired_transaction_is_deregistered(
        self, metrics_registry: MetricsRegistry
    ) -> None:
        """Timer expiry removes the transaction from the registry."""
        manager = TransactionManager(timeout_seconds=0.01, metrics=metrics_registry)
        txn = manager.get("t1", MemoryCollection())

        await asyncio.sleep(0.05)

        assert "t1" not in manager
        assert not txn.active

    @pytest.mark.asyncio
    async def test_active_gauge(
        self, manager: TransactionManager, metrics_registry: MetricsRegistry
    ) -> None:
        """The active gauge follows the registry size."""
        col = MemoryCollection()
        manager.get("t1", col)
        manager.get("t2", col)
        gauge = metrics_registry._registry.get_sample_value("record_store_transactions_active")
        assert gauge == 2

        manager.end("t1")
        gauge = metrics_registry._registry.get_sample_value("record_store_transactions_active")
        assert gauge == 1
        manager.end_all()

    def test_defaults_from_config(self, monkeypatch: pytest.MonkeyPatch, metrics_registry: MetricsRegistry) -> None:
        """Timeout settings fall back to the configuration."""
        monkeypatch.setenv("RECORD_STORE_TRANSACTION__TIMEOUT_SECONDS", "12")
        monkeypatch.setenv("RECORD_STORE_TRANSACTION__TIMEOUT_ACTION", "rollback")
        get_config.cache_clear()

        manager = TransactionManager(metrics=metrics_registry)

        assert manager.timeout_seconds == 12
        assert manager.timeout_action is TimeoutAction.ROLLBACK

    def test_invalid_timeout(self, metrics_registry: MetricsRegistry) -> None:
        """Non-positive timeouts are rejected up front."""
        with pytest.raises(ValueError):
            TransactionManager(timeout_seconds=-1, metrics=metrics_registry)

    def test_get_outside_loop_registers_nothing(self, manager: TransactionManager) -> None:
        """A transaction that cannot begin is never registered."""
        with pytest.raises(RuntimeError):
            manager.get("t1", MemoryCollection())

        assert "t1" not in manager
