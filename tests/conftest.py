"""Pytest configuration and fixtures for record_store tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from record_store.infrastructure.config import Config, StorageConfig, TransactionConfig, get_config
from record_store.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def isolated_data_dir(
    temp_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Point the default data directory at a temp dir, never at $HOME."""
    data_dir = temp_dir / "default-data"
    monkeypatch.setenv("RECORD_STORE_STORAGE__DATA_DIR", str(data_dir))
    get_config.cache_clear()
    yield data_dir
    get_config.cache_clear()


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """Provide a test configuration with temporary directories."""
    return Config(
        storage=StorageConfig(data_dir=temp_dir / "data"),
        transaction=TransactionConfig(timeout_seconds=5.0),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
