"""Configuration management for the record store."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseModel):
    """Storage configuration."""

    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".record_store",
        description="Directory holding SQLite and JSON collection files",
    )


class TransactionConfig(BaseModel):
    """Transaction configuration."""

    timeout_seconds: float = Field(
        default=30.0, gt=0, description="Inactivity timeout before a transaction expires"
    )
    timeout_action: Literal["end", "rollback"] = Field(
        default="end", description="What an expired transaction does with its undo log"
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="record_store", description="Service name for tracing")


class Config(BaseSettings):
    """Main configuration for the record store."""

    model_config = SettingsConfigDict(
        env_prefix="RECORD_STORE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    transaction: TransactionConfig = Field(default_factory=TransactionConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    def ensure_directories(self) -> None:
        """Ensure the data directory exists."""
        self.storage.data_dir.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
