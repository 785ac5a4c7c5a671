"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Outbound adapters: Storage backends for the Collection port
"""

from record_store.adapters.outbound import (
    FileCollection,
    MemoryCollection,
    SqlCollection,
)

__all__ = [
    # Outbound adapters
    "FileCollection",
    "MemoryCollection",
    "SqlCollection",
]
