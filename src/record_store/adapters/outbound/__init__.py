"""Outbound adapters - implementations of the Collection port.

These adapters map the Collection contract onto concrete storage:
a process-local dict, an embedded SQLite database, and a JSON file.
"""

from record_store.adapters.outbound.file_collection import FileCollection
from record_store.adapters.outbound.memory_collection import MemoryCollection
from record_store.adapters.outbound.sql_collection import SqlCollection

__all__ = [
    "FileCollection",
    "MemoryCollection",
    "SqlCollection",
]
