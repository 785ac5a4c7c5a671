"""Application layer for the record store.

Exports:
    DataStore:
        - DataStore: Backend factory, transaction registry and query entry point
"""

from record_store.application.data_store import DataStore

__all__ = [
    "DataStore",
]
