"""Outbound ports - contracts the record store needs from storage.

Storage backends implement the Collection protocol; the transaction
wrapper and the query builder consume it polymorphically.
"""

from record_store.ports.outbound.collection import (
    Collection,
    MaybeAwaitable,
    RecordNotFoundError,
    resolve,
)

__all__ = [
    "Collection",
    "MaybeAwaitable",
    "RecordNotFoundError",
    "resolve",
]
