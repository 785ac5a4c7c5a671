"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Outbound ports: Dependencies on storage systems (Collection)

Adapters implement these ports with concrete functionality.
"""

from record_store.ports.outbound import (
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
