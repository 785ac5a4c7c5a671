"""Collection port - the contract every storage backend implements.

The transaction wrapper and the query builder only ever talk to storage
through this protocol, so backends are interchangeable. A backend may
implement each method synchronously or as a coroutine; portable callers
pass every result through ``resolve``.

Key responsibilities of an implementation:
- Assign a uuid4 ``_id`` to records saved without one
- Enforce ``_id`` uniqueness (save is an upsert)
- Hand out copies, never its internal state
"""

from __future__ import annotations

import inspect
from abc import abstractmethod
from collections.abc import Awaitable, Mapping
from typing import Any, Protocol, TypeVar, Union, runtime_checkable

from record_store.domain.entities import Record, RecordId
from record_store.domain.value_objects import Condition

T = TypeVar("T")

MaybeAwaitable = Union[T, Awaitable[T]]


async def resolve(value: MaybeAwaitable[T]) -> T:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


@runtime_checkable
class Collection(Protocol):
    """Protocol for a named, mutable set of records keyed by ``_id``.

    Record order for ``search`` is backend-defined. All three shipped
    backends return records in insertion order.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The collection name. Immutable for the collection's lifetime."""
        ...

    @abstractmethod
    def search(self, condition: Condition = None) -> MaybeAwaitable[list[Record]]:
        """Return every record matching ``condition`` (None matches all)."""
        ...

    @abstractmethod
    def search_one(self, condition: Condition = None) -> MaybeAwaitable[Record | None]:
        """Return the first matching record, or None."""
        ...

    @abstractmethod
    def get_by_id(self, record_id: RecordId) -> MaybeAwaitable[Record | None]:
        """Return the record with the given id, or None."""
        ...

    @abstractmethod
    def save(self, *items: dict[str, Any]) -> MaybeAwaitable[list[Record]]:
        """Insert or replace records.

        Items without ``_id`` receive a fresh uuid4, written into the
        caller's dict. Items whose ``_id`` already exists replace the stored
        record wholesale.

        Returns:
            The given items, in input order, each carrying its ``_id``.
        """
        ...

    @abstractmethod
    def update(self, *items: Mapping[str, Any]) -> MaybeAwaitable[None]:
        """Deep-merge each item into the stored record with the same ``_id``.

        Raises:
            ValueError: If an item carries no ``_id``.
            RecordNotFoundError: If any target id does not exist. Nothing
                is applied in that case.
        """
        ...

    @abstractmethod
    def delete_by_id(self, record_id: RecordId) -> MaybeAwaitable[bool]:
        """Remove one record. Returns False when the id does not exist."""
        ...

    @abstractmethod
    def delete(self, condition: Condition) -> MaybeAwaitable[list[Record]]:
        """Remove and return every record matching ``condition``."""
        ...


class RecordNotFoundError(KeyError):
    """Raised when an update targets a record id that does not exist."""

    def __init__(self, collection: str, record_id: RecordId) -> None:
        super().__init__(f"Not found item in collection {collection!r} by id {record_id!r}")
        self.collection = collection
        self.record_id = record_id

    def __str__(self) -> str:
        return self.args[0]
