"""Join/projection query builder over the Collection protocol.

A Select starts from one source collection, optionally filtered, and
enriches every matching source record with values fetched from other
collections. Each collection contributes to the result through its
projection; contributions are shallow-merged in order (source first, then
joins in registration order), later keys overwriting earlier ones.

Example:
    rows = await (
        Select.from_(users)
        .where({"active": True})
        .join(posts, lambda user: posts.search({"userId": user["_id"]}))
        .expose(posts, lambda user_posts: {"posts": user_posts})
        .to_array()
    )
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import Any, Optional, Union

from record_store.domain.entities import Record
from record_store.domain.value_objects import Condition
from record_store.infrastructure.metrics import MetricsRegistry
from record_store.infrastructure.tracing import trace_span
from record_store.ports.outbound.collection import Collection, MaybeAwaitable, resolve

JoinValue = Union[Record, list[Record], None]
Fetch = Callable[[Record], MaybeAwaitable[JoinValue]]
Projection = Callable[[Any], Optional[Mapping[str, Any]]]


def identity(value: Any) -> Mapping[str, Any] | None:
    """Default projection: a mapping is merged as-is, anything else adds nothing."""
    return value if isinstance(value, Mapping) else None


class Select:
    """Chainable query descriptor. Builder methods mutate and return self."""

    def __init__(self, source: Collection, metrics: MetricsRegistry | None = None) -> None:
        self._source = source
        self._condition: Condition = None
        # Collections are hashed by identity, so two collections with the
        # same name stay distinct keys
        self._joins: dict[Collection, Fetch] = {}
        self._projections: dict[Collection, Projection] = {source: identity}
        self._metrics = metrics

    @classmethod
    def from_(cls, source: Collection, metrics: MetricsRegistry | None = None) -> Select:
        """Start a query on ``source`` with an identity projection."""
        return cls(source, metrics=metrics)

    @property
    def source(self) -> Collection:
        return self._source

    def where(self, condition: Condition = None) -> Select:
        """Set or replace the source predicate. None matches everything."""
        self._condition = condition
        return self

    def join(self, collection: Collection, fetch: Fetch) -> Select:
        """Register ``collection``; ``fetch(source_record)`` returns its value.

        ``fetch`` may be sync or async and may return one record, a list of
        records, or None. The projection resets to identity.
        """
        self._joins[collection] = fetch
        self._projections[collection] = identity
        return self

    def expose(self, collection: Collection, projection: Projection) -> Select:
        """Override how ``collection``'s value is merged into each result."""
        self._projections[collection] = projection
        return self

    async def to_one(self) -> dict[str, Any] | None:
        """Build the result for the first matching source record, or None."""
        started = time.perf_counter()
        with trace_span("select.to_one", {"select.source": self._source.name}):
            record = await resolve(self._source.search_one(self._condition))
            result = await self._compose(record) if record is not None else None
        self._observe("one", started)
        return result

    async def to_array(self) -> list[dict[str, Any]]:
        """Build one result per matching source record, in search order."""
        started = time.perf_counter()
        with trace_span("select.to_array", {"select.source": self._source.name}) as span:
            records = await resolve(self._source.search(self._condition))
            results = [await self._compose(record) for record in records]
            span.set_attribute("select.rows", len(results))
        self._observe("array", started)
        return results

    async def _compose(self, record: Record) -> dict[str, Any]:
        result: dict[str, Any] = {}
        _merge(result, self._projections[self._source](record), self._source)
        for collection, fetch in self._joins.items():
            value = await resolve(fetch(record))
            _merge(result, self._projections[collection](value), collection)
        return result

    def _observe(self, mode: str, started: float) -> None:
        if self._metrics is not None:
            self._metrics.select_latency_seconds.labels(mode=mode).observe(
                time.perf_counter() - started
            )


def _merge(result: dict[str, Any], contribution: Any, collection: Collection) -> None:
    if contribution is None:
        return
    if not isinstance(contribution, Mapping):
        raise TypeError(
            f"Projection for collection {collection.name!r} must return a mapping "
            f"or None, got {type(contribution).__name__}"
        )
    result.update(contribution)
