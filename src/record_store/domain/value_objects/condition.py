"""Search conditions and their compiled predicates.

Backends never interpret conditions themselves. A condition is compiled
once per query into a plain ``Predicate`` and then applied to each record
in the backend's iteration order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeAlias, Union

from record_store.domain.entities.record import ID_FIELD, Record

Predicate: TypeAlias = Callable[[Record], bool]

Condition: TypeAlias = Union[Predicate, Mapping[str, Any], None]
"""Either a predicate, a field-equality mapping, or None (match all)."""

_MISSING = object()


def match_all(record: Record) -> bool:
    """Predicate accepting every record."""
    return True


def compile_condition(condition: Condition = None) -> Predicate:
    """Compile a condition into a predicate.

    Args:
        condition: None matches everything; a callable is used as-is; a
            mapping matches records holding every given field with an
            equal value.

    Returns:
        A predicate over records.

    Raises:
        TypeError: If the condition is of an unsupported type.
    """
    if condition is None:
        return match_all
    if callable(condition):
        return condition
    if isinstance(condition, Mapping):
        expected = dict(condition)

        def matches(record: Record) -> bool:
            return all(
                record.get(field, _MISSING) == value for field, value in expected.items()
            )

        return matches
    raise TypeError(f"Unsupported condition type: {type(condition).__name__}")


def ids_in(ids: Iterable[str]) -> Predicate:
    """Predicate matching records whose ``_id`` is one of ``ids``."""
    wanted = frozenset(ids)

    def matches(record: Record) -> bool:
        return record.get(ID_FIELD) in wanted

    return matches
