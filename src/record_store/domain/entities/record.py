"""Record entity shared by every collection backend.

A record is an open mapping of field names to values carrying one
mandatory field, ``_id``. The id is a string, unique within its
collection, assigned by the backend on first save when absent and never
changed afterwards.
"""

from __future__ import annotations

import copy
import uuid
from collections.abc import Mapping, MutableMapping
from typing import Any, TypeAlias

Record: TypeAlias = dict[str, Any]
"""An identifiable record: ``{"_id": "...", **fields}``."""

RecordId: TypeAlias = str

ID_FIELD = "_id"


def new_record_id() -> RecordId:
    """Return a fresh random (version 4) UUID string."""
    return str(uuid.uuid4())


def ensure_id(item: MutableMapping[str, Any]) -> RecordId:
    """Assign a fresh ``_id`` to ``item`` if it has none and return the id."""
    if not item.get(ID_FIELD):
        item[ID_FIELD] = new_record_id()
    return item[ID_FIELD]


def require_id(item: Mapping[str, Any]) -> RecordId:
    """Return the ``_id`` of ``item``.

    Raises:
        ValueError: If the item carries no id.
    """
    record_id = item.get(ID_FIELD)
    if not record_id:
        raise ValueError(f"{ID_FIELD} is required, got {dict(item)!r}")
    return record_id


def clone_record(record: Mapping[str, Any]) -> Record:
    """Deep copy a record so callers never share state with a backend."""
    return copy.deepcopy(dict(record))


def deep_merge(target: MutableMapping[str, Any], patch: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Merge ``patch`` into ``target`` in place and return ``target``.

    Nested mappings on both sides are merged key by key. Every other value
    (scalars, lists, tuples, None) replaces the existing value wholesale.

    Example:
        >>> deep_merge({"a": {"x": 1, "y": 2}, "tags": [1]}, {"a": {"y": 3}, "tags": [2]})
        {'a': {'x': 1, 'y': 3}, 'tags': [2]}
    """
    for key, value in patch.items():
        current = target.get(key)
        if isinstance(current, MutableMapping) and isinstance(value, Mapping):
            deep_merge(current, value)
        else:
            target[key] = copy.deepcopy(value)
    return target
