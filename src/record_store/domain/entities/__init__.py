"""Domain entities for the record store."""

from record_store.domain.entities.record import (
    ID_FIELD,
    Record,
    RecordId,
    clone_record,
    deep_merge,
    ensure_id,
    new_record_id,
    require_id,
)

__all__ = [
    "ID_FIELD",
    "Record",
    "RecordId",
    "clone_record",
    "deep_merge",
    "ensure_id",
    "new_record_id",
    "require_id",
]
