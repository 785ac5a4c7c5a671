"""Unit tests for condition compilation."""

from __future__ import annotations

import pytest

from record_store.domain.value_objects import compile_condition, ids_in, match_all


@pytest.mark.unit
class TestCompileCondition:
    """Tests for compile_condition."""

    def test_none_matches_everything(self) -> None:
        """A missing condition matches every record."""
        predicate = compile_condition(None)

        assert predicate is match_all
        assert predicate({}) is True

    def test_callable_is_used_as_is(self) -> None:
        """Callables are returned unchanged."""

        def adults(record: dict) -> bool:
            return record["age"] >= 18

        assert compile_condition(adults) is adults

    def test_mapping_matches_on_equality(self) -> None:
        """Every field of the mapping must be present and equal."""
        predicate = compile_condition({"name": "John", "age": 30})

        assert predicate({"_id": "1", "name": "John", "age": 30})
        assert not predicate({"_id": "2", "name": "John", "age": 31})
        assert not predicate({"_id": "3", "name": "John"})

    def test_mapping_matches_explicit_none(self) -> None:
        """A None value matches a present None field but not a missing one."""
        predicate = compile_condition({"deleted_at": None})

        assert predicate({"deleted_at": None})
        assert not predicate({})

    def test_empty_mapping_matches_everything(self) -> None:
        """An empty mapping has no constraints."""
        assert compile_condition({})({"anything": 1})

    def test_unsupported_type_raises(self) -> None:
        """Non-mapping, non-callable conditions are rejected."""
        with pytest.raises(TypeError, match="Unsupported condition type"):
            compile_condition(42)  # type: ignore[arg-type]


@pytest.mark.unit
def test_ids_in() -> None:
    """ids_in matches on membership of _id."""
    predicate = ids_in(["1", "3"])

    assert predicate({"_id": "1"})
    assert not predicate({"_id": "2"})
    assert not predicate({"name": "no id"})
