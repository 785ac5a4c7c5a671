"""Unit tests for MemoryCollection."""

from __future__ import annotations

import pytest

from record_store.adapters.outbound import MemoryCollection
from record_store.ports import Collection, RecordNotFoundError


@pytest.mark.unit
class TestMemoryCollection:
    """Tests for MemoryCollection."""

    @pytest.fixture
    def collection(self) -> MemoryCollection:
        """Collection preloaded with two records."""
        users = MemoryCollection("users")
        users.save({"_id": "1", "name": "Alice"}, {"_id": "2", "name": "Bob"})
        return users

    def test_satisfies_protocol(self, collection: MemoryCollection) -> None:
        """MemoryCollection is a Collection."""
        assert isinstance(collection, Collection)
        assert collection.name == "users"

    def test_default_name(self) -> None:
        """Unnamed collections are called 'memory'."""
        assert MemoryCollection().name == "memory"

    def test_save_assigns_ids_in_place(self) -> None:
        """Items without _id get one, written into the caller's dict."""
        collection = MemoryCollection()
        item = {"name": "Carol"}

        saved = collection.save(item)

        assert saved == [item]
        assert saved[0] is item
        assert item["_id"]
        assert collection.get_by_id(item["_id"]) == item

    def test_save_existing_id_replaces(self, collection: MemoryCollection) -> None:
        """Save is an upsert that replaces the whole record."""
        collection.save({"_id": "1", "nickname": "Al"})

        assert collection.get_by_id("1") == {"_id": "1", "nickname": "Al"}
        assert len(collection) == 2

    def test_search_preserves_insertion_order(self, collection: MemoryCollection) -> None:
        """Records come back in insertion order."""
        assert [r["_id"] for r in collection.search()] == ["1", "2"]

    def test_search_with_condition(self, collection: MemoryCollection) -> None:
        """Only matching records are returned."""
        assert collection.search({"name": "Bob"}) == [{"_id": "2", "name": "Bob"}]
        assert collection.search(lambda r: r["name"].startswith("A")) == [
            {"_id": "1", "name": "Alice"}
        ]

    def test_search_one(self, collection: MemoryCollection) -> None:
        """search_one returns the first match or None."""
        assert collection.search_one() == {"_id": "1", "name": "Alice"}
        assert collection.search_one({"name": "Nobody"}) is None

    def test_returned_records_are_copies(self, collection: MemoryCollection) -> None:
        """Mutating a returned record does not change stored state."""
        record = collection.get_by_id("1")
        assert record is not None
        record["name"] = "Mallory"

        assert collection.get_by_id("1") == {"_id": "1", "name": "Alice"}

    def test_saved_items_are_copied(self) -> None:
        """Mutating a saved dict afterwards does not change stored state."""
        collection = MemoryCollection()
        item = {"_id": "1", "tags": ["a"]}
        collection.save(item)

        item["tags"].append("b")

        assert collection.get_by_id("1") == {"_id": "1", "tags": ["a"]}

    def test_update_deep_merges(self) -> None:
        """update merges nested mappings and replaces other values."""
        collection = MemoryCollection()
        collection.save({"_id": "1", "profile": {"age": 30, "city": "Oslo"}, "tags": ["a"]})

        collection.update({"_id": "1", "profile": {"age": 31}, "tags": ["b"]})

        assert collection.get_by_id("1") == {
            "_id": "1",
            "profile": {"age": 31, "city": "Oslo"},
            "tags": ["b"],
        }

    def test_update_missing_raises_and_applies_nothing(self, collection: MemoryCollection) -> None:
        """A missing target aborts the whole update before any change."""
        with pytest.raises(RecordNotFoundError) as excinfo:
            collection.update({"_id": "1", "name": "Changed"}, {"_id": "404", "name": "X"})

        assert excinfo.value.record_id == "404"
        assert excinfo.value.collection == "users"
        assert "Not found item" in str(excinfo.value)
        assert collection.get_by_id("1") == {"_id": "1", "name": "Alice"}

    def test_update_requires_id(self, collection: MemoryCollection) -> None:
        """Items without _id are rejected."""
        with pytest.raises(ValueError):
            collection.update({"name": "No id"})

    def test_delete_by_id(self, collection: MemoryCollection) -> None:
        """delete_by_id reports whether something was removed."""
        assert collection.delete_by_id("1") is True
        assert collection.delete_by_id("1") is False
        assert collection.get_by_id("1") is None

    def test_delete_by_condition(self, collection: MemoryCollection) -> None:
        """delete removes and returns the matches."""
        removed = collection.delete({"name": "Alice"})

        assert removed == [{"_id": "1", "name": "Alice"}]
        assert collection.search() == [{"_id": "2", "name": "Bob"}]
