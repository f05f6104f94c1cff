"""Tests for primitives module."""

import json

import pytest

from version_keeper.errors import CollectionUnreadable
from version_keeper.logger import MigrationLogger
from version_keeper.primitives import (
    PrimitiveResult,
    add_field,
    clear_all,
    clear_all_storage,
    clear_matching,
    for_each_matching_key,
    rename_field,
    transform_entries,
)
from version_keeper.store import TinyDBStore, get_json, set_json


@pytest.fixture
def logger() -> MigrationLogger:
    return MigrationLogger("test")


class TestAddField:
    """Tests for add_field primitive."""

    def test_adds_default(self, companies_store: TinyDBStore, logger: MigrationLogger) -> None:
        """Test the field is added to every record."""
        result = add_field(companies_store, "companies", "industry", "Technology", logger)

        assert result.updated == 1
        assert get_json(companies_store, "companies") == [
            {"id": 1, "name": "Acme", "industry": "Technology"}
        ]

    def test_keeps_existing_values(self, store: TinyDBStore) -> None:
        """Test only absent or null fields receive the default."""
        set_json(
            store,
            "companies",
            [{"id": 1, "industry": "Retail"}, {"id": 2, "industry": None}, {"id": 3}],
        )

        add_field(store, "companies", "industry", "Unknown")

        assert [c["industry"] for c in get_json(store, "companies")] == [
            "Retail",
            "Unknown",
            "Unknown",
        ]

    def test_idempotent(self, companies_store: TinyDBStore) -> None:
        """Test applying twice equals applying once."""
        add_field(companies_store, "companies", "industry", "Technology")
        once = companies_store.get_item("companies")
        add_field(companies_store, "companies", "industry", "Other")

        assert companies_store.get_item("companies") == once

    def test_missing_collection(self, store: TinyDBStore, logger: MigrationLogger) -> None:
        """Test a missing collection is a warning, not an error."""
        result = add_field(store, "companies", "industry", "Unknown", logger)

        assert result.updated == 0
        assert store.get_item("companies") is None
        assert ("warn", "No companies found in storage") in logger.entries

    def test_corrupt_collection(self, store: TinyDBStore) -> None:
        """Test unparsable collections raise CollectionUnreadable."""
        store.set_item("companies", "[{broken")

        with pytest.raises(CollectionUnreadable):
            add_field(store, "companies", "industry", "Unknown")

    def test_non_list_collection(self, store: TinyDBStore) -> None:
        """Test collections that are not lists raise CollectionUnreadable."""
        set_json(store, "companies", {"id": 1})

        with pytest.raises(CollectionUnreadable, match="not a list"):
            add_field(store, "companies", "industry", "Unknown")

    def test_non_object_records_counted(self, store: TinyDBStore) -> None:
        """Test non-object records pass through and are counted as failed."""
        set_json(store, "companies", [{"id": 1}, "stray"])

        result = add_field(store, "companies", "industry", "Unknown")

        assert result.updated == 1
        assert result.failed == 1
        assert get_json(store, "companies") == [{"id": 1, "industry": "Unknown"}, "stray"]


class TestRenameField:
    """Tests for rename_field primitive."""

    def test_renames(self, store: TinyDBStore) -> None:
        """Test old field moves to the new name."""
        set_json(store, "companies", [{"id": 1, "glassdoorId": 42}, {"id": 2}])

        result = rename_field(store, "companies", "glassdoorId", "sourceId")

        assert result.updated == 1
        assert result.processed == 2
        assert get_json(store, "companies") == [{"id": 1, "sourceId": 42}, {"id": 2}]

    def test_idempotent(self, store: TinyDBStore) -> None:
        """Test re-running leaves migrated data unchanged."""
        set_json(store, "companies", [{"id": 1, "old": "x"}])

        rename_field(store, "companies", "old", "new")
        rename_field(store, "companies", "old", "new")

        assert get_json(store, "companies") == [{"id": 1, "new": "x"}]

    def test_missing_collection(self, store: TinyDBStore) -> None:
        """Test missing collection returns zero counts."""
        assert rename_field(store, "companies", "a", "b") == PrimitiveResult()

    def test_corrupt_collection(self, store: TinyDBStore) -> None:
        """Test unparsable collections raise CollectionUnreadable."""
        store.set_item("companies", "nope")

        with pytest.raises(CollectionUnreadable):
            rename_field(store, "companies", "a", "b")


class TestTransformEntries:
    """Tests for transform_entries primitive."""

    def test_transforms_and_stamps(self, store: TinyDBStore) -> None:
        """Test each review is transformed and the entry stamped."""
        set_json(store, "reviews_1", {"reviews": [{"id": "a"}, {"id": "b"}], "page": 1})
        set_json(store, "companies", [])

        result = transform_entries(store, r"^reviews_", lambda r: {**r, "migrated": True})

        entry = get_json(store, "reviews_1")
        assert result.processed == 1
        assert result.updated == 1
        assert entry["reviews"] == [{"id": "a", "migrated": True}, {"id": "b", "migrated": True}]
        assert entry["page"] == 1
        assert "lastMigrated" in entry

    def test_corrupt_entry_counted(self, store: TinyDBStore, logger: MigrationLogger) -> None:
        """Test unparsable entries are skipped and counted as failed."""
        store.set_item("reviews_1", "{oops")
        set_json(store, "reviews_2", {"reviews": [{"id": "x"}]})

        result = transform_entries(store, r"^reviews_", lambda r: r, logger)

        assert result.failed == 1
        assert result.updated == 1
        assert store.get_item("reviews_1") == "{oops"
        assert any(level == "warn" and "reviews_1" in msg for level, msg in logger.entries)

    def test_transformer_error_counted(self, store: TinyDBStore) -> None:
        """Test an entry whose transformer raises is left untouched."""
        original = json.dumps({"reviews": [{"id": "x"}]})
        store.set_item("reviews_1", original)

        def explode(review):
            raise KeyError("rating")

        result = transform_entries(store, r"^reviews_", explode)

        assert result.failed == 1
        assert result.updated == 0
        assert store.get_item("reviews_1") == original

    def test_entry_without_reviews_skipped(self, store: TinyDBStore) -> None:
        """Test entries lacking the items list are neither updated nor failed."""
        set_json(store, "reviews_1", {"error": "rate limited"})

        result = transform_entries(store, r"^reviews_", lambda r: r)

        assert result.processed == 1
        assert result.updated == 0
        assert result.failed == 0
        assert get_json(store, "reviews_1") == {"error": "rate limited"}

    def test_custom_items_field(self, store: TinyDBStore) -> None:
        """Test a different sub-collection name."""
        set_json(store, "notes_1", {"items": [1, 2]})

        transform_entries(store, r"^notes_", lambda n: n * 10, items_field="items")

        assert get_json(store, "notes_1")["items"] == [10, 20]


class TestClear:
    """Tests for clear_all, clear_matching and clear_all_storage."""

    def test_clear_all(self, companies_store: TinyDBStore) -> None:
        """Test a collection is deleted."""
        result = clear_all(companies_store, "companies")

        assert result.cleared == 1
        assert companies_store.get_item("companies") is None

    def test_clear_all_missing(self, store: TinyDBStore) -> None:
        """Test clearing a missing collection clears nothing."""
        assert clear_all(store, "companies").cleared == 0

    def test_clear_matching(self, store: TinyDBStore) -> None:
        """Test every matching key is removed, others kept."""
        for key in ["reviews_1", "reviews_2", "companies"]:
            store.set_item(key, "{}")

        result = clear_matching(store, r"^reviews_")

        assert result.cleared == 2
        assert store.keys() == ["companies"]

    def test_clear_all_storage_preserves(self, store: TinyDBStore) -> None:
        """Test the store is wiped except for preserved keys."""
        for key in ["app_version", "companies", "reviews_1"]:
            store.set_item(key, "v")

        result = clear_all_storage(store, ["app_version", "missing"])

        assert result.cleared == 3
        assert result.preserved == 1
        assert store.keys() == ["app_version"]


class TestForEachMatchingKey:
    """Tests for for_each_matching_key primitive."""

    def test_isolates_failures(self, store: TinyDBStore, logger: MigrationLogger) -> None:
        """Test one failing handler does not stop the others."""
        for key in ["reviews_1", "reviews_2", "reviews_3", "companies"]:
            store.set_item(key, key)
        seen = []

        def handler(key, value):
            seen.append((key, value))
            if key == "reviews_2":
                raise ValueError("bad entry")

        result = for_each_matching_key(store, r"^reviews_", handler, logger)

        assert [key for key, _ in seen] == ["reviews_1", "reviews_2", "reviews_3"]
        assert seen[0] == ("reviews_1", "reviews_1")
        assert result.processed == 3
        assert result.succeeded == 2
        assert result.failed == 1
        assert any(level == "error" for level, _ in logger.entries)


class TestPrimitiveResult:
    """Tests for PrimitiveResult dataclass."""

    def test_metrics_drop_zeroes(self) -> None:
        """Test metrics only report non-zero counters."""
        assert PrimitiveResult(processed=3, updated=2).metrics() == {"processed": 3, "updated": 2}
