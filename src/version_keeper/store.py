"""Persisted key-value store used by the migration engine."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

from tinydb import Query, TinyDB
from tinydb.storages import MemoryStorage

logger = logging.getLogger(__name__)


class StorageKeys:
    """Well-known keys written by the application."""

    # Core data storage
    COMPANIES = "companies"
    APP_VERSION = "app_version"

    # UI settings - reviews table
    REVIEWS_TABLE_COLUMN_ORDER = "reviewsTableColumnOrder"
    REVIEWS_TABLE_COLUMN_VISIBILITY = "reviewsTableColumnVisibility"
    REVIEWS_TABLE_COLUMN_ORDER_COMPARE = "reviewsTableColumnOrderCompare"
    REVIEWS_TABLE_COLUMN_VISIBILITY_COMPARE = "reviewsTableColumnVisibilityCompare"

    # UI settings - sentiment charts
    SENTIMENT_CHARTS_ORDER = "sentimentChartsOrder"
    SENTIMENT_CHARTS_HIDDEN = "sentimentChartsHidden"
    SENTIMENT_CHARTS_ORDER_COMPARE = "sentimentChartsOrderCompare"
    SENTIMENT_CHARTS_HIDDEN_COMPARE = "sentimentChartsHiddenCompare"


REVIEW_CACHE_PREFIX = "reviews_"
REVIEW_CACHE_PATTERN = re.compile(rf"^{REVIEW_CACHE_PREFIX}")


class KeyValueStore(Protocol):
    """String-valued key-value store with key enumeration."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def clear(self) -> None: ...

    def __len__(self) -> int: ...


class TinyDBStore:
    """
    KeyValueStore backed by a TinyDB table.

    Each key is one document of the form {"key": ..., "value": ...}. Values are
    kept as text exactly as written; structured values are JSON-encoded by the
    caller (see get_json/set_json).
    """

    def __init__(self, db: TinyDB, table_name: str = "storage"):
        """
        Initialize store.

        Args:
            db: TinyDB database instance
            table_name: Table holding the key/value documents
        """
        self.db = db
        self.table = db.table(table_name)

    def get_item(self, key: str) -> str | None:
        """Return the raw text stored under key, or None if absent."""
        Item = Query()
        doc = self.table.get(Item.key == key)
        if doc and isinstance(doc, dict):
            return doc.get("value")
        return None

    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        Item = Query()
        self.table.upsert({"key": key, "value": value}, Item.key == key)

    def remove_item(self, key: str) -> None:
        """Delete key. Missing keys are ignored."""
        Item = Query()
        self.table.remove(Item.key == key)

    def keys(self) -> list[str]:
        """Return all keys in insertion order."""
        return [doc["key"] for doc in self.table.all()]

    def clear(self) -> None:
        """Delete every key."""
        self.table.truncate()

    def __len__(self) -> int:
        return len(self.table)

    def __contains__(self, key: str) -> bool:
        return self.get_item(key) is not None

    def close(self) -> None:
        """Close the underlying database."""
        self.db.close()


def open_store(path: Path, table_name: str = "storage") -> TinyDBStore:
    """
    Open a JSON-file backed store, creating parent directories as needed.

    Args:
        path: Path to the TinyDB JSON file
        table_name: Table holding the key/value documents

    Returns:
        TinyDBStore instance
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    return TinyDBStore(TinyDB(path), table_name=table_name)


def memory_store(table_name: str = "storage") -> TinyDBStore:
    """Create a store that lives only in memory."""
    return TinyDBStore(TinyDB(storage=MemoryStorage), table_name=table_name)


def get_json(store: KeyValueStore, key: str) -> Any:
    """
    Read and decode a JSON value.

    Returns:
        Decoded value, or None if the key is absent

    Raises:
        json.JSONDecodeError: If the stored text is not valid JSON
    """
    raw = store.get_item(key)
    if raw is None:
        return None
    return json.loads(raw)


def set_json(store: KeyValueStore, key: str, value: Any) -> None:
    """Encode value as JSON and store it under key."""
    store.set_item(key, json.dumps(value))


def find_matching_keys(store: KeyValueStore, pattern: "str | re.Pattern[str]") -> list[str]:
    """Return every key that the regular expression pattern matches (search semantics)."""
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
    return [key for key in store.keys() if key and compiled.search(key)]


def clear_storage_items(store: KeyValueStore, keys: list[str]) -> None:
    """Remove each key, logging and continuing past individual failures."""
    for key in keys:
        try:
            store.remove_item(key)
        except Exception as e:
            logger.error(f"Failed to remove storage item {key}: {e}")


def review_cache_key(entity_id: str | int) -> str:
    """Return the review cache key for a company."""
    return f"{REVIEW_CACHE_PREFIX}{entity_id}"


def find_review_cache_keys(store: KeyValueStore) -> list[str]:
    """Return all review cache keys currently in the store."""
    return find_matching_keys(store, REVIEW_CACHE_PATTERN)


def get_cached_reviews(store: KeyValueStore, entity_id: str | int) -> Any:
    """
    Return the cached review page for a company.

    Returns:
        Decoded cache entry, or None if it is missing or not valid JSON
    """
    key = review_cache_key(entity_id)
    try:
        return get_json(store, key)
    except json.JSONDecodeError as e:
        logger.error(f"Error accessing review cache for {entity_id}: {e}")
        return None
