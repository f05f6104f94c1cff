"""
Reusable store mutations for building migration procedures.

Every primitive is safe to re-run against data it has already migrated.
A primitive that cannot read its top-level collection raises
CollectionUnreadable; failures of individual entries inside a bulk operation
are logged, counted in ``failed`` and skipped.
"""

import json
import re
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

from .errors import CollectionUnreadable, EntryTransformFailed
from .logger import MigrationLogger
from .store import KeyValueStore, find_matching_keys, get_json, set_json

KeyPattern = str | re.Pattern[str]


@dataclass
class PrimitiveResult:
    """Counters reported by a primitive."""

    processed: int = 0
    updated: int = 0
    succeeded: int = 0
    failed: int = 0
    cleared: int = 0
    preserved: int = 0

    def metrics(self) -> dict[str, int]:
        """Return the non-zero counters."""
        return {name: value for name, value in asdict(self).items() if value}


def _logger(logger: MigrationLogger | None) -> MigrationLogger:
    return logger if logger is not None else MigrationLogger("primitive")


def _read_collection(store: KeyValueStore, collection_key: str) -> list[Any] | None:
    """
    Read a JSON list stored under collection_key.

    Returns:
        The decoded list, or None if the key is absent

    Raises:
        CollectionUnreadable: If the value is not valid JSON or not a list
    """
    try:
        collection = get_json(store, collection_key)
    except json.JSONDecodeError as e:
        raise CollectionUnreadable(f"Collection '{collection_key}' is not valid JSON: {e}") from e

    if collection is not None and not isinstance(collection, list):
        raise CollectionUnreadable(
            f"Collection '{collection_key}' is not a list (got {type(collection).__name__})"
        )
    return collection


def add_field(
    store: KeyValueStore,
    collection_key: str,
    field_name: str,
    default_value: Any,
    logger: MigrationLogger | None = None,
) -> PrimitiveResult:
    """
    Add field_name to every record of a collection.

    The default is only written where the field is absent or null, so existing
    values survive repeated runs.

    Args:
        store: Persisted store
        collection_key: Key holding a JSON list of records
        field_name: Field to add
        default_value: Value for records that lack the field
        logger: Step logger

    Returns:
        PrimitiveResult with ``updated`` set to the number of records written

    Raises:
        CollectionUnreadable: If the collection cannot be parsed
    """
    log = _logger(logger)
    records = _read_collection(store, collection_key)
    if records is None:
        log.warn(f"No {collection_key} found in storage")
        return PrimitiveResult()

    result = PrimitiveResult(processed=len(records))
    updated_records = []
    for record in records:
        if not isinstance(record, dict):
            log.warn(f"Skipping non-object record in {collection_key}: {record!r}")
            result.failed += 1
            updated_records.append(record)
            continue

        value = record.get(field_name)
        updated_records.append({**record, field_name: default_value if value is None else value})
        result.updated += 1

    set_json(store, collection_key, updated_records)
    log.info(f"Added field '{field_name}' to {result.updated} record(s) in {collection_key}")
    return result


def rename_field(
    store: KeyValueStore,
    collection_key: str,
    old_name: str,
    new_name: str,
    logger: MigrationLogger | None = None,
) -> PrimitiveResult:
    """
    Rename a field in every record of a collection.

    Records without old_name pass through unchanged.

    Returns:
        PrimitiveResult with ``updated`` set to the number of records renamed

    Raises:
        CollectionUnreadable: If the collection cannot be parsed
    """
    log = _logger(logger)
    records = _read_collection(store, collection_key)
    if records is None:
        log.warn(f"No {collection_key} found in storage")
        return PrimitiveResult()

    result = PrimitiveResult(processed=len(records))
    updated_records = []
    for record in records:
        if isinstance(record, dict) and old_name in record:
            record = dict(record)
            record[new_name] = record.pop(old_name)
            result.updated += 1
        updated_records.append(record)

    set_json(store, collection_key, updated_records)
    log.info(
        f"Renamed '{old_name}' to '{new_name}' in {result.updated} record(s) of {collection_key}"
    )
    return result


def transform_entries(
    store: KeyValueStore,
    key_pattern: KeyPattern,
    transformer: Callable[[Any], Any],
    logger: MigrationLogger | None = None,
    items_field: str = "reviews",
) -> PrimitiveResult:
    """
    Apply transformer to every item of items_field in each matching entry.

    Each rewritten entry is stamped with a ``lastMigrated`` timestamp. Missing
    or unparsable entries, and entries whose transformer raises, are counted as
    failed and left untouched. Entries without an items_field list are skipped.

    Args:
        store: Persisted store
        key_pattern: Regular expression selecting the entries (e.g. ^reviews_)
        transformer: Function called once per item, returning the new item
        logger: Step logger
        items_field: Name of the list inside each entry

    Returns:
        PrimitiveResult with processed, updated and failed counts
    """
    log = _logger(logger)
    keys = find_matching_keys(store, key_pattern)
    log.info(f"Found {len(keys)} entries to update")

    result = PrimitiveResult(processed=len(keys))
    for key in keys:
        try:
            if _transform_entry(store, key, transformer, items_field):
                result.updated += 1
        except EntryTransformFailed as e:
            log.warn(f"Failed to transform entry {key}: {e}")
            result.failed += 1

    return result


def _transform_entry(
    store: KeyValueStore,
    key: str,
    transformer: Callable[[Any], Any],
    items_field: str,
) -> bool:
    """Rewrite one entry. Returns False when it has no items to transform."""
    raw = store.get_item(key)
    if raw is None:
        raise EntryTransformFailed("entry is missing")

    try:
        entry = json.loads(raw)
    except json.JSONDecodeError as e:
        raise EntryTransformFailed(f"entry is not valid JSON: {e}") from e

    if not isinstance(entry, dict) or not isinstance(entry.get(items_field), list):
        return False

    try:
        entry[items_field] = [transformer(item) for item in entry[items_field]]
    except Exception as e:
        raise EntryTransformFailed(f"transformer raised {type(e).__name__}: {e}") from e

    entry["lastMigrated"] = datetime.now(timezone.utc).isoformat()
    set_json(store, key, entry)
    return True


def clear_all(
    store: KeyValueStore,
    collection_key: str,
    logger: MigrationLogger | None = None,
) -> PrimitiveResult:
    """Delete a collection outright. ``cleared`` is 1 if it existed, else 0."""
    log = _logger(logger)
    log.info(f"Clearing all {collection_key} data")
    existed = store.get_item(collection_key) is not None
    store.remove_item(collection_key)
    return PrimitiveResult(processed=1, cleared=1 if existed else 0)


def clear_matching(
    store: KeyValueStore,
    key_pattern: KeyPattern,
    logger: MigrationLogger | None = None,
) -> PrimitiveResult:
    """Delete every entry whose key matches key_pattern."""
    log = _logger(logger)
    keys = find_matching_keys(store, key_pattern)
    log.info(f"Clearing {len(keys)} matching entries")

    result = PrimitiveResult(processed=len(keys))
    for key in keys:
        store.remove_item(key)
        result.cleared += 1

    log.success(f"Cleared {result.cleared} entries")
    return result


def for_each_matching_key(
    store: KeyValueStore,
    key_pattern: KeyPattern,
    handler: Callable[[str, str | None], Any],
    logger: MigrationLogger | None = None,
) -> PrimitiveResult:
    """
    Call handler(key, raw_value) for every key matching key_pattern.

    A failing handler is logged and counted; enumeration continues with the
    remaining keys.
    """
    log = _logger(logger)
    keys = find_matching_keys(store, key_pattern)
    log.info(f"Found {len(keys)} matching keys")

    result = PrimitiveResult(processed=len(keys))
    for key in keys:
        try:
            handler(key, store.get_item(key))
            result.succeeded += 1
        except Exception as e:
            log.error(f"Error processing key: {key}", e)
            result.failed += 1

    return result


def clear_all_storage(
    store: KeyValueStore,
    except_keys: list[str] | None = None,
    logger: MigrationLogger | None = None,
) -> PrimitiveResult:
    """
    Wipe the whole store, keeping the keys listed in except_keys.

    Returns:
        PrimitiveResult with ``cleared`` (entries present before the wipe) and
        ``preserved`` (keys restored afterwards)
    """
    log = _logger(logger)
    except_keys = except_keys or []
    log.info("Clearing all storage")

    preserved: dict[str, str] = {}
    if except_keys:
        log.info(f"Preserving {len(except_keys)} keys")
        for key in except_keys:
            value = store.get_item(key)
            if value is not None:
                preserved[key] = value

    item_count = len(store)
    store.clear()

    for key, value in preserved.items():
        store.set_item(key, value)

    return PrimitiveResult(processed=item_count, cleared=item_count, preserved=len(preserved))
