"""Shared fixtures for Version-Keeper tests."""

import json

import pytest

from version_keeper.history import VersionHistory, VersionRecord
from version_keeper.store import TinyDBStore, memory_store


class RecordingStore(TinyDBStore):
    """In-memory store that records every write."""

    def __init__(self) -> None:
        base = memory_store()
        super().__init__(base.db)
        self.writes: list[tuple[str, str]] = []

    def set_item(self, key: str, value: str) -> None:
        self.writes.append(("set", key))
        super().set_item(key, value)

    def remove_item(self, key: str) -> None:
        self.writes.append(("remove", key))
        super().remove_item(key)


@pytest.fixture
def store() -> TinyDBStore:
    """Empty in-memory store."""
    return memory_store()


@pytest.fixture
def recording_store() -> RecordingStore:
    """In-memory store that records writes."""
    return RecordingStore()


@pytest.fixture
def companies_store(store: TinyDBStore) -> TinyDBStore:
    """Store seeded with one company."""
    store.set_item("companies", json.dumps([{"id": 1, "name": "Acme"}]))
    return store


@pytest.fixture
def two_version_history() -> VersionHistory:
    """1.0.0 (no migration) followed by 1.1.0 (migrates companies)."""
    return VersionHistory(
        [
            VersionRecord(version="1.0.0", requires_migration=False),
            VersionRecord(
                version="1.1.0",
                requires_migration=True,
                migrate_from=["1.0.0"],
                affected_keys=["companies"],
            ),
        ]
    )


@pytest.fixture
def four_version_history() -> VersionHistory:
    """1.0.0 then three versions that each require migration."""
    return VersionHistory(
        [
            VersionRecord(version="1.0.0"),
            VersionRecord(version="1.1.0", requires_migration=True, affected_keys=["a"]),
            VersionRecord(version="1.2.0", requires_migration=True, affected_keys=["b"]),
            VersionRecord(version="1.3.0", requires_migration=True, affected_keys=["c"]),
        ]
    )
