"""Catalogue of released versions and their migration requirements."""

from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator

from .errors import MalformedHistory
from .semver import SemanticVersion, coerce, compare
from .store import REVIEW_CACHE_PATTERN, StorageKeys, review_cache_key

# Version of the data model this build writes.
# Must match the last entry of VERSION_HISTORY.
APP_VERSION = "1.1.0-alpha"


class VersionRecord(BaseModel):
    """
    One released version.

    Records are appended once per release and never mutated afterwards.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    version: SemanticVersion
    requires_migration: bool = False
    migrate_from: tuple[SemanticVersion, ...] = ()
    affected_keys: tuple[str, ...] = ()
    changes: tuple[str, ...] = ()
    breaking: bool = False
    notes: str = ""

    @field_serializer("version")
    def serialize_version(self, v: SemanticVersion) -> str:
        return str(v)

    @field_serializer("migrate_from")
    def serialize_migrate_from(self, v: tuple[SemanticVersion, ...]) -> list[str]:
        return [str(item) for item in v]

    @field_validator("version", mode="before")
    @classmethod
    def parse_version(cls, v: str | SemanticVersion) -> SemanticVersion:
        """Accept raw version strings."""
        return coerce(v)

    @field_validator("migrate_from", mode="before")
    @classmethod
    def parse_migrate_from(cls, v: Iterable[str | SemanticVersion]) -> tuple[SemanticVersion, ...]:
        """Accept raw version strings, dropping duplicates."""
        return tuple(dict.fromkeys(coerce(item) for item in v))

    @field_validator("affected_keys", mode="before")
    @classmethod
    def dedupe_keys(cls, v: Iterable[str]) -> tuple[str, ...]:
        """Keep declaration order, drop duplicates."""
        return tuple(dict.fromkeys(v))


class VersionHistory:
    """
    Ordered, immutable list of VersionRecords.

    The constructor fails fast with MalformedHistory unless the records are
    strictly ascending by version with no duplicates.
    """

    def __init__(self, records: Iterable[VersionRecord | dict] = ()):
        self._records: tuple[VersionRecord, ...] = tuple(
            r if isinstance(r, VersionRecord) else VersionRecord.model_validate(r)
            for r in records
        )

        for previous, current in zip(self._records, self._records[1:]):
            order = compare(previous.version, current.version)
            if order == 0:
                raise MalformedHistory(f"Duplicate version in history: {current.version}")
            if order > 0:
                raise MalformedHistory(
                    f"Version history is not ascending: {previous.version} precedes "
                    f"{current.version}"
                )

    def all(self) -> tuple[VersionRecord, ...]:
        """Return every record, oldest first."""
        return self._records

    def find(self, version: str | SemanticVersion) -> VersionRecord | None:
        """Return the record for version, or None if it never shipped."""
        target = coerce(version)
        for record in self._records:
            if record.version == target:
                return record
        return None

    def index_of(self, version: str | SemanticVersion) -> int:
        """Return the position of version in the history, or -1."""
        target = coerce(version)
        for index, record in enumerate(self._records):
            if record.version == target:
                return index
        return -1

    @property
    def latest(self) -> VersionRecord | None:
        return self._records[-1] if self._records else None

    def __iter__(self) -> Iterator[VersionRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, version: object) -> bool:
        if not isinstance(version, (str, SemanticVersion)):
            return False
        return self.find(version) is not None


def needs_migration(
    from_version: str | SemanticVersion,
    to_version: str | SemanticVersion,
    history: VersionHistory,
) -> bool:
    """
    Quick check whether moving between two versions calls for a migration.

    Upgrades need one only when the target record requires migration and lists
    the source in migrate_from. Unknown targets never do. Downgrades always
    report True since there is no defined path back.
    """
    from_v = coerce(from_version)
    to_v = coerce(to_version)

    order = compare(from_v, to_v)
    if order == 0:
        return False

    if order < 0:
        target = history.find(to_v)
        if target is None:
            return False
        return target.requires_migration and from_v in target.migrate_from

    return True


# Default company review caches seeded by the application
_DEFAULT_REVIEW_CACHES = [
    review_cache_key(1651),  # Google
    review_cache_key(1138),  # Apple
    review_cache_key(1651639),  # Microsoft
    review_cache_key(40772),  # Meta
    review_cache_key(6036),  # Amazon
]

VERSION_HISTORY = VersionHistory(
    [
        VersionRecord(
            version="1.0.0-alpha",
            requires_migration=False,
            migrate_from=[],
            affected_keys=[
                StorageKeys.COMPANIES,
                StorageKeys.APP_VERSION,
                *_DEFAULT_REVIEW_CACHES,
                StorageKeys.REVIEWS_TABLE_COLUMN_ORDER,
                StorageKeys.REVIEWS_TABLE_COLUMN_VISIBILITY,
                StorageKeys.REVIEWS_TABLE_COLUMN_ORDER_COMPARE,
                StorageKeys.REVIEWS_TABLE_COLUMN_VISIBILITY_COMPARE,
                StorageKeys.SENTIMENT_CHARTS_ORDER,
                StorageKeys.SENTIMENT_CHARTS_HIDDEN,
                StorageKeys.SENTIMENT_CHARTS_ORDER_COMPARE,
                StorageKeys.SENTIMENT_CHARTS_HIDDEN_COMPARE,
            ],
            notes="Initial version with version tracking capability",
            changes=[
                "Added version tracking system",
                "Local storage migration framework",
            ],
            breaking=False,
        ),
        VersionRecord(
            version="1.1.0-alpha",
            requires_migration=True,
            migrate_from=["1.0.0-alpha"],
            affected_keys=[StorageKeys.COMPANIES, REVIEW_CACHE_PATTERN.pattern],
            notes="Updated company data schema",
            changes=[
                "Added industry and lastUpdated fields to companies",
                "Marked cached reviews with the version that processed them",
            ],
            breaking=False,
        ),
    ]
)
