"""Stored version marker tracking and startup migration orchestration."""

import asyncio
import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_serializer

from .config import Config, load_config
from .errors import ErrorInfo, VersioningError
from .history import APP_VERSION, VERSION_HISTORY, VersionHistory
from .migrations import MigrationRegistry, build_registry
from .migrations.runner import ExecutionReport, MigrationExecutor
from .resolver import MigrationPathResolver
from .semver import SemanticVersion, coerce, compare
from .store import KeyValueStore, StorageKeys, open_store

logger = logging.getLogger(__name__)


class TrackerState(str, Enum):
    UNKNOWN = "unknown"
    FIRST_RUN = "first_run"
    UP_TO_DATE = "up_to_date"
    NEEDS_MIGRATION = "needs_migration"
    DOWNGRADE = "downgrade"
    MIGRATION_RAN = "migration_ran"
    PERSISTED = "persisted"


class VersionStatus(BaseModel):
    """Comparison of the stored marker with the running version."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    first_run: bool
    updated: bool
    from_version: SemanticVersion | None
    to_version: SemanticVersion
    is_newer: bool = False
    is_older: bool = False
    error: ErrorInfo | None = None

    @field_serializer("from_version", "to_version")
    def serialize_version(self, v: SemanticVersion | None) -> str | None:
        return str(v) if v is not None else None


class MigrationStatus(BaseModel):
    """What initialize() did. Created fresh on every startup check."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    first_run: bool
    updated: bool
    from_version: SemanticVersion | None
    to_version: SemanticVersion
    migration_needed: bool = False
    migration_result: ExecutionReport | None = None
    downgrade: bool = False

    @field_serializer("from_version", "to_version")
    def serialize_version(self, v: SemanticVersion | None) -> str | None:
        return str(v) if v is not None else None


class VersionTracker:
    """
    Owns the stored version marker and runs migrations on startup.

    The marker is only written on first run, after an update that needed no
    migration, or after every step of a migration run succeeded. A failed run
    leaves the old marker so the next startup retries the same path.
    """

    def __init__(
        self,
        store: KeyValueStore,
        current_version: str | SemanticVersion = APP_VERSION,
        history: VersionHistory = VERSION_HISTORY,
        registry: MigrationRegistry | None = None,
        version_key: str = StorageKeys.APP_VERSION,
    ):
        """
        Initialize tracker.

        Args:
            store: Persisted store holding the marker and application data
            current_version: Version compiled into this build
            history: Catalogue of released versions
            registry: Migration procedures; defaults to the shipped ones
            version_key: Key holding the stored version marker

        Raises:
            InvalidVersionFormat: If current_version does not parse
        """
        self.store = store
        self.current_version = coerce(current_version)
        self.history = history
        self.registry = registry if registry is not None else build_registry()
        self.version_key = version_key
        self.resolver = MigrationPathResolver(history)
        self.executor = MigrationExecutor(store, self.registry, self.resolver)
        self.state = TrackerState.UNKNOWN

        self.registry.verify(history)

    def get_stored_version(self) -> SemanticVersion | None:
        """
        Read the stored version marker.

        Returns:
            Stored version, or None on first run

        Raises:
            InvalidVersionFormat: If the marker holds something that is not a version
        """
        raw = self.store.get_item(self.version_key)
        if not raw:
            return None
        return coerce(raw)

    def save_current_version(self) -> SemanticVersion:
        """Write the running version as the stored marker."""
        self.store.set_item(self.version_key, str(self.current_version))
        self.state = TrackerState.PERSISTED
        return self.current_version

    def check_status(self) -> VersionStatus:
        """
        Compare the stored marker with the running version.

        Read-only: nothing is written to the store.
        """
        stored = self.get_stored_version()
        if stored is None:
            return VersionStatus(
                first_run=True,
                updated=False,
                from_version=None,
                to_version=self.current_version,
            )

        order = compare(stored, self.current_version)
        return VersionStatus(
            first_run=False,
            updated=order != 0,
            from_version=stored,
            to_version=self.current_version,
            is_newer=order < 0,
            is_older=order > 0,
        )

    def initialize(self) -> MigrationStatus:
        """
        Detect first run or update and run any pending migrations.

        Never raises: failures are reported through ``migration_result``.
        """
        try:
            return self._initialize()
        except Exception as e:
            logger.exception(f"Version initialization failed: {e}")
            stored = self._peek_marker()
            message = f"Version initialization failed: {e}"
            if stored:
                message += f" (stored version marker: {stored!r})"
            return MigrationStatus(
                first_run=False,
                updated=bool(stored) and stored != str(self.current_version),
                from_version=None,
                to_version=self.current_version,
                migration_result=ExecutionReport(
                    success=False,
                    message=message,
                    error=ErrorInfo.from_exception(e),
                ),
            )

    def _peek_marker(self) -> str | None:
        """Raw marker text, or None if the store cannot be read."""
        try:
            return self.store.get_item(self.version_key)
        except (OSError, ValueError):
            return None

    def _initialize(self) -> MigrationStatus:
        self.state = TrackerState.UNKNOWN
        status = self.check_status()
        base = {
            "first_run": status.first_run,
            "updated": status.updated,
            "from_version": status.from_version,
            "to_version": status.to_version,
        }

        if status.first_run:
            self.state = TrackerState.FIRST_RUN
            logger.info(f"First run, recording version {self.current_version}")
            self.save_current_version()
            return MigrationStatus(**base)

        if not status.updated:
            self.state = TrackerState.UP_TO_DATE
            return MigrationStatus(**base)

        if status.is_older:
            # No path can be resolved backwards through the history
            self.state = TrackerState.DOWNGRADE
            logger.warning(
                f"Stored version {status.from_version} is newer than running version "
                f"{self.current_version}; no downgrade migration is defined"
            )
            return MigrationStatus(**base, downgrade=True)

        self.state = TrackerState.NEEDS_MIGRATION
        try:
            path = self.resolver.resolve_path(status.from_version, self.current_version)
        except VersioningError as e:
            logger.error(f"Cannot resolve migration path: {e}")
            return MigrationStatus(
                **base,
                migration_result=ExecutionReport(
                    success=False,
                    message=f"Migration failed: {e}",
                    error=ErrorInfo.from_exception(e),
                ),
            )

        if not path:
            logger.info(
                f"No migration needed for update from v{status.from_version} "
                f"to v{self.current_version}"
            )
            self.save_current_version()
            return MigrationStatus(
                **base,
                migration_result=ExecutionReport(success=True, message="No migration needed"),
            )

        logger.info(f"Migration needed from v{status.from_version} to v{self.current_version}")
        report = self.executor.execute(status.from_version, self.current_version, path=path)
        self.state = TrackerState.MIGRATION_RAN

        if report.success:
            logger.info(f"Migration successful, saving new version: v{self.current_version}")
            self.save_current_version()
        else:
            logger.error(f"Migration failed: {report.message}")

        return MigrationStatus(**base, migration_needed=True, migration_result=report)


def tracker_from_config(config: Config, store: KeyValueStore | None = None) -> VersionTracker:
    """Build a tracker for the store described by config."""
    if store is None:
        store = open_store(config.store_file, table_name=config.table_name)
    return VersionTracker(store, version_key=config.version_key)


def _failed_status(e: Exception) -> MigrationStatus:
    return MigrationStatus(
        first_run=False,
        updated=False,
        from_version=None,
        to_version=coerce(APP_VERSION),
        migration_result=ExecutionReport(
            success=False,
            message=f"Version initialization failed: {e}",
            error=ErrorInfo.from_exception(e),
        ),
    )


def initialize_versioning(config: Config | None = None) -> MigrationStatus:
    """
    Startup entry point: run pending migrations against the configured store.

    Never raises: configuration, store and migration failures are all reported
    through MigrationStatus.migration_result.
    """
    try:
        config = config or load_config()
        store = open_store(config.store_file, table_name=config.table_name)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot open version store: {e}")
        return _failed_status(e)

    try:
        return tracker_from_config(config, store).initialize()
    finally:
        store.close()


async def initialize_versioning_async(config: Config | None = None) -> MigrationStatus:
    """Await initialize_versioning() without blocking the event loop."""
    return await asyncio.to_thread(initialize_versioning, config)


def check_versioning_status(config: Config | None = None) -> VersionStatus:
    """
    Read-only status for display; never runs migrations.

    Never raises: a store or marker that cannot be read is reported through
    VersionStatus.error.
    """
    try:
        config = config or load_config()
        store = open_store(config.store_file, table_name=config.table_name)
        try:
            return tracker_from_config(config, store).check_status()
        finally:
            store.close()
    except (VersioningError, OSError, ValueError) as e:
        logger.error(f"Cannot read version status: {e}")
        return VersionStatus(
            first_run=False,
            updated=False,
            from_version=None,
            to_version=coerce(APP_VERSION),
            error=ErrorInfo.from_exception(e),
        )

