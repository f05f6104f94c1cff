"""Registry mapping versions to their migration procedures."""

import logging
from collections.abc import Callable, Iterable, Iterator

from ..history import VersionHistory
from ..semver import SemanticVersion, coerce
from .base import MigrationProcedure, create_migration

logger = logging.getLogger(__name__)


class MigrationRegistry:
    """
    Procedures keyed by the version they migrate to.

    Built once at startup. A version that requires migration but has no
    procedure is tolerated and treated as a no-op step.
    """

    def __init__(self, procedures: dict[str, MigrationProcedure] | None = None):
        self._procedures: dict[SemanticVersion, MigrationProcedure] = {}
        for version, procedure in (procedures or {}).items():
            self.register(version, procedure)

    def register(
        self, version: str | SemanticVersion, procedure: MigrationProcedure
    ) -> MigrationProcedure:
        """
        Register the procedure for version.

        Raises:
            ValueError: If a procedure is already registered for version
            InvalidVersionFormat: If version does not parse
        """
        key = coerce(version)
        if key in self._procedures:
            raise ValueError(f"A migration is already registered for version {key}")
        self._procedures[key] = procedure
        return procedure

    def migration(
        self, version: str | SemanticVersion, affects: Iterable[str] = ()
    ) -> Callable[[Callable], Callable]:
        """
        Decorator registering a plain function as the migration for version.

        Example:

            @registry.migration("1.1.0", affects=["companies"])
            def add_industry(store, from_version, to_version, logger):
                return add_field(store, "companies", "industry", "Unknown", logger)
        """

        def decorator(func: Callable) -> Callable:
            self.register(version, create_migration(affects=affects, migrate=func))
            return func

        return decorator

    def get(self, version: str | SemanticVersion) -> MigrationProcedure | None:
        """Return the procedure for version, or None if none is registered."""
        return self._procedures.get(coerce(version))

    def versions(self) -> list[SemanticVersion]:
        """Return registered versions in ascending order."""
        return sorted(self._procedures)

    def verify(self, history: VersionHistory) -> list[SemanticVersion]:
        """
        Check the registry against the version history.

        Returns:
            Versions that require migration but have no registered procedure.
            A warning is logged for each; they run as no-op steps.
        """
        missing = []
        for record in history:
            if record.requires_migration and record.version not in self._procedures:
                logger.warning(f"No migration registered for version {record.version}")
                missing.append(record.version)

        for version in self._procedures:
            if version not in history:
                logger.warning(f"Migration registered for unknown version {version}")

        return missing

    def __contains__(self, version: object) -> bool:
        if not isinstance(version, (str, SemanticVersion)):
            return False
        return coerce(version) in self._procedures

    def __iter__(self) -> Iterator[SemanticVersion]:
        return iter(self.versions())

    def __len__(self) -> int:
        return len(self._procedures)
