"""Resolve the ordered list of versions to migrate through."""

import logging

from .errors import UnknownVersionInPath
from .history import VersionHistory, VersionRecord
from .semver import SemanticVersion, coerce

logger = logging.getLogger(__name__)


class MigrationPathResolver:
    """Computes migration paths from the version history."""

    def __init__(self, history: VersionHistory):
        self.history = history

    def resolve_path(
        self,
        from_version: str | SemanticVersion,
        to_version: str | SemanticVersion,
    ) -> list[VersionRecord]:
        """
        Get the records to migrate through, oldest first.

        Every record after from_version up to and including to_version that
        requires migration is returned. Identical versions give an empty path
        without consulting the history.

        Args:
            from_version: Version whose migrations are already applied
            to_version: Version to migrate to

        Returns:
            Records in ascending version order, possibly empty

        Raises:
            UnknownVersionInPath: If either version is absent from the history
            InvalidVersionFormat: If either version does not parse
        """
        from_v = coerce(from_version)
        to_v = coerce(to_version)

        if from_v == to_v:
            return []

        from_index = self.history.index_of(from_v)
        to_index = self.history.index_of(to_v)

        missing = [str(v) for v, i in ((from_v, from_index), (to_v, to_index)) if i == -1]
        if missing:
            raise UnknownVersionInPath(
                f"Cannot find migration path from {from_v} to {to_v}: "
                f"unknown version(s) {', '.join(missing)}"
            )

        # A downgrade gives an empty slice
        records = self.history.all()[from_index + 1 : to_index + 1]
        path = [record for record in records if record.requires_migration]
        steps = ", ".join(str(r.version) for r in path) or "none"
        logger.debug(f"Resolved migration path {from_v} -> {to_v}: {steps}")
        return path

    def affected_storage_keys(
        self,
        from_version: str | SemanticVersion,
        to_version: str | SemanticVersion,
    ) -> list[str]:
        """Return the union of affected keys along the path, in first-seen order."""
        keys: dict[str, None] = {}
        for record in self.resolve_path(from_version, to_version):
            keys.update(dict.fromkeys(record.affected_keys))
        return list(keys)
