"""Base classes for migration procedures."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import BaseModel, Field

from ..errors import ErrorInfo
from ..logger import MigrationLogger, for_version
from ..primitives import PrimitiveResult
from ..semver import SemanticVersion
from ..store import KeyValueStore


class MigrationResult(BaseModel):
    """Outcome of one migration procedure. Only its side effects are persisted."""

    success: bool
    affected_keys: tuple[str, ...] = ()
    error: ErrorInfo | None = None
    metrics: dict[str, int] = Field(default_factory=dict)
    details: dict[str, Any] = Field(default_factory=dict)


class MigrationProcedure(ABC):
    """
    Base class for the migration registered against one version.

    Subclasses declare ``affects`` (keys or key patterns the procedure touches)
    and implement migrate(). The declaration is surfaced in results; it is not
    enforced.
    """

    affects: tuple[str, ...] = ()

    @abstractmethod
    def migrate(
        self,
        store: KeyValueStore,
        from_version: SemanticVersion,
        to_version: SemanticVersion,
        logger: MigrationLogger,
    ) -> "dict[str, Any] | PrimitiveResult | None":
        """
        Perform the migration on the store.

        Args:
            store: Persisted store
            from_version: Stored version the run started from
            to_version: Version this procedure migrates to
            logger: Logger prefixed with to_version

        Returns:
            Optional details. Integer values are reported as metrics; a
            ``success`` key set to False marks the step as failed.
        """
        pass

    @abstractmethod
    def description(self) -> str:
        """Return a human-readable description of this migration."""
        pass

    def __call__(
        self,
        store: KeyValueStore,
        from_version: SemanticVersion,
        to_version: SemanticVersion,
    ) -> MigrationResult:
        """
        Run the procedure and capture its outcome.

        Exceptions raised by migrate() are converted into a failed result.
        """
        logger = for_version(str(to_version))
        affects = tuple(self.affects)

        try:
            logger.info(f"Starting migration for keys: {', '.join(affects) or 'none'}")
            outcome = self.migrate(store, from_version, to_version, logger)
        except Exception as e:
            logger.error("Migration failed", e)
            return MigrationResult(
                success=False,
                affected_keys=affects,
                error=ErrorInfo.from_exception(e),
            )

        details = _details_from(outcome)
        success = bool(details.pop("success", True))
        metrics = {
            name: value
            for name, value in details.items()
            if isinstance(value, int) and not isinstance(value, bool)
        }

        if not success:
            message = str(details.get("error") or "Migration reported failure")
            logger.error(message)
            return MigrationResult(
                success=False,
                affected_keys=affects,
                error=ErrorInfo(message=message, type="StepExecutionFailed"),
                metrics=metrics,
                details=details,
            )

        logger.success("Migration completed successfully")
        return MigrationResult(
            success=True,
            affected_keys=affects,
            metrics=metrics,
            details=details,
        )


def _details_from(outcome: "dict[str, Any] | PrimitiveResult | None") -> dict[str, Any]:
    if outcome is None:
        return {}
    if isinstance(outcome, PrimitiveResult):
        return outcome.metrics()
    return dict(outcome)


class FunctionMigration(MigrationProcedure):
    """Migration procedure wrapping a plain function."""

    def __init__(
        self,
        affects: Iterable[str],
        migrate: Callable[..., "dict[str, Any] | PrimitiveResult | None"],
        description: str = "",
    ):
        self.affects = tuple(affects)
        self._migrate = migrate
        if not description and migrate.__doc__:
            description = migrate.__doc__.strip().splitlines()[0]
        self._description = description

    def migrate(self, store, from_version, to_version, logger):
        return self._migrate(store, from_version, to_version, logger)

    def description(self) -> str:
        return self._description


def create_migration(
    affects: Iterable[str] = (),
    migrate: Callable[..., "dict[str, Any] | PrimitiveResult | None"] | None = None,
    description: str = "",
) -> FunctionMigration:
    """
    Wrap a function as a migration procedure.

    The function is called as migrate(store, from_version, to_version, logger).

    Raises:
        ValueError: If migrate is not given
    """
    if migrate is None:
        raise ValueError("create_migration requires a migrate function")
    return FunctionMigration(affects, migrate, description)
