"""Migration executor: runs a resolved path one step at a time."""

from enum import Enum

from pydantic import BaseModel, Field

from .. import logger as migration_log
from ..errors import ErrorInfo, StepExecutionFailed, VersioningError
from ..history import VersionRecord
from ..resolver import MigrationPathResolver
from ..semver import SemanticVersion, coerce
from ..store import KeyValueStore
from .base import MigrationResult
from .registry import MigrationRegistry


class ExecutorState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    NOOP_COMPLETE = "noop_complete"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


class StepResult(BaseModel):
    """Result of one step of a run."""

    version: str
    success: bool
    affected_keys: tuple[str, ...] = ()
    skipped: bool = False
    details: MigrationResult | None = None


class ExecutionReport(BaseModel):
    """Outcome of a whole run."""

    success: bool
    message: str
    affected_keys: tuple[str, ...] = ()
    results: list[StepResult] = Field(default_factory=list)
    error: ErrorInfo | None = None

    @property
    def metrics(self) -> dict[str, int]:
        """Sum of the metrics reported by every step."""
        totals: dict[str, int] = {}
        for step in self.results:
            if step.details is None:
                continue
            for name, value in step.details.metrics.items():
                totals[name] = totals.get(name, 0) + value
        return totals


class MigrationExecutor:
    """
    Runs migration procedures in ascending version order.

    Steps run strictly one after another. The first failing step ends the run;
    earlier steps are not rolled back and later steps are never attempted.
    """

    def __init__(
        self,
        store: KeyValueStore,
        registry: MigrationRegistry,
        resolver: MigrationPathResolver,
    ):
        """
        Initialize executor.

        Args:
            store: Persisted store the procedures operate on
            registry: Procedures keyed by version
            resolver: Path resolver over the version history
        """
        self.store = store
        self.registry = registry
        self.resolver = resolver
        self.state = ExecutorState.IDLE

    def execute(
        self,
        from_version: str | SemanticVersion,
        to_version: str | SemanticVersion,
        path: list[VersionRecord] | None = None,
    ) -> ExecutionReport:
        """
        Run every migration between two versions.

        Each step receives the original from_version, not the version reached
        by the previous step.

        Args:
            from_version: Stored version the run starts from
            to_version: Version to migrate to
            path: Already resolved path; resolved here when omitted

        Returns:
            ExecutionReport. Never raises for resolution or step failures.
        """
        self.state = ExecutorState.RESOLVING

        try:
            from_v = coerce(from_version)
            to_v = coerce(to_version)
            if path is None:
                path = self.resolver.resolve_path(from_v, to_v)
        except VersioningError as e:
            self.state = ExecutorState.FAILED
            migration_log.log_failed(from_version, to_version, e)
            return ExecutionReport(
                success=False,
                message=f"Migration failed: {e}",
                error=ErrorInfo.from_exception(e),
            )

        if not path:
            self.state = ExecutorState.NOOP_COMPLETE
            return ExecutionReport(
                success=True,
                message=f"No migrations required from {from_v} to {to_v}",
            )

        self.state = ExecutorState.RUNNING
        migration_log.log_start(from_v, to_v)

        results: list[StepResult] = []
        affected_keys: dict[str, None] = {}

        for record in path:
            version = record.version
            step_logger = migration_log.for_version(str(version))
            procedure = self.registry.get(version)

            if procedure is None:
                step_logger.warn("No migration function defined for this version")
                results.append(StepResult(version=str(version), success=True, skipped=True))
                continue

            step_logger.info(f"Running step {version}")
            try:
                result = procedure(self.store, from_v, version)
            except Exception as e:
                error = ErrorInfo.from_exception(e)
                step_logger.error("Step raised", e)
                result = MigrationResult(
                    success=False,
                    affected_keys=tuple(getattr(procedure, "affects", ())),
                    error=error,
                )

            affected_keys.update(dict.fromkeys(result.affected_keys))
            results.append(
                StepResult(
                    version=str(version),
                    success=result.success,
                    affected_keys=result.affected_keys,
                    details=result,
                )
            )

            if not result.success:
                self.state = ExecutorState.FAILED
                reason = result.error.message if result.error else "Unknown error"
                failure = StepExecutionFailed(str(version), reason)
                step_logger.error(str(failure))
                migration_log.log_failed(from_v, version, reason)
                return ExecutionReport(
                    success=False,
                    message=str(failure),
                    affected_keys=tuple(affected_keys),
                    results=results,
                    error=result.error,
                )

            step_logger.success(f"Step {version} complete")

        self.state = ExecutorState.COMPLETE
        migration_log.log_complete(from_v, to_v)
        return ExecutionReport(
            success=True,
            message=f"Successfully migrated from {from_v} to {to_v}",
            affected_keys=tuple(affected_keys),
            results=results,
        )
