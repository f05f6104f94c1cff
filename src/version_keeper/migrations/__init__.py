"""Migration procedures for the persisted store."""

from .base import FunctionMigration, MigrationProcedure, MigrationResult, create_migration
from .migration_1_1_0_company_fields import Migration110CompanyFields
from .registry import MigrationRegistry
from .runner import ExecutionReport, ExecutorState, MigrationExecutor, StepResult

# Registry of all shipped migrations, keyed by the version they migrate to
MIGRATIONS: dict[str, MigrationProcedure] = {
    "1.1.0-alpha": Migration110CompanyFields(),
}


def build_registry() -> MigrationRegistry:
    """Build a fresh registry holding every shipped migration."""
    return MigrationRegistry(MIGRATIONS)


__all__ = [
    "ExecutionReport",
    "ExecutorState",
    "FunctionMigration",
    "MIGRATIONS",
    "Migration110CompanyFields",
    "MigrationExecutor",
    "MigrationProcedure",
    "MigrationRegistry",
    "MigrationResult",
    "StepResult",
    "build_registry",
    "create_migration",
]
