"""Version-Keeper: versioned migrations for a persisted key-value store."""

__version__ = "1.1.0"

from .errors import (  # noqa: E402
    CollectionUnreadable,
    EntryTransformFailed,
    ErrorInfo,
    InvalidVersionFormat,
    MalformedHistory,
    StepExecutionFailed,
    UnknownVersionInPath,
    VersioningError,
)
from .history import APP_VERSION, VERSION_HISTORY, VersionHistory, VersionRecord  # noqa: E402
from .semver import SemanticVersion, compare, parse  # noqa: E402
from .tracker import (  # noqa: E402
    MigrationStatus,
    VersionStatus,
    VersionTracker,
    check_versioning_status,
    initialize_versioning,
    initialize_versioning_async,
)

__all__ = [
    "APP_VERSION",
    "CollectionUnreadable",
    "EntryTransformFailed",
    "ErrorInfo",
    "InvalidVersionFormat",
    "MalformedHistory",
    "MigrationStatus",
    "SemanticVersion",
    "StepExecutionFailed",
    "UnknownVersionInPath",
    "VERSION_HISTORY",
    "VersionHistory",
    "VersionRecord",
    "VersionStatus",
    "VersionTracker",
    "VersioningError",
    "check_versioning_status",
    "compare",
    "initialize_versioning",
    "initialize_versioning_async",
    "parse",
]
