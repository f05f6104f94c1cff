"""Exception types for Version-Keeper."""

import traceback as tb

from pydantic import BaseModel


class VersioningError(Exception):
    """Base class for all versioning and migration failures."""

    pass


class InvalidVersionFormat(VersioningError, ValueError):
    """
    Raised when a version string does not match MAJOR.MINOR.PATCH[-LABEL].

    Fatal to whatever requested the parse: building the version history at
    import time, or an ad hoc comparison at request time.
    """

    pass


class MalformedHistory(VersioningError):
    """
    Raised when the version history is not strictly ascending or has duplicates.

    This signals a build-time defect in the shipped catalogue rather than a
    runtime condition.
    """

    pass


class UnknownVersionInPath(VersioningError):
    """Raised when a source or target version is missing from the history."""

    pass


class CollectionUnreadable(VersioningError):
    """Raised when a primitive cannot read or parse its top-level collection."""

    pass


class EntryTransformFailed(VersioningError):
    """
    A single entry inside a bulk operation could not be processed.

    Bulk primitives count these and move on; they never abort the batch.
    """

    pass


class StepExecutionFailed(VersioningError):
    """A registered migration procedure reported failure or raised."""

    def __init__(self, version: str, message: str):
        super().__init__(f"Migration failed for version {version}: {message}")
        self.version = version


class ErrorInfo(BaseModel):
    """Serializable description of a failure, carried inside results."""

    message: str
    type: str = "Exception"
    traceback: str | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        """Build an ErrorInfo from a caught exception."""
        return cls(
            message=str(exc) or exc.__class__.__name__,
            type=exc.__class__.__name__,
            traceback="".join(tb.format_exception(type(exc), exc, exc.__traceback__)),
        )
