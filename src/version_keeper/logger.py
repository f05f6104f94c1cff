"""Loggers handed to migration procedures and used by the runner."""

import logging

logger = logging.getLogger("version_keeper.migrations")


class MigrationLogger:
    """
    Logger scoped to a single migration step.

    Every message is prefixed with "[Migration <version>]" so a failing step can
    be traced from the log alone. Entries are also kept in memory so callers can
    show them without re-reading the log.
    """

    def __init__(self, version: str, base: logging.Logger | None = None):
        self.version = version
        self.prefix = f"[Migration {version}]"
        self.base = base or logger
        self.entries: list[tuple[str, str]] = []

    def _emit(self, level: int, name: str, message: str, exc_info=None) -> None:
        self.entries.append((name, message))
        self.base.log(level, f"{self.prefix} {message}", exc_info=exc_info)

    def info(self, message: str) -> None:
        self._emit(logging.INFO, "info", message)

    def warn(self, message: str) -> None:
        self._emit(logging.WARNING, "warn", message)

    def error(self, message: str, error: BaseException | None = None) -> None:
        """Log an error, attaching the traceback of error when given."""
        if error is not None:
            detail = f"{message}: {error}"
            exc_info = (type(error), error, error.__traceback__)
        else:
            detail = message
            exc_info = None
        self._emit(logging.ERROR, "error", detail, exc_info=exc_info)

    def success(self, message: str) -> None:
        self._emit(logging.INFO, "success", f"✓ {message}")


def for_version(version: str) -> MigrationLogger:
    """Create a logger prefixed for version."""
    return MigrationLogger(str(version))


def log_start(from_version: str, to_version: str) -> None:
    logger.info(f"Starting migration from v{from_version} to v{to_version}")


def log_complete(from_version: str, to_version: str) -> None:
    logger.info(f"Successfully migrated from v{from_version} to v{to_version}")


def log_failed(from_version: str, to_version: str, error: object) -> None:
    logger.error(f"Migration failed from v{from_version} to v{to_version}: {error}")
