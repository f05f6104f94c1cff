"""Path helpers for Version-Keeper."""

import os
from pathlib import Path


def expand_path(path: str | Path) -> Path:
    """Expand ~ and environment variables in a path."""
    return Path(os.path.expandvars(os.path.expanduser(str(path))))


def ensure_dir(path: Path) -> Path:
    """Create path (and parents) if it does not exist."""
    path.mkdir(parents=True, exist_ok=True)
    return path
