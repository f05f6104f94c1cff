"""Semantic version parsing and ordering."""

import re
from dataclasses import dataclass, field

from .errors import InvalidVersionFormat

# MAJOR.MINOR.PATCH with an optional -LABEL suffix. ASCII digits, used with fullmatch.
VERSION_PATTERN = re.compile(r"(\d+)\.(\d+)\.(\d+)(?:-(.+))?", re.ASCII)


@dataclass(frozen=True, eq=False)
class SemanticVersion:
    """
    Parsed semantic version.

    Ordering compares major, minor and patch numerically. When those are equal a
    version without a label is greater than one with a label, and two labels
    compare lexicographically.
    """

    major: int
    minor: int
    patch: int
    label: str | None = None
    raw: str = field(default="", compare=False)

    @property
    def is_prerelease(self) -> bool:
        """True when the version carries a label (alpha, beta, rc...)."""
        return self.label is not None

    def _key(self) -> tuple[int, int, int, str | None]:
        return (self.major, self.minor, self.patch, self.label)

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"SemanticVersion({self.raw!r})"

    def __hash__(self) -> int:
        return hash(self._key())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return compare(self, other) == 0

    def __lt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return compare(self, other) < 0

    def __le__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return compare(self, other) <= 0

    def __gt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return compare(self, other) > 0

    def __ge__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return compare(self, other) >= 0


def parse(raw: str) -> SemanticVersion:
    """
    Parse a version string.

    Args:
        raw: Version string such as "1.0.0" or "1.1.0-alpha"

    Returns:
        Parsed SemanticVersion

    Raises:
        InvalidVersionFormat: If raw is not MAJOR.MINOR.PATCH[-LABEL]
    """
    if not isinstance(raw, str):
        raise InvalidVersionFormat(f"Invalid version format: {raw!r}")

    match = VERSION_PATTERN.fullmatch(raw)
    if not match:
        raise InvalidVersionFormat(f"Invalid version format: {raw}")

    major, minor, patch, label = match.groups()
    return SemanticVersion(
        major=int(major),
        minor=int(minor),
        patch=int(patch),
        label=label,
        raw=raw,
    )


def coerce(value: "str | SemanticVersion") -> SemanticVersion:
    """Return value as a SemanticVersion, parsing it if it is a string."""
    if isinstance(value, SemanticVersion):
        return value
    return parse(value)


def compare(a: "str | SemanticVersion", b: "str | SemanticVersion") -> int:
    """
    Compare two versions.

    Returns:
        -1 if a < b, 0 if equal, 1 if a > b
    """
    a = coerce(a)
    b = coerce(b)

    for left, right in ((a.major, b.major), (a.minor, b.minor), (a.patch, b.patch)):
        if left != right:
            return 1 if left > right else -1

    # No label outranks any label: 1.0.0 > 1.0.0-alpha
    if a.label is None and b.label is not None:
        return 1
    if a.label is not None and b.label is None:
        return -1
    if a.label == b.label:
        return 0
    return 1 if a.label > b.label else -1
