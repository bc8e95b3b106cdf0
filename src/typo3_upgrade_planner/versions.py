"""Version string helpers shared by the catalog, extractor and planner."""

import re

from packaging.version import InvalidVersion, Version

# Leading operators a composer/emconf constraint may carry before the number
_CONSTRAINT_PREFIX = re.compile(r"^[\s^~>=<v*]*")
_MAJOR_MINOR = re.compile(r"(\d+)\.(\d+)")
_PRERELEASE_MARKERS = ("dev", "alpha", "beta", "rc")


def parse_version(version: str) -> Version:
    """Parse a TYPO3 version string.

    Args:
        version: Version such as ``"12.4"``, ``"v11.5.30"`` or ``"13.0.0-dev"``

    Returns:
        Parsed version

    Raises:
        ValueError: If the string is not a version at all
    """
    cleaned = version.strip().lstrip("vV")
    try:
        return Version(cleaned)
    except InvalidVersion as e:
        raise ValueError(f"Invalid version: {version!r}") from e


def is_valid(version: str | None) -> bool:
    """Check whether a string parses as a version."""
    if not version:
        return False
    try:
        parse_version(version)
    except ValueError:
        return False
    return True


def version_key(version: str) -> tuple[int, int, int]:
    """Numeric (major, minor, patch) ordering key."""
    parsed = parse_version(version)
    release = parsed.release + (0, 0, 0)
    return release[0], release[1], release[2]


def major_of(version: str) -> int:
    """Major component of a version."""
    return version_key(version)[0]


def major_minor(version: str) -> str:
    """Reduce a version to its ``major.minor`` line."""
    major, minor, _ = version_key(version)
    return f"{major}.{minor}"


def is_prerelease(version: str) -> bool:
    """Check for dev/alpha/beta/rc identifiers."""
    lowered = version.lower()
    if any(marker in lowered for marker in _PRERELEASE_MARKERS):
        return True
    try:
        parsed = parse_version(version)
    except ValueError:
        return False
    return parsed.is_prerelease


def constraint_major_minor(constraint: str | None) -> str | None:
    """Extract ``major.minor`` from a version constraint.

    Leading ``^``/``~`` (and comparison operators) are stripped and the first
    ``major.minor`` pair is captured, so ``"^12.4"`` and ``"~12.4.3"`` both give
    ``"12.4"``.

    Args:
        constraint: Composer style constraint string

    Returns:
        ``major.minor`` or None when the constraint carries no version
    """
    if not constraint:
        return None

    stripped = _CONSTRAINT_PREFIX.sub("", constraint.strip())
    match = _MAJOR_MINOR.match(stripped)
    if not match:
        return None
    return f"{match.group(1)}.{match.group(2)}"


def strip_constraint(constraint: str | None) -> str | None:
    """Strip operators from a constraint and keep the full version text.

    ``"^8.1"`` gives ``"8.1"`` and ``">=7.4.1"`` gives ``"7.4.1"``.
    """
    if not constraint:
        return None

    compact = re.sub(r"([<>=^~])\s+", r"\1", constraint.strip())
    first = re.split(r"\s*\|\|?\s*|,|\s+", compact)[0]
    stripped = _CONSTRAINT_PREFIX.sub("", first)
    match = re.match(r"\d+(?:\.\d+){0,2}", stripped)
    return match.group(0) if match else None
