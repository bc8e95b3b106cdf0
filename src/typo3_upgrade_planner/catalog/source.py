"""Upstream release metadata source and normalization."""

import logging
import re
from typing import Any, Protocol

import httpx

from typo3_upgrade_planner.catalog.baseline import (
    DEFAULT_COMPOSER_REQUIREMENT,
    DEFAULT_DATABASE_REQUIREMENT,
    default_php_requirement,
    is_known_lts,
)
from typo3_upgrade_planner.exceptions import CatalogRefreshError
from typo3_upgrade_planner.http_client import SyncHTTPClient
from typo3_upgrade_planner.models import Release, ReleaseType
from typo3_upgrade_planner.versions import is_prerelease, is_valid, version_key

logger = logging.getLogger(__name__)

_MIN_CONSTRAINT = re.compile(r">=\s*(\d+\.\d+(?:\.\d+)?)")


class ReleaseSource(Protocol):
    """Anything that can produce the upstream keyed release table."""

    def fetch(self) -> dict[str, Any]:
        ...


class UpstreamReleaseSource:
    """Fetches the get.typo3.org style JSON table."""

    def __init__(self, url: str, http_client: SyncHTTPClient) -> None:
        """Initialize source.

        Args:
            url: Endpoint returning ``{major: {"releases": {version: {...}}}}``
            http_client: Client with bounded timeout and retries
        """
        self.url = url
        self.http_client = http_client

    def fetch(self) -> dict[str, Any]:
        """Download the raw release table.

        Raises:
            CatalogRefreshError: On transport, status or decoding failure
        """
        try:
            payload = self.http_client.get_json(self.url)
        except httpx.HTTPError as e:
            raise CatalogRefreshError(str(e), url=self.url) from e
        except ValueError as e:
            raise CatalogRefreshError(f"invalid JSON: {e}", url=self.url) from e

        if not isinstance(payload, dict):
            raise CatalogRefreshError("unexpected payload shape", url=self.url)

        return payload


def format_database_requirement(mysql: str | None, mariadb: str | None) -> str:
    """Render database constraints as ``"10.3+ / MySQL 8.0+"``."""
    parts: list[str] = []

    if mariadb:
        match = _MIN_CONSTRAINT.search(mariadb)
        if match:
            parts.append(f"{match.group(1)}+")

    if mysql:
        match = _MIN_CONSTRAINT.search(mysql)
        if match:
            parts.append(f"MySQL {match.group(1)}+")

    return " / ".join(parts) if parts else DEFAULT_DATABASE_REQUIREMENT


def format_composer_requirement(constraint: str | None) -> str:
    """Render a composer constraint as ``"2.0+"``."""
    if not constraint:
        return DEFAULT_COMPOSER_REQUIREMENT
    match = _MIN_CONSTRAINT.search(constraint)
    return f"{match.group(1)}+" if match else DEFAULT_COMPOSER_REQUIREMENT


def format_php_requirement(value: Any, major: int) -> str:
    """Render PHP support as a ``"min - max"`` range.

    Accepts a list of versions, a plain string, or a constraint mapping.
    """
    if isinstance(value, list) and value:
        versions = sorted((str(v) for v in value if is_valid(str(v))), key=version_key)
        if versions:
            return versions[0] if len(versions) == 1 else f"{versions[0]} - {versions[-1]}"
    if isinstance(value, dict):
        low = value.get("min")
        high = value.get("max")
        if low and high:
            return f"{low} - {high}"
        if low:
            return f"{low}+"
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default_php_requirement(major)


def _release_type(
    version: str,
    info: dict[str, Any],
    major_info: dict[str, Any],
) -> ReleaseType:
    """Determine the release type; explicit flags beat the LTS table."""
    major, minor, _ = version_key(version)

    explicit_lts = info.get("lts")
    if isinstance(explicit_lts, bool):
        if explicit_lts:
            return ReleaseType.LTS
    elif explicit_lts:
        return ReleaseType.LTS

    major_lts = major_info.get("lts")
    if explicit_lts is None and isinstance(major_lts, (str, int, float)) and not isinstance(major_lts, bool):
        if str(major_lts).startswith(f"{major}.{minor}"):
            return ReleaseType.LTS

    if info.get("maintainance") or info.get("maintenance") or info.get("sts"):
        return ReleaseType.STS
    if is_prerelease(version):
        return ReleaseType.DEV
    if explicit_lts is None and is_known_lts(major, minor):
        return ReleaseType.LTS
    return ReleaseType.REGULAR


def _date(value: Any) -> str | None:
    if not value or not isinstance(value, str):
        return None
    return value[:10]


def normalize_release(
    version: str,
    info: dict[str, Any],
    major_info: dict[str, Any] | None = None,
) -> Release:
    """Turn one upstream release record into a Release.

    Missing fields fall back to per-major defaults; schema and wizard flags
    assume a real change for ``x.0`` lines and LTS lines.

    Args:
        version: Version key of the record
        info: Release attributes (any subset)
        major_info: Attributes of the enclosing major entry

    Returns:
        Normalized release
    """
    major_info = major_info or {}
    major, minor, _ = version_key(version)
    release_type = _release_type(version, info, major_info)
    maintained = _date(info.get("maintained_until"))

    return Release(
        version=version,
        release_type=release_type,
        release_date=_date(info.get("date") or info.get("release_date")),
        active_support_until=maintained,
        security_support_until=_date(info.get("elts_until")) or maintained,
        php_requirement=format_php_requirement(
            info.get("php_versions") or info.get("php_constraints"), major
        ),
        database_requirement=format_database_requirement(
            info.get("mysql_constraints"), info.get("mariadb_constraints")
        ),
        composer_requirement=format_composer_requirement(info.get("composer_constraints")),
        needs_schema_change=bool(info.get("db_changes", True)),
        needs_migration_wizard=bool(
            info.get("install_tool_migrations", minor == 0 or release_type == ReleaseType.LTS)
        ),
    )


def normalize_upstream(payload: dict[str, Any]) -> list[Release]:
    """Flatten the upstream keyed table into releases.

    Entries that are not release records (summary keys such as
    ``latest_stable``, malformed versions) are skipped with a debug line.

    Args:
        payload: Raw upstream table

    Returns:
        Every parseable release, unsorted and not yet deduplicated
    """
    releases: list[Release] = []

    for major_key, major_info in payload.items():
        if not isinstance(major_info, dict):
            continue

        raw_releases = major_info.get("releases")
        if not isinstance(raw_releases, dict):
            logger.debug(f"Skipping upstream key {major_key}: no releases table")
            continue

        for version, info in raw_releases.items():
            version_str = str(info.get("version", version)) if isinstance(info, dict) else str(version)
            if not is_valid(version_str):
                logger.debug(f"Skipping unparseable upstream version {version_str!r}")
                continue
            releases.append(
                normalize_release(version_str, info if isinstance(info, dict) else {}, major_info)
            )

    return releases
