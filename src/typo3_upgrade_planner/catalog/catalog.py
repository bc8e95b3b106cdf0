"""In-memory release catalog with atomic refresh."""

import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Iterable

from typo3_upgrade_planner.catalog.baseline import BASELINE_RELEASES, EXTENSION_MAPPINGS
from typo3_upgrade_planner.catalog.source import ReleaseSource, normalize_upstream
from typo3_upgrade_planner.exceptions import CatalogRefreshError
from typo3_upgrade_planner.models import Release
from typo3_upgrade_planner.versions import is_prerelease, is_valid, major_minor, version_key

logger = logging.getLogger(__name__)


def deduplicate(releases: Iterable[Release], include_dev: bool = False) -> list[Release]:
    """Keep the highest patch per ``major.minor`` line.

    Pre-release identifiers never compete with stable patches; they are
    dropped unless ``include_dev`` is set, in which case the first one seen
    per line is kept alongside the stable entry.

    Args:
        releases: Releases in any order
        include_dev: Keep dev/alpha/beta/rc identifiers

    Returns:
        Releases sorted ascending by version
    """
    stable: dict[str, Release] = {}
    dev: dict[str, Release] = {}

    for release in releases:
        line = major_minor(release.version)

        if is_prerelease(release.version):
            if include_dev and line not in dev:
                dev[line] = release
            continue

        current = stable.get(line)
        if current is None or release.sort_key > current.sort_key:
            stable[line] = release

    combined = list(stable.values()) + list(dev.values())
    return sorted(combined, key=lambda r: (r.sort_key, is_prerelease(r.version)))


def merge_with_baseline(upstream: list[Release], baseline: Iterable[Release]) -> list[Release]:
    """Fill gaps in upstream releases from the bundled baseline.

    Support dates and the schema/wizard flags of lines the baseline knows
    come from the baseline when upstream omits them; baseline lines missing
    upstream are added unchanged.
    """
    by_line = {major_minor(r.version): r for r in baseline}
    merged: list[Release] = []
    seen: set[str] = set()

    for release in upstream:
        line = major_minor(release.version)
        known = by_line.get(line)
        if known is not None and not is_prerelease(release.version):
            release = replace(
                release,
                release_date=release.release_date or known.release_date,
                active_support_until=release.active_support_until or known.active_support_until,
                security_support_until=(
                    release.security_support_until or known.security_support_until
                ),
                needs_schema_change=known.needs_schema_change,
                needs_migration_wizard=known.needs_migration_wizard,
            )
        merged.append(release)
        if not is_prerelease(release.version):
            seen.add(line)

    merged.extend(r for line, r in by_line.items() if line not in seen)
    return merged


class ReleaseCatalog:
    """Table of known releases keyed by ``major.minor``.

    The table is read-mostly shared state. ``refresh()`` assembles the new
    table completely before swapping it in under a lock, so readers only
    ever see a whole table.
    """

    def __init__(
        self,
        releases: Iterable[Release] | None = None,
        source: ReleaseSource | None = None,
        include_dev: bool = False,
        extension_mappings: dict[str, str] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize catalog.

        Args:
            releases: Initial table (defaults to the bundled baseline)
            source: Upstream source used by ``refresh()``
            include_dev: Keep pre-release identifiers
            extension_mappings: Key -> package table (defaults to bundled)
            clock: Time source for ``get_or_refresh``
        """
        self.source = source
        self.include_dev = include_dev
        self._baseline = tuple(releases) if releases is not None else BASELINE_RELEASES
        self._mappings = dict(extension_mappings or EXTENSION_MAPPINGS)
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        releases = tuple(deduplicate(self._baseline, include_dev))
        # (releases, index) pair, replaced as one object on refresh
        self._table: tuple[tuple[Release, ...], dict[str, Release]] = (releases, self._build_index(releases))
        self._refreshed_at: float | None = None

    @staticmethod
    def _build_index(releases: tuple[Release, ...]) -> dict[str, Release]:
        index: dict[str, Release] = {}
        for release in releases:
            if not is_prerelease(release.version):
                index[major_minor(release.version)] = release
        return index

    def get_all(self) -> list[Release]:
        """All releases, ascending."""
        return list(self._table[0])

    def get(self, version: str) -> Release | None:
        """Look up the canonical release for a version.

        ``"12.4"``, ``"12.4.0"`` and ``"v12.4.7"`` all resolve to the 12.4 line.

        Args:
            version: Version string

        Returns:
            Release or None when the line is unknown
        """
        if not is_valid(version):
            return None
        return self._table[1].get(major_minor(version))

    def __contains__(self, version: str) -> bool:
        return self.get(version) is not None

    def lts_releases(self) -> list[Release]:
        """LTS releases, ascending."""
        return [r for r in self._table[0] if r.is_lts and not is_prerelease(r.version)]

    def latest(self, lts_only: bool = False) -> Release | None:
        """Newest stable release."""
        candidates = self.lts_releases() if lts_only else [
            r for r in self._table[0] if not is_prerelease(r.version)
        ]
        return candidates[-1] if candidates else None

    def suggest_target(self, current: str) -> Release | None:
        """Suggest an upgrade target for an installation on ``current``.

        Returns the first LTS of a later major, else the newest LTS above
        ``current`` within its own major, else None.
        """
        if not is_valid(current):
            return None
        current_key = version_key(current)
        newer = [r for r in self.lts_releases() if r.sort_key > current_key]
        for release in newer:
            if release.major > current_key[0]:
                return release
        return newer[-1] if newer else None

    def extension_mappings(self) -> dict[str, str]:
        """Bare extension key -> package table."""
        return dict(self._mappings)

    @property
    def age(self) -> float | None:
        """Seconds since the last successful refresh, None if never refreshed."""
        if self._refreshed_at is None:
            return None
        return self._clock() - self._refreshed_at

    def refresh(self) -> list[Release]:
        """Reload the table from the upstream source.

        Any failure (no source, network, parse, empty result) keeps the
        current table and is only logged.

        Returns:
            The table in effect after the call
        """
        try:
            releases = self._load_upstream()
        except CatalogRefreshError as e:
            logger.warning(f"Release catalog refresh failed, keeping {len(self._table[0])} releases: {e}")
            return self.get_all()

        index = self._build_index(releases)
        with self._lock:
            self._table = (releases, index)
            self._refreshed_at = self._clock()

        logger.info(f"Release catalog refreshed with {len(releases)} releases")
        return self.get_all()

    def _load_upstream(self) -> tuple[Release, ...]:
        if self.source is None:
            raise CatalogRefreshError("no upstream source configured")

        try:
            payload = self.source.fetch()
        except CatalogRefreshError:
            raise
        except Exception as e:
            # Sources other than UpstreamReleaseSource may raise anything
            raise CatalogRefreshError(f"{type(e).__name__}: {e}") from e

        try:
            upstream = normalize_upstream(payload)
        except (TypeError, ValueError, AttributeError) as e:
            raise CatalogRefreshError(f"malformed release table: {e}") from e

        if not upstream:
            raise CatalogRefreshError("upstream returned no releases")

        merged = merge_with_baseline(upstream, self._baseline)
        return tuple(deduplicate(merged, self.include_dev))

    def get_or_refresh(self, ttl: float) -> list[Release]:
        """Refresh only when the table is older than ``ttl`` seconds.

        A table that has never been refreshed counts as stale.
        """
        age = self.age
        if age is None or age > ttl:
            return self.refresh()
        return self.get_all()
