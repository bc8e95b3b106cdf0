"""Upgrade path planning through LTS waypoints."""

import logging

from typo3_upgrade_planner.catalog import ReleaseCatalog
from typo3_upgrade_planner.exceptions import (
    DowngradeNotAllowedError,
    SameVersionError,
    UnknownVersionError,
)
from typo3_upgrade_planner.models import Complexity, Hop, Release
from typo3_upgrade_planner.versions import is_valid, major_minor, version_key

logger = logging.getLogger(__name__)

DOWNGRADE_WARNINGS = [
    "Downgrading is not officially supported by TYPO3",
    "Data loss is possible during downgrade",
    "You may need to manually downgrade extensions",
]


def publish_note(from_version: str, to_version: str, is_downgrade: bool = False) -> str:
    """Advice shown after a hop is applied."""
    if is_downgrade:
        return (
            f"After downgrading from {from_version} to {to_version}, thoroughly test the website "
            "before going public. Downgrading may cause data loss or functionality issues."
        )
    return (
        f"After upgrading from {from_version} to {to_version}, publish and test the website "
        "before proceeding to the next upgrade."
    )


class UpgradePlanner:
    """Computes the ordered hops between two catalog releases."""

    def __init__(self, catalog: ReleaseCatalog) -> None:
        self.catalog = catalog

    def plan(self, from_version: str, to_version: str, allow_downgrade: bool = False) -> list[Hop]:
        """Plan the hops from one release to another.

        Every LTS line above the source major and up to the target becomes
        a waypoint, so no officially supported step is skipped.

        Args:
            from_version: Current version
            to_version: Target version
            allow_downgrade: Permit a single direct downgrade hop

        Returns:
            Contiguous hops, first starting at ``from_version`` and last
            ending at ``to_version``

        Raises:
            SameVersionError: Both versions denote the same release
            UnknownVersionError: A version is not in the catalog
            DowngradeNotAllowedError: The target is older and downgrades are off
        """
        if is_valid(from_version) and is_valid(to_version):
            if version_key(from_version) == version_key(to_version):
                raise SameVersionError(to_version)

        source = self.catalog.get(from_version)
        target = self.catalog.get(to_version)

        missing = []
        if source is None:
            missing.append("from")
        if target is None:
            missing.append("to")
        if missing:
            raise UnknownVersionError(from_version, to_version, missing)

        # Patch levels of one catalog line are the same release
        if source is target:
            raise SameVersionError(target.major_minor)

        if version_key(to_version) < version_key(from_version):
            if not allow_downgrade:
                raise DowngradeNotAllowedError(from_version, to_version)
            logger.info(f"Planning downgrade {from_version} → {to_version}")
            return [self._downgrade_hop(from_version, to_version)]

        waypoints = self.waypoints(from_version, to_version)
        hops: list[Hop] = []
        current = from_version
        for release in waypoints:
            # A target on the last LTS line keeps its exact spelling
            step_to = to_version if release.major_minor == major_minor(to_version) else release.major_minor
            hops.append(self._hop(current, step_to))
            current = step_to

        if current != to_version:
            hops.append(self._hop(current, to_version))

        logger.info(f"Planned {len(hops)} hop(s) from {from_version} to {to_version}")
        return hops

    def waypoints(self, from_version: str, to_version: str) -> list[Release]:
        """LTS releases with ``from.major < major <= to.major``, not beyond ``to``."""
        from_major = version_key(from_version)[0]
        to_key = version_key(to_version)
        return [
            release
            for release in self.catalog.lts_releases()
            if from_major < release.major <= to_key[0] and release.sort_key <= to_key
        ]

    @staticmethod
    def _hop(from_version: str, to_version: str) -> Hop:
        delta = version_key(to_version)[0] - version_key(from_version)[0]
        return Hop(
            from_version=from_version,
            to_version=to_version,
            complexity=Complexity.from_major_delta(delta),
            breaking=delta != 0,
            publish_note=publish_note(from_version, to_version),
        )

    @staticmethod
    def _downgrade_hop(from_version: str, to_version: str) -> Hop:
        return Hop(
            from_version=from_version,
            to_version=to_version,
            complexity=Complexity.VERY_HIGH,
            breaking=True,
            is_downgrade=True,
            warnings=list(DOWNGRADE_WARNINGS),
            publish_note=publish_note(from_version, to_version, is_downgrade=True),
        )
