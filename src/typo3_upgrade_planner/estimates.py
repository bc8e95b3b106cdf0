"""Best-effort estimate providers.

Values produced here are guesses, never measurements. Callers must flag
every value they take from a provider as estimated.
"""

from typing import Protocol

from typo3_upgrade_planner.versions import is_valid, major_of

BASE_TABLE_COUNT = 40
TABLES_PER_EXTENSION = 2
MAX_EXTENSION_TABLES = 60
DEFAULT_PLATFORM_MAJOR = 10


class BestEffortEstimator(Protocol):
    """Source of fallback guesses for facts an archive does not reveal."""

    def table_count(self, extension_count: int) -> int:
        ...

    def database_version(self, platform_version: str | None) -> str:
        ...

    def platform_version(self, has_public_folder: bool, has_core_icons: bool) -> str:
        ...


class HeuristicEstimator:
    """Estimates from platform-version and project-structure heuristics."""

    def table_count(self, extension_count: int) -> int:
        """Core tables plus a capped allowance per extension."""
        return BASE_TABLE_COUNT + min(extension_count * TABLES_PER_EXTENSION, MAX_EXTENSION_TABLES)

    def database_version(self, platform_version: str | None) -> str:
        """Typical MySQL version for the platform major."""
        major = major_of(platform_version) if is_valid(platform_version) else DEFAULT_PLATFORM_MAJOR
        if major >= 12:
            return "8.0.0"
        elif major >= 10:
            return "5.7.0"
        return "5.5.0"

    def platform_version(self, has_public_folder: bool, has_core_icons: bool) -> str:
        """Guess the platform version from the folder layout."""
        if has_public_folder:
            return "10.4.0"
        if has_core_icons:
            return "8.7.0"
        return "7.6.0"
