"""Exceptions raised by the TYPO3 Upgrade Planner."""


class UpgradePlannerError(Exception):
    """Base exception for all planner errors."""
    pass


class ExtractionError(UpgradePlannerError):
    """Raised when an input cannot be read as an archive or document at all."""

    def __init__(self, message: str, source: str | None = None):
        self.source = source

        if source:
            message = f"Cannot read '{source}': {message}"

        super().__init__(message)


class PlanningError(UpgradePlannerError):
    """Base class for invalid planning inputs."""

    def __init__(self, message: str, from_version: str | None = None, to_version: str | None = None):
        self.from_version = from_version
        self.to_version = to_version
        super().__init__(message)


class UnknownVersionError(PlanningError):
    """Raised when one or both plan endpoints are not in the catalog."""

    def __init__(self, from_version: str, to_version: str, missing: list[str]):
        self.missing = missing

        sides = " and ".join(missing)
        details = ", ".join(
            f"{side} version '{from_version if side == 'from' else to_version}'"
            for side in missing
        )
        message = f"Unknown {sides} version: {details} not found in release catalog"

        super().__init__(message, from_version, to_version)


class SameVersionError(PlanningError):
    """Raised when source and target are the same release."""

    def __init__(self, version: str):
        super().__init__(
            f"Source and target version are both {version}; nothing to upgrade",
            version,
            version,
        )


class DowngradeNotAllowedError(PlanningError):
    """Raised when the target is older than the source and downgrades are off."""

    def __init__(self, from_version: str, to_version: str):
        super().__init__(
            f"Target {to_version} is older than {from_version}; "
            f"pass allow_downgrade to plan a downgrade",
            from_version,
            to_version,
        )


class CatalogRefreshError(UpgradePlannerError):
    """Raised internally when an upstream catalog refresh fails.

    Never propagated past the catalog; the previous table is kept instead.
    """

    def __init__(self, message: str, url: str | None = None):
        self.url = url

        if url:
            message = f"Catalog refresh from '{url}' failed: {message}"

        super().__init__(message)
