"""Release catalog."""

from typo3_upgrade_planner.catalog.baseline import (
    BASELINE_RELEASES,
    EXTENSION_MAPPINGS,
    LTS_MINORS,
)
from typo3_upgrade_planner.catalog.catalog import ReleaseCatalog, deduplicate
from typo3_upgrade_planner.catalog.source import UpstreamReleaseSource, normalize_upstream

__all__ = [
    "BASELINE_RELEASES",
    "EXTENSION_MAPPINGS",
    "LTS_MINORS",
    "ReleaseCatalog",
    "UpstreamReleaseSource",
    "deduplicate",
    "normalize_upstream",
]
