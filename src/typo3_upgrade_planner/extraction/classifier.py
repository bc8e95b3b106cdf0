"""Extension classification: bundled vs third-party, canonical key, version default."""

import re
from dataclasses import dataclass

from typo3_upgrade_planner.extraction.metadata import ExtensionMetadata
from typo3_upgrade_planner.models import ExtensionFact, ExtensionType

PLATFORM_VENDOR = "typo3"
BUNDLED_PACKAGE_PREFIX = "cms-"
DEFAULT_EXTENSION_VERSION = "1.0.0"

# Extension keys shipped with the core
CORE_EXTENSION_KEYS = frozenset({
    "core",
    "extbase",
    "fluid",
    "install",
    "recordlist",
    "backend",
    "frontend",
    "dashboard",
    "fluid_styled_content",
    "filelist",
    "impexp",
    "form",
    "seo",
    "setup",
    "rte_ckeditor",
    "belog",
    "beuser",
    "extensionmanager",
    "felogin",
    "info",
    "sys_note",
    "t3editor",
    "tstemplate",
    "viewpage",
    "adminpanel",
    "linkvalidator",
    "lowlevel",
    "redirects",
    "reports",
    "scheduler",
    "workspaces",
    "indexed_search",
    "opendocs",
    "recycler",
    "webhooks",
    "reactions",
})

_KEY_PREFIXES = ("typo3-cms-", "typo3-ext-", "typo3-", "ext-", "t3ext-")
_INVALID_KEY_CHARS = re.compile(r"[^a-z0-9_]")


@dataclass
class ClassificationContext:
    """Facts around one extension identifier.

    Attributes:
        platform_version: Detected platform version, inherited by bundled extensions
        vendor: Vendor recorded next to the identifier (export documents)
        version: Version recorded next to the identifier (manifest constraint, export)
        metadata: Parsed metadata of the extension folder, if any
        folder: Extension folder inside the archive
        extension_type: Structural type of the folder
        bundled_hint: The identifier was found in a core-only location
    """

    platform_version: str | None = None
    vendor: str | None = None
    version: str | None = None
    metadata: ExtensionMetadata | None = None
    folder: str | None = None
    extension_type: ExtensionType = ExtensionType.UNKNOWN
    bundled_hint: bool = False


def split_identifier(raw_identifier: str) -> tuple[str | None, str]:
    """Split ``vendor/name`` into its parts; bare keys have no vendor."""
    identifier = raw_identifier.strip().strip("/")
    if "/" in identifier:
        vendor, name = identifier.split("/", 1)
        return vendor.lower(), name
    return None, identifier


def canonical_key(raw_identifier: str) -> str:
    """Reduce an identifier to the extension key used for lookups.

    ``typo3/cms-fluid-styled-content`` -> ``fluid_styled_content``,
    ``friendsoftypo3/tt-address`` -> ``tt_address``,
    ``vendor/typo3-ext-foo`` -> ``foo``.
    """
    vendor, name = split_identifier(raw_identifier)
    key = name.lower()

    if vendor == PLATFORM_VENDOR and key.startswith(BUNDLED_PACKAGE_PREFIX):
        key = key[len(BUNDLED_PACKAGE_PREFIX):]

    for prefix in _KEY_PREFIXES:
        if key.startswith(prefix) and len(key) > len(prefix):
            key = key[len(prefix):]
            break

    key = key.replace("-", "_").replace(".", "_")
    return _INVALID_KEY_CHARS.sub("", key)


def is_bundled(raw_identifier: str, vendor: str | None = None) -> bool:
    """Check whether an identifier names a core extension.

    Args:
        raw_identifier: Identifier as found
        vendor: Vendor recorded separately from the identifier

    Returns:
        True for reserved keys without vendor, and for packages of the
        platform vendor
    """
    found_vendor, name = split_identifier(raw_identifier)
    effective_vendor = found_vendor or (vendor.lower() if vendor else None)

    if effective_vendor is None:
        return name.lower() in CORE_EXTENSION_KEYS
    if effective_vendor != PLATFORM_VENDOR:
        return False
    if found_vendor is None:
        # "typo3" recorded as vendor next to a bare key
        return True
    return name.lower().startswith(BUNDLED_PACKAGE_PREFIX)


class ExtensionClassifier:
    """Turns raw identifiers into ExtensionFacts. Pure and deterministic."""

    def classify(self, raw_identifier: str, context: ClassificationContext | None = None) -> ExtensionFact:
        """Classify one extension.

        Args:
            raw_identifier: Key or ``vendor/package`` as found
            context: Surrounding facts

        Returns:
            New ExtensionFact; compatibility stays unknown
        """
        context = context or ClassificationContext()
        metadata = context.metadata or ExtensionMetadata()
        found_vendor, _ = split_identifier(raw_identifier)

        bundled = context.bundled_hint or is_bundled(raw_identifier, context.vendor)

        key = canonical_key(metadata.extension_key or raw_identifier)
        vendor = found_vendor or (context.vendor.lower() if context.vendor else None)
        if vendor is None and metadata.package_name and "/" in metadata.package_name:
            vendor = metadata.package_name.split("/", 1)[0].lower()
        if vendor is None and bundled:
            vendor = PLATFORM_VENDOR

        package_name = raw_identifier.strip() if found_vendor else metadata.package_name

        return ExtensionFact(
            key=key,
            raw_identifier=raw_identifier,
            version=self._resolve_version(bundled, context, metadata),
            vendor=vendor,
            bundled=bundled,
            title=metadata.title,
            author=metadata.author,
            package_name=package_name,
            typo3_constraint=metadata.typo3_constraint,
            extension_type=context.extension_type,
            category=metadata.category,
            state=metadata.state,
            path=context.folder,
        )

    @staticmethod
    def _resolve_version(
        bundled: bool,
        context: ClassificationContext,
        metadata: ExtensionMetadata,
    ) -> str:
        if bundled and context.platform_version:
            return context.platform_version
        return metadata.version or context.version or DEFAULT_EXTENSION_VERSION
