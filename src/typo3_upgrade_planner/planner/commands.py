"""Composer command composition for an upgrade target."""

import logging
import re
from dataclasses import dataclass, field

from typo3_upgrade_planner.cache import TTLCache
from typo3_upgrade_planner.models import ExtensionFact
from typo3_upgrade_planner.packagist import PackagistClient
from typo3_upgrade_planner.versions import major_minor

logger = logging.getLogger(__name__)

CORE_PACKAGE = "typo3/cms-core"
PLATFORM_VENDOR = "typo3"
COMMUNITY_VENDOR = "friendsoftypo3"
RESOLUTION_FLAG = "-W"

_VALID_KEY = re.compile(r"^[a-z0-9][a-z0-9_]*$")
_VALID_PACKAGE = re.compile(r"^[a-z0-9]([_.-]?[a-z0-9]+)*/[a-z0-9](([_.]|-{1,2})?[a-z0-9]+)*$")


@dataclass
class Resolution:
    """Packages resolved for a set of extensions."""

    packages: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)


def package_slug(key: str) -> str:
    """Composer package part for an extension key (``tt_address`` -> ``tt-address``)."""
    return key.replace("_", "-")


def author_vendor(author: str | None) -> str | None:
    """Vendor guess from an author name (``Georg Ringer`` -> ``georgringer``)."""
    if not author:
        return None
    slug = re.sub(r"[^a-z0-9]", "", author.lower())
    return slug or None


class CommandComposer:
    """Builds ``composer require`` commands and resolves extension packages.

    Commands are memoized by target line and extension signature, so
    composing the same command twice is free and yields identical text.
    """

    def __init__(
        self,
        mappings: dict[str, str] | None = None,
        packagist: PackagistClient | None = None,
        cache: TTLCache | None = None,
        community_fallback: bool = True,
    ) -> None:
        """Initialize composer.

        Args:
            mappings: Extension key -> package table
            packagist: Optional remote resolver
            cache: Memo for composed commands
            community_fallback: Resolve leftovers into the community vendor
        """
        self.mappings = {_normalize(k): v for k, v in (mappings or {}).items()}
        self.packagist = packagist
        self.cache = cache or TTLCache()
        self.community_fallback = community_fallback

    def resolve_package(self, extension: ExtensionFact) -> str | None:
        """Resolve one extension to a fully qualified package name.

        Order: the identifier itself when vendor-qualified, bundled core
        packages, the mapping table, the recorded vendor, the ``t3``/``typo3``
        key prefix, the remote resolver, the author name, the community
        vendor.

        Returns:
            Package name, or None when the extension cannot be resolved
        """
        key = _normalize(extension.key)
        if not _VALID_KEY.match(key):
            return None

        slug = package_slug(key)

        if extension.is_vendor_qualified:
            candidate = extension.raw_identifier.strip().lower()
            if _VALID_PACKAGE.match(candidate):
                return candidate

        if extension.bundled:
            return f"{PLATFORM_VENDOR}/cms-{slug}"

        if extension.package_name and _VALID_PACKAGE.match(extension.package_name.lower()):
            return extension.package_name.lower()

        if key in self.mappings:
            return self.mappings[key]

        if extension.vendor and extension.vendor != PLATFORM_VENDOR:
            return f"{extension.vendor.lower()}/{slug}"

        if key.startswith(("t3", "typo3")):
            return f"{PLATFORM_VENDOR}/{slug}"

        if self.packagist is not None:
            remote = self.packagist.resolve(key, author_vendor(extension.author))
            if remote:
                return remote

        vendor = author_vendor(extension.author)
        if vendor:
            return f"{vendor}/{slug}"

        if self.community_fallback:
            return f"{COMMUNITY_VENDOR}/{slug}"

        return None

    def resolve(self, extensions: list[ExtensionFact]) -> Resolution:
        """Resolve extensions, deduplicated by package in first-seen order.

        The platform core package is never listed; it is the base of the
        command.
        """
        resolution = Resolution()
        seen = {CORE_PACKAGE}

        for extension in extensions:
            package = self.resolve_package(extension)
            if package is None:
                logger.debug(f"Cannot resolve a package for extension {extension.key!r}")
                resolution.unresolved.append(extension.key or extension.raw_identifier)
                continue
            if package in seen:
                continue
            seen.add(package)
            resolution.packages.append(package)

        return resolution

    def compose_command(self, version: str, extensions: list[ExtensionFact]) -> str:
        """Build the upgrade command for a target version.

        Args:
            version: Target version; only ``major.minor`` is used
            extensions: Installed extensions

        Returns:
            ``composer require typo3/cms-core:"^X.Y" pkg ... -W``
        """
        target = major_minor(version)
        cache_key = f"command:{target}:{_signature(extensions)}"

        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        resolution = self.resolve(extensions)
        parts = [f'composer require {CORE_PACKAGE}:"^{target}"', *resolution.packages, RESOLUTION_FLAG]
        command = " ".join(parts)

        self.cache.set(cache_key, command)
        return command


def _normalize(key: str) -> str:
    return key.strip().lower().replace("-", "_").replace(".", "_")


def _signature(extensions: list[ExtensionFact]) -> str:
    return ";".join(
        f"{e.raw_identifier}|{e.key}|{e.vendor or ''}|{e.package_name or ''}|{e.author or ''}|{int(e.bundled)}"
        for e in extensions
    )
