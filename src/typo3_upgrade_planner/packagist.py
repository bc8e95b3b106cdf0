"""Packagist client resolving extension keys to composer package names."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from typo3_upgrade_planner.cache import TTLCache
from typo3_upgrade_planner.http_client import SyncHTTPClient

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://packagist.org"
EXTENSION_PACKAGE_TYPE = "typo3-cms-extension"

SEARCH_QUERIES = [
    "{key} typo3",
    "typo3-cms-extension {key}",
    "typo3 extension {key}",
]


class PackagistClient:
    """Looks up composer package names on Packagist.

    Results (including misses) are memoized per extension key. Any remote
    failure resolves to None so callers fall back to heuristics.
    """

    def __init__(
        self,
        http_client: SyncHTTPClient,
        cache: TTLCache | None = None,
        base_url: str = DEFAULT_BASE_URL,
        ttl: float | None = 24 * 3600,
    ) -> None:
        """Initialize client.

        Args:
            http_client: HTTP client with bounded timeouts
            cache: Memo shared across lookups
            base_url: Packagist base URL
            ttl: Memo lifetime in seconds
        """
        self.http_client = http_client
        self.cache = cache or TTLCache()
        self.base_url = base_url.rstrip("/")
        self.ttl = ttl
        self.lookups = 0

    def resolve(self, key: str, vendor_hint: str | None = None) -> str | None:
        """Resolve an extension key to a package name.

        Args:
            key: Canonical extension key
            vendor_hint: Vendor tried first for a direct package lookup

        Returns:
            ``vendor/package`` or None
        """
        cache_key = f"packagist:{key}:{vendor_hint or ''}"
        if self.cache.contains(cache_key, self.ttl):
            return self.cache.get(cache_key, self.ttl) or None

        self.lookups += 1
        package = self._lookup(key, vendor_hint)
        # Misses are memoized as an empty string
        self.cache.set(cache_key, package or "")
        return package

    def _lookup(self, key: str, vendor_hint: str | None) -> str | None:
        slug = key.replace("_", "-")

        if vendor_hint:
            name = f"{vendor_hint.lower()}/{slug}"
            if self.package_exists(name):
                logger.debug(f"Resolved {key} to {name} by direct lookup")
                return name

        for template in SEARCH_QUERIES:
            results = self.search(template.format(key=key))
            match = self._best_match(results, key, slug)
            if match:
                logger.debug(f"Resolved {key} to {match} via search")
                return match

        logger.debug(f"No Packagist package found for {key}")
        return None

    def package_exists(self, name: str) -> bool:
        """Check whether a package exists.

        Args:
            name: ``vendor/package``
        """
        url = f"{self.base_url}/packages/{name}.json"
        try:
            data = self.http_client.get_json(url)
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Package lookup {name} failed: {e}")
            return False
        return isinstance(data, dict) and "package" in data

    def search(self, query: str) -> list[dict[str, Any]]:
        """Run a Packagist search.

        Args:
            query: Free-text query

        Returns:
            Result records; empty on any failure
        """
        url = f"{self.base_url}/search.json?q={quote(query)}"
        try:
            data = self.http_client.get_json(url)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Packagist search for {query!r} failed: {e}")
            return []

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []
        return [r for r in results if isinstance(r, dict) and isinstance(r.get("name"), str)]

    @staticmethod
    def _best_match(results: list[dict[str, Any]], key: str, slug: str) -> str | None:
        related = [r for r in results if _is_typo3_related(r)]
        exact = {key, slug, f"typo3-{slug}", f"typo3-{key}"}

        for result in related:
            package = result["name"].split("/", 1)[-1].lower()
            if package in exact:
                return result["name"].lower()
        return None


def _is_typo3_related(result: dict[str, Any]) -> bool:
    if result.get("type") == EXTENSION_PACKAGE_TYPE:
        return True
    text = f"{result.get('name', '')} {result.get('description', '')}".lower()
    return "typo3" in text
