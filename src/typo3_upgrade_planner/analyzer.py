"""Orchestrates extraction, planning and step generation."""

import logging
import re
from typing import Any

from typo3_upgrade_planner.cache import TTLCache
from typo3_upgrade_planner.catalog import ReleaseCatalog, UpstreamReleaseSource
from typo3_upgrade_planner.compatibility import ConstraintCompatibilityChecker
from typo3_upgrade_planner.config import Config
from typo3_upgrade_planner.exceptions import PlanningError
from typo3_upgrade_planner.extraction import Extractor
from typo3_upgrade_planner.http_client import RetryConfig, SyncHTTPClient
from typo3_upgrade_planner.models import (
    InstallationMode,
    Release,
    SystemFacts,
    UpgradeMethod,
    UpgradePlan,
)
from typo3_upgrade_planner.packagist import PackagistClient
from typo3_upgrade_planner.planner import CommandComposer, StepGenerator, UpgradePlanner
from typo3_upgrade_planner.versions import is_valid, version_key

logger = logging.getLogger(__name__)

_PHP_RANGE = re.compile(r"(\d+\.\d+)\s*-\s*(\d+\.\d+)")
_PHP_MINIMUM = re.compile(r"(\d+\.\d+)\s*\+")


def runtime_supported(runtime_version: str | None, requirement: str) -> bool | None:
    """Check a PHP version against a requirement like ``8.1 - 8.3`` or ``8.3+``.

    Returns:
        True/False, or None when either side is unknown
    """
    if not is_valid(runtime_version) or not requirement:
        return None

    runtime = version_key(runtime_version)[:2]  # type: ignore[arg-type]
    match = _PHP_RANGE.search(requirement)
    if match:
        low, high = version_key(match.group(1))[:2], version_key(match.group(2))[:2]
        return low <= runtime <= high

    match = _PHP_MINIMUM.search(requirement)
    if match:
        return runtime >= version_key(match.group(1))[:2]
    return None


class UpgradeAnalyzer:
    """Main orchestrator: facts in, upgrade plan out."""

    def __init__(
        self,
        config: Config,
        offline: bool = False,
        catalog: ReleaseCatalog | None = None,
        http_client: SyncHTTPClient | None = None,
        extractor: Extractor | None = None,
    ) -> None:
        """Initialize analyzer.

        Args:
            config: Configuration
            offline: Never contact remote services
            catalog: Release catalog (built from config when omitted)
            http_client: HTTP client for catalog refresh and package lookups
            extractor: Fact extractor
        """
        self.config = config
        self.offline = offline
        self.http_client = http_client
        if self.http_client is None and not offline:
            self.http_client = SyncHTTPClient(
                timeout=config.http_timeout,
                retry_config=RetryConfig(
                    max_retries=config.max_retries,
                    base_delay=float(config.get("http.base_delay", 0.5)),
                ),
            )

        self.catalog = catalog or self._build_catalog()
        self.extractor = extractor or Extractor()
        self.planner = UpgradePlanner(self.catalog)
        self.compatibility = ConstraintCompatibilityChecker()

        packagist = None
        if self.http_client is not None and config.packagist_enabled:
            packagist = PackagistClient(
                self.http_client,
                cache=TTLCache(),
                base_url=str(config.get("packagist.base_url", "https://packagist.org")),
                ttl=config.packagist_ttl_seconds,
            )
        self.composer = CommandComposer(mappings=self.catalog.extension_mappings(), packagist=packagist)
        self.steps = StepGenerator(self.catalog, self.composer)

    def _build_catalog(self) -> ReleaseCatalog:
        source = None
        if self.http_client is not None:
            source = UpstreamReleaseSource(self.config.upstream_url, self.http_client)
        return ReleaseCatalog(source=source, include_dev=self.config.include_dev)

    def refresh_catalog(self) -> list[Release]:
        """Refresh the catalog if it is older than the configured TTL."""
        if self.offline:
            return self.catalog.get_all()
        return self.catalog.get_or_refresh(self.config.catalog_ttl_seconds)

    def analyze(self, source: Any) -> SystemFacts:
        """Extract system facts from an archive, directory or export."""
        facts = self.extractor.extract(source)
        logger.info(
            f"Detected TYPO3 {facts.platform_version or 'unknown'} "
            f"({facts.installation_mode.value}), {len(facts.extensions)} extensions"
        )
        return facts

    def suggest_target(self, facts: SystemFacts) -> Release | None:
        """Default upgrade target for an installation."""
        if not facts.platform_version:
            return None
        return self.catalog.suggest_target(facts.platform_version)

    def runtime_check(self, facts: SystemFacts, version: str) -> bool | None:
        """Check the installation's PHP version against a release's requirement."""
        release = self.catalog.get(version)
        if release is None:
            return None
        return runtime_supported(facts.runtime_version, release.php_requirement)

    def plan(
        self,
        from_version: str,
        to_version: str,
        facts: SystemFacts | None = None,
        allow_downgrade: bool | None = None,
        installation_mode: InstallationMode | None = None,
        method: UpgradeMethod | None = None,
    ) -> UpgradePlan:
        """Build a complete plan including steps for every hop.

        Args:
            from_version: Current version
            to_version: Target version
            facts: Analyzed installation (extensions, installation mode)
            allow_downgrade: Overrides ``planner.allow_downgrade``
            installation_mode: Overrides the detected/configured mode
            method: Overrides ``planner.upgrade_method``

        Returns:
            Upgrade plan

        Raises:
            PlanningError: On invalid planning inputs
        """
        if allow_downgrade is None:
            allow_downgrade = bool(self.config.get("planner.allow_downgrade", False))
        mode = installation_mode or self._configured_mode(facts)
        method = method or UpgradeMethod(self.config.get("planner.upgrade_method", "console"))

        hops = self.planner.plan(from_version, to_version, allow_downgrade=allow_downgrade)

        extensions = list(facts.extensions) if facts else []
        self.compatibility.apply(extensions, to_version)

        for hop in hops:
            hop.steps = self.steps.steps_for(hop, mode, extensions, method)

        resolution = self.composer.resolve(extensions)
        return UpgradePlan(
            from_version=from_version,
            to_version=to_version,
            installation_mode=mode,
            upgrade_method=method,
            hops=hops,
            extensions=extensions,
            unresolved_extensions=resolution.unresolved,
        )

    def plan_for(self, facts: SystemFacts, to_version: str | None = None, **kwargs: Any) -> UpgradePlan:
        """Plan from analyzed facts, defaulting the target to the suggested release.

        Raises:
            PlanningError: When the platform version is unknown or no target exists
        """
        if not facts.platform_version:
            raise PlanningError("Platform version could not be detected; pass it explicitly")

        if to_version is None:
            suggested = self.suggest_target(facts)
            if suggested is None:
                raise PlanningError(
                    f"No newer LTS release than {facts.platform_version} is known",
                    from_version=facts.platform_version,
                )
            to_version = suggested.major_minor

        return self.plan(facts.platform_version, to_version, facts=facts, **kwargs)

    def _configured_mode(self, facts: SystemFacts | None) -> InstallationMode:
        configured = self.config.get("planner.installation_mode")
        if configured:
            return InstallationMode(configured)
        if facts is not None:
            return facts.installation_mode
        return InstallationMode.PACKAGE_MANAGER

    def close(self) -> None:
        """Close the HTTP client."""
        if self.http_client is not None:
            self.http_client.close()
