"""Core data models for the TYPO3 Upgrade Planner."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from typo3_upgrade_planner.versions import major_minor, version_key


class ReleaseType(Enum):
    """Release channel of a TYPO3 version line."""

    LTS = "lts"
    STS = "sts"
    REGULAR = "regular"
    DEV = "dev"


class InstallationMode(Enum):
    """How the installation is managed."""

    PACKAGE_MANAGER = "package-manager"
    MANUAL = "manual"


class UpgradeMethod(Enum):
    """How the operator runs the upgrade tasks."""

    CONSOLE = "console"
    ADMIN_PANEL = "admin-panel"


class Complexity(Enum):
    """Effort tier of a single upgrade hop."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    VERY_HIGH = "Very High"

    @staticmethod
    def from_major_delta(delta: int) -> "Complexity":
        """Determine complexity from the number of majors crossed."""
        if delta >= 3:
            return Complexity.VERY_HIGH
        elif delta == 2:
            return Complexity.HIGH
        elif delta == 1:
            return Complexity.MEDIUM
        else:
            return Complexity.LOW


class ExtensionType(Enum):
    """Structural flavour of an extension folder."""

    EXTBASE = "extbase"
    MODERN = "modern"
    CLASSIC = "classic"
    FRONTEND = "frontend"
    CUSTOMIZATION = "customization"
    HOOK = "hook"
    UNKNOWN = "unknown"


class StepKind(Enum):
    """Stable identifier of a remediation step."""

    REVIEW_DEPRECATIONS = "review_deprecations"
    UPDATE_RUNTIME = "update_runtime"
    BACKUP = "backup"
    DEPENDENCY_UPDATE = "dependency_update"
    SCHEMA_UPDATE = "schema_update"
    MIGRATION_WIZARD = "migration_wizard"
    CACHE_FLUSH = "cache_flush"


class SupportStatus(Enum):
    """Maintenance state of a release on a given day."""

    ACTIVE = "active"
    SECURITY = "security"
    EOL = "eol"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Release:
    """A canonical release line in the catalog."""

    version: str
    release_type: ReleaseType = ReleaseType.REGULAR
    release_date: str | None = None
    active_support_until: str | None = None
    security_support_until: str | None = None
    php_requirement: str = ""
    database_requirement: str = ""
    composer_requirement: str = "1.5+"
    needs_schema_change: bool = True
    needs_migration_wizard: bool = True

    @property
    def sort_key(self) -> tuple[int, int, int]:
        """Numeric ordering key."""
        return version_key(self.version)

    @property
    def major(self) -> int:
        return self.sort_key[0]

    @property
    def minor(self) -> int:
        return self.sort_key[1]

    @property
    def patch(self) -> int:
        return self.sort_key[2]

    @property
    def major_minor(self) -> str:
        return major_minor(self.version)

    @property
    def is_lts(self) -> bool:
        return self.release_type == ReleaseType.LTS

    def support_status(self, today: date | None = None) -> SupportStatus:
        """Maintenance state of this release.

        Args:
            today: Reference day (defaults to the current date)

        Returns:
            Support status derived from the support window dates
        """
        today = today or date.today()
        active = _parse_date(self.active_support_until)
        security = _parse_date(self.security_support_until)

        if active is None and security is None:
            return SupportStatus.UNKNOWN
        if active is not None and today <= active:
            return SupportStatus.ACTIVE
        if security is not None and today <= security:
            return SupportStatus.SECURITY
        return SupportStatus.EOL


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


@dataclass
class ExtensionFact:
    """An installed extension as recovered from a project."""

    key: str
    raw_identifier: str
    version: str = "1.0.0"
    vendor: str | None = None
    bundled: bool = False
    compatible: bool | None = None
    alternatives: list[str] = field(default_factory=list)
    title: str | None = None
    author: str | None = None
    package_name: str | None = None
    typo3_constraint: str | None = None
    extension_type: ExtensionType = ExtensionType.UNKNOWN
    category: str | None = None
    state: str | None = None
    path: str | None = None
    is_dev: bool = False
    is_active: bool = True

    @property
    def is_vendor_qualified(self) -> bool:
        """Check if the raw identifier carries a vendor segment."""
        return "/" in self.raw_identifier

    def __str__(self) -> str:
        """String representation."""
        return f"{self.key}@{self.version}"


@dataclass
class DatabaseFacts:
    """Database details of an installation.

    ``version_estimated`` and ``table_count_estimated`` are set whenever the
    corresponding value is a heuristic guess rather than read from a dump.
    """

    type: str | None = None
    version: str | None = None
    host: str | None = None
    name: str | None = None
    port: int | None = None
    table_count: int | None = None
    version_estimated: bool = False
    table_count_estimated: bool = False
    source_file: str | None = None
    dump_file: str | None = None

    @property
    def is_estimated(self) -> bool:
        return self.version_estimated or self.table_count_estimated


@dataclass
class SystemFacts:
    """Normalized description of an analyzed installation."""

    platform_version: str | None = None
    runtime_version: str | None = None
    installation_mode: InstallationMode = InstallationMode.MANUAL
    extensions: list[ExtensionFact] = field(default_factory=list)
    database: DatabaseFacts = field(default_factory=DatabaseFacts)
    platform_version_estimated: bool = False
    runtime_platform_version: str | None = None
    has_extension_manager: bool = False
    allowed_plugins: dict[str, bool] = field(default_factory=dict)
    export_info: dict[str, str] = field(default_factory=dict)
    source: str = "archive"
    analyzed_paths: list[str] = field(default_factory=list)
    total_files: int = 0

    @property
    def bundled_extensions(self) -> list[ExtensionFact]:
        return [ext for ext in self.extensions if ext.bundled]

    @property
    def third_party_extensions(self) -> list[ExtensionFact]:
        return [ext for ext in self.extensions if not ext.bundled]

    def find_extension(self, key: str) -> ExtensionFact | None:
        """Look up an extension by canonical key."""
        for ext in self.extensions:
            if ext.key == key:
                return ext
        return None


@dataclass
class RemediationStep:
    """One action inside an upgrade hop."""

    kind: StepKind
    title: str
    commands: list[str] = field(default_factory=list)
    note: str | None = None
    warning: str | None = None


@dataclass
class Hop:
    """One version-to-version leg of an upgrade plan."""

    from_version: str
    to_version: str
    complexity: Complexity
    breaking: bool
    is_downgrade: bool = False
    steps: list[RemediationStep] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    publish_note: str | None = None

    @property
    def major_delta(self) -> int:
        """Signed number of majors crossed by this hop."""
        return version_key(self.to_version)[0] - version_key(self.from_version)[0]

    def __str__(self) -> str:
        """String representation."""
        return f"{self.from_version} → {self.to_version}"


@dataclass
class UpgradePlan:
    """Complete plan from the current release to the target."""

    from_version: str
    to_version: str
    installation_mode: InstallationMode
    upgrade_method: UpgradeMethod
    hops: list[Hop] = field(default_factory=list)
    extensions: list[ExtensionFact] = field(default_factory=list)
    unresolved_extensions: list[str] = field(default_factory=list)

    @property
    def is_downgrade(self) -> bool:
        return any(hop.is_downgrade for hop in self.hops)

    @property
    def total_steps(self) -> int:
        return sum(len(hop.steps) for hop in self.hops)

    @property
    def waypoints(self) -> list[str]:
        """Every version visited, starting with the source."""
        if not self.hops:
            return [self.from_version]
        return [self.hops[0].from_version] + [hop.to_version for hop in self.hops]
