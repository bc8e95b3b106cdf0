"""System facts from a project archive (composer-managed or manual installations)."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from typo3_upgrade_planner.estimates import BestEffortEstimator
from typo3_upgrade_planner.extraction.base import ArchiveReader
from typo3_upgrade_planner.extraction.classifier import (
    ClassificationContext,
    ExtensionClassifier,
    canonical_key,
    split_identifier,
)
from typo3_upgrade_planner.extraction.database import DatabaseExtractor
from typo3_upgrade_planner.extraction.metadata import (
    determine_extension_type,
    read_folder_metadata,
)
from typo3_upgrade_planner.models import (
    ExtensionFact,
    ExtensionType,
    InstallationMode,
    SystemFacts,
)
from typo3_upgrade_planner.versions import constraint_major_minor, strip_constraint

logger = logging.getLogger(__name__)

MANIFEST_NAME = "composer.json"

# Directories whose composer.json files describe packages, not the project
_PACKAGE_DIRS = ("vendor/", "typo3conf/ext/", "typo3/sysext/", "typo3/ext/", "packages/", "ext/")

CORE_PACKAGE = "typo3/cms-core"
EXTENSION_MANAGER_PACKAGES = {
    "helhum/typo3-console",
    "typo3/cms-composer-installers",
    "typo3/cms-cli",
}
_PLATFORM_REQUIREMENT = re.compile(r"^(?:php|hhvm|ext-.+|lib-.+|composer(?:-plugin|-runtime)?-api)$")

# Checked in order; the first file yielding a version wins
VERSION_FILES = [
    "typo3/sysext/core/Classes/Information/Typo3Version.php",
    "typo3_src/typo3/sysext/core/Classes/Information/Typo3Version.php",
    "typo3_src/typo3/sysext/core/Classes/Core/SystemEnvironmentBuilder.php",
    "vendor/typo3/cms-core/Classes/Information/Typo3Version.php",
]
_VERSION_PATTERNS = [
    re.compile(r"const\s+VERSION\s*=\s*'(\d+\.\d+\.\d+)'"),
    re.compile(r"TYPO3_version\s*=\s*'(\d+\.\d+\.\d+)'"),
    re.compile(r"define\(\s*'TYPO3_version'\s*,\s*'(\d+\.\d+\.\d+)'"),
]
_CONFIG_VERSION = re.compile(r"'version'\s*=>\s*'([^']+)'")

PACKAGE_STATES_FILES = [
    "typo3conf/PackageStates.php",
    "public/typo3conf/PackageStates.php",
    "var/PackageStates.php",
]
_PACKAGE_ENTRY = re.compile(
    r"'(?P<key>[A-Za-z0-9_.\-]+)'\s*=>\s*(?:array\s*\(|\[)(?P<body>[^\[\]()]*?'packagePath'[^\[\]()]*?)(?:\)|\])",
    re.DOTALL,
)
_PACKAGE_STATE = re.compile(r"'state'\s*=>\s*'([^']+)'")
_PACKAGE_PATH = re.compile(r"'packagePath'\s*=>\s*'([^']+)'")

# (pattern, bundled location); group 1 is the identifier
EXTENSION_FOLDER_PATTERNS: list[tuple[re.Pattern[str], bool]] = [
    (re.compile(r"^typo3conf/ext/([^/]+)/"), False),
    (re.compile(r"^typo3/ext/([^/]+)/"), False),
    (re.compile(r"^typo3/sysext/([^/]+)/"), True),
    (re.compile(r"^public/typo3conf/ext/([^/]+)/"), False),
    (re.compile(r"^public/typo3/ext/([^/]+)/"), False),
    (re.compile(r"^public/typo3/sysext/([^/]+)/"), True),
    (re.compile(r"^ext/([^/]+)/"), False),
    (re.compile(r"^vendor/([^/]+/[^/]+)/(?:Configuration|Classes|Resources)/"), False),
    (re.compile(r"^vendor/([^/]+/[^/-]+-ext-[^/]+)/"), False),
    (re.compile(r"^packages/[^/]+/([^/]+)/(?:Configuration|Classes|Resources)/"), False),
]

KNOWN_VENDORS = [
    "friendsoftypo3",
    "georgringer",
    "helhum",
    "b13",
    "in2code",
    "mask",
    "cobweb",
    "dmitryd",
    "lolli",
    "derhansen",
    "bk2k",
    "causal",
    "cpsit",
    "ehaerer",
    "extcode",
]

# Files that only a TYPO3 extension folder carries
_EXTENSION_MARKERS = ("ext_emconf.php", "ext_localconf.php", "ext_tables.php", "Configuration/TCA/", "Configuration/TypoScript/")

_KEY_PATHS = ["public/index.php", "index.php", "typo3/index.php", "typo3/sysext/", "typo3conf/", "public/typo3conf/"]


@dataclass
class PackageState:
    """One package entry of PackageStates.php."""

    key: str
    package_path: str | None
    active: bool


def parse_package_states(content: str) -> list[PackageState]:
    """Parse PackageStates.php in both array() and short array syntax.

    Entries without a ``state`` are active; newer files only list active
    packages.
    """
    states: list[PackageState] = []
    seen: set[str] = set()

    for match in _PACKAGE_ENTRY.finditer(content):
        key = match.group("key")
        if key in seen or key == "packages":
            continue
        seen.add(key)

        body = match.group("body")
        state = _PACKAGE_STATE.search(body)
        path = _PACKAGE_PATH.search(body)
        states.append(
            PackageState(
                key=key,
                package_path=path.group(1) if path else None,
                active=(state.group(1) == "active") if state else True,
            )
        )

    return states


def extension_folder_candidates(key: str, package_name: str | None = None) -> list[str]:
    """Folder paths where an extension may live, most specific first."""
    kebab = key.replace("_", "-")
    snake = key.replace("-", "_")
    variants = list(dict.fromkeys([key, kebab, snake]))

    candidates: list[str] = []
    if package_name and "/" in package_name:
        candidates.append(f"vendor/{package_name.lower()}/")

    for variant in variants:
        candidates.extend([
            f"typo3conf/ext/{variant}/",
            f"typo3/ext/{variant}/",
            f"typo3/sysext/{variant}/",
            f"public/typo3conf/ext/{variant}/",
            f"public/typo3/ext/{variant}/",
            f"public/typo3/sysext/{variant}/",
            f"ext/{variant}/",
        ])

    candidates.extend(f"vendor/typo3/cms-{variant}/" for variant in (key, kebab))

    for vendor in KNOWN_VENDORS:
        for variant in (key, kebab):
            candidates.append(f"vendor/{vendor}/{variant}/")
            candidates.append(f"vendor/{vendor}/typo3-{variant}/")
            candidates.append(f"vendor/{vendor}/ext-{variant}/")

    for variant in (key, kebab):
        candidates.append(f"packages/{variant}/")
        candidates.append(f"packages/extensions/{variant}/")

    return list(dict.fromkeys(candidates))


class _EntryIndex:
    """Entry list plus every folder prefix, for fast existence checks."""

    def __init__(self, entries: list[str]) -> None:
        self.entries = entries
        self.folders: set[str] = set()
        for entry in entries:
            index = entry.find("/")
            while index != -1:
                self.folders.add(entry[: index + 1])
                index = entry.find("/", index + 1)

    def has_folder(self, folder: str) -> bool:
        return folder in self.folders

    def any_startswith(self, prefix: str) -> bool:
        return prefix in self.folders or any(e.startswith(prefix) for e in self.entries)


class ArchiveExtractor:
    """Extracts SystemFacts from any ArchiveReader."""

    def __init__(self, classifier: ExtensionClassifier, estimator: BestEffortEstimator) -> None:
        self.classifier = classifier
        self.estimator = estimator
        self.database_extractor = DatabaseExtractor(estimator)

    def extract(self, reader: ArchiveReader) -> SystemFacts:
        """Analyze an archive.

        Args:
            reader: Archive reader

        Returns:
            System facts; missing optional data is left empty
        """
        index = _EntryIndex(reader.list_entries())
        facts = SystemFacts(source="archive", total_files=len(index.entries))

        manifest_path = self.find_manifest(reader)
        if manifest_path is not None:
            logger.info(f"Found dependency manifest {manifest_path}; composer-managed installation")
            facts.installation_mode = InstallationMode.PACKAGE_MANAGER
            facts.analyzed_paths.append(manifest_path)
            self._extract_package_manager(reader, index, manifest_path, facts)
        else:
            logger.info("No dependency manifest found; manual installation")
            facts.installation_mode = InstallationMode.MANUAL
            version, estimated = self.detect_platform_version(reader, index, facts.analyzed_paths)
            facts.platform_version = version
            facts.platform_version_estimated = estimated
            facts.extensions = self._extract_manual_extensions(reader, index, facts)

        facts.database = self.database_extractor.extract(
            reader,
            facts.platform_version,
            len(facts.extensions),
            facts.analyzed_paths,
        )

        for path in _KEY_PATHS:
            if path not in facts.analyzed_paths and (
                index.has_folder(path) or path in index.entries
            ):
                facts.analyzed_paths.append(path)

        logger.debug(
            f"Extracted platform {facts.platform_version}, "
            f"{len(facts.extensions)} extensions from {facts.total_files} files"
        )
        return facts

    @staticmethod
    def find_manifest(reader: ArchiveReader) -> str | None:
        """Locate the project composer.json by exact name, then by suffix.

        Manifests inside package folders (vendor, extension folders) are
        ignored; the shallowest remaining match wins.
        """
        entries = reader.list_entries()
        if MANIFEST_NAME in entries:
            return MANIFEST_NAME

        suffix = "/" + MANIFEST_NAME
        candidates = [
            entry for entry in entries
            if entry.endswith(suffix)
            and not any(entry.startswith(d) or f"/{d}" in entry for d in _PACKAGE_DIRS)
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda entry: (entry.count("/"), entry))

    def _extract_package_manager(
        self,
        reader: ArchiveReader,
        index: _EntryIndex,
        manifest_path: str,
        facts: SystemFacts,
    ) -> None:
        manifest = self._load_manifest(reader, manifest_path)
        require = _mapping(manifest.get("require"))
        require_dev = _mapping(manifest.get("require-dev"))
        config = _mapping(manifest.get("config"))

        facts.platform_version = constraint_major_minor(_str(require.get(CORE_PACKAGE)))
        if facts.platform_version is None:
            facts.platform_version = self._version_from_lock(reader, manifest_path, facts.analyzed_paths)
        if facts.platform_version is None:
            version, estimated = self.detect_platform_version(reader, index, facts.analyzed_paths)
            facts.platform_version = version
            facts.platform_version_estimated = estimated

        facts.runtime_version = strip_constraint(_str(require.get("php")))
        platform = _mapping(config.get("platform"))
        facts.runtime_platform_version = _str(platform.get("php"))
        facts.allowed_plugins = {
            str(name): bool(allowed)
            for name, allowed in _mapping(config.get("allow-plugins")).items()
        }
        facts.has_extension_manager = any(name in require for name in EXTENSION_MANAGER_PACKAGES)

        extensions: list[ExtensionFact] = []
        seen: set[str] = set()
        for packages, is_dev in ((require, False), (require_dev, True)):
            for name, constraint in packages.items():
                fact = self._classify_package(reader, index, str(name), _str(constraint), facts.platform_version)
                if fact is None or fact.key in seen:
                    continue
                fact.is_dev = is_dev
                fact.is_active = not is_dev
                seen.add(fact.key)
                extensions.append(fact)

        facts.extensions = extensions

    @staticmethod
    def _load_manifest(reader: ArchiveReader, manifest_path: str) -> dict[str, Any]:
        content = reader.read_text(manifest_path) or ""
        try:
            manifest = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unparseable manifest {manifest_path}: {e}")
            return {}
        return manifest if isinstance(manifest, dict) else {}

    def _classify_package(
        self,
        reader: ArchiveReader,
        index: _EntryIndex,
        name: str,
        constraint: str | None,
        platform_version: str | None,
    ) -> ExtensionFact | None:
        lowered = name.lower()
        if lowered == CORE_PACKAGE:
            return None
        if "/" not in lowered or _PLATFORM_REQUIREMENT.match(lowered):
            return None

        vendor, package = split_identifier(lowered)
        # Extension manager packages stay in the inventory
        if vendor == "typo3" and not package.startswith("cms-") and lowered not in EXTENSION_MANAGER_PACKAGES:
            # Tooling such as typo3/class-alias-loader
            return None

        key = canonical_key(lowered)
        folder = self.find_extension_folder(index, key, lowered)
        metadata = read_folder_metadata(reader, folder) if folder else None

        return self.classifier.classify(
            name,
            ClassificationContext(
                platform_version=platform_version,
                version=strip_constraint(constraint),
                metadata=metadata,
                folder=folder,
                extension_type=_structure_type(index, folder),
            ),
        )

    @staticmethod
    def _version_from_lock(reader: ArchiveReader, manifest_path: str, analyzed: list[str]) -> str | None:
        lock_path = manifest_path[: -len(MANIFEST_NAME)] + "composer.lock"
        content = reader.read_text(lock_path)
        if content is None:
            return None
        try:
            lock = json.loads(content)
        except json.JSONDecodeError as e:
            logger.debug(f"Ignoring unparseable {lock_path}: {e}")
            return None

        for package in _list(_mapping(lock).get("packages")):
            if isinstance(package, dict) and package.get("name") == CORE_PACKAGE:
                version = strip_constraint(_str(package.get("version")))
                if version:
                    analyzed.append(lock_path)
                    return version
        return None

    def detect_platform_version(
        self,
        reader: ArchiveReader,
        index: _EntryIndex,
        analyzed: list[str],
    ) -> tuple[str, bool]:
        """Find the platform version of an installation without manifest.

        Version files are tried in fixed priority order, then the system
        configuration, then a structural estimate.

        Returns:
            (version, estimated)
        """
        for candidate in VERSION_FILES:
            path = reader.find(candidate)
            if path is None:
                continue
            content = reader.read_text(path) or ""
            analyzed.append(path)
            for pattern in _VERSION_PATTERNS:
                match = pattern.search(content)
                if match:
                    logger.debug(f"Platform version {match.group(1)} from {path}")
                    return match.group(1), False

        config_path = reader.find("LocalConfiguration.php")
        if config_path is not None:
            analyzed.append(config_path)
            match = _CONFIG_VERSION.search(reader.read_text(config_path) or "")
            if match:
                return match.group(1), False

        has_public = index.any_startswith("public/")
        has_icons = index.any_startswith("typo3/sysext/core/Resources/Public/Icons/")
        version = self.estimator.platform_version(has_public, has_icons)
        logger.info(f"Platform version not found in any file; estimating {version} from folder layout")
        return version, True

    def _extract_manual_extensions(
        self,
        reader: ArchiveReader,
        index: _EntryIndex,
        facts: SystemFacts,
    ) -> list[ExtensionFact]:
        folders = self.scan_extension_folders(index)
        extensions: list[ExtensionFact] = []
        seen: set[str] = set()

        for state in self._read_package_states(reader, facts.analyzed_paths):
            key = canonical_key(state.key)
            if key == "core" or key in seen:
                continue
            folder = self._folder_from_package_path(index, state.package_path)
            if folder is None:
                folder = folders.get(key, (None, False))[0] or self.find_extension_folder(index, key)
            bundled = bool(state.package_path and "sysext/" in state.package_path)
            fact = self._classify_folder(reader, index, state.key, folder, bundled, facts.platform_version)
            fact.is_active = state.active
            seen.add(fact.key)
            extensions.append(fact)

        for identifier, (folder, bundled) in folders.items():
            key = canonical_key(identifier)
            if key == "core" or key in seen:
                continue
            fact = self._classify_folder(reader, index, identifier, folder, bundled, facts.platform_version)
            seen.add(fact.key)
            extensions.append(fact)

        for fact in extensions:
            if fact.path and fact.path not in facts.analyzed_paths:
                facts.analyzed_paths.append(fact.path)

        return extensions

    def _classify_folder(
        self,
        reader: ArchiveReader,
        index: _EntryIndex,
        identifier: str,
        folder: str | None,
        bundled: bool,
        platform_version: str | None,
    ) -> ExtensionFact:
        metadata = read_folder_metadata(reader, folder) if folder else None
        return self.classifier.classify(
            identifier,
            ClassificationContext(
                platform_version=platform_version,
                metadata=metadata,
                folder=folder,
                extension_type=_structure_type(index, folder),
                bundled_hint=bundled,
            ),
        )

    @staticmethod
    def _read_package_states(reader: ArchiveReader, analyzed: list[str]) -> list[PackageState]:
        for candidate in PACKAGE_STATES_FILES:
            content = reader.read_text(candidate)
            if content is None:
                continue
            analyzed.append(candidate)
            states = parse_package_states(content)
            logger.debug(f"{candidate} lists {len(states)} packages")
            return states
        return []

    @staticmethod
    def _folder_from_package_path(index: _EntryIndex, package_path: str | None) -> str | None:
        if not package_path:
            return None
        path = package_path.replace("EXT:", "").strip("/") + "/"
        for candidate in (path, f"public/{path}", f"typo3conf/ext/{path}"):
            if index.has_folder(candidate):
                return candidate
        return None

    @staticmethod
    def scan_extension_folders(index: _EntryIndex) -> dict[str, tuple[str, bool]]:
        """Enumerate extension folders from the conventional path templates.

        Returns:
            Identifier -> (folder, bundled location), in discovery order
        """
        folders: dict[str, tuple[str, bool]] = {}

        for entry in index.entries:
            for pattern, bundled in EXTENSION_FOLDER_PATTERNS:
                match = pattern.match(entry)
                if not match:
                    continue
                identifier = match.group(1)
                if identifier not in folders:
                    folder = entry[: match.end(1)] + "/"
                    if entry.startswith("vendor/") and not _looks_like_extension(index, folder):
                        break
                    folders[identifier] = (folder, bundled)
                break

        return folders

    @staticmethod
    def find_extension_folder(index: _EntryIndex, key: str, package_name: str | None = None) -> str | None:
        """Find the folder of an extension by key.

        Tries the fixed candidate templates (including the known vendor
        expansions), then any vendor folder whose name contains the key.
        """
        for candidate in extension_folder_candidates(key, package_name):
            if index.has_folder(candidate):
                return candidate

        kebab = key.replace("_", "-")
        pattern = re.compile(
            rf"^vendor/[^/]+/[^/]*(?:{re.escape(key)}|{re.escape(kebab)})[^/]*/(?:composer\.json|ext_emconf\.php|Classes/)"
        )
        for entry in index.entries:
            match = pattern.match(entry)
            if match:
                return "/".join(entry.split("/")[:3]) + "/"
        return None


def _looks_like_extension(index: _EntryIndex, folder: str) -> bool:
    return any(
        index.has_folder(folder + marker) or (folder + marker) in index.entries
        for marker in _EXTENSION_MARKERS
    )


def _structure_type(index: _EntryIndex, folder: str | None) -> ExtensionType:
    if folder is None:
        return ExtensionType.UNKNOWN
    return determine_extension_type(index.entries, folder)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _str(value: Any) -> str | None:
    return value if isinstance(value, str) else None
