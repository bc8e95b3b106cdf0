"""System facts from structured key/value documents (backend exports, JSON/YAML)."""

import json
import logging
from typing import Any

import yaml

from typo3_upgrade_planner.estimates import BestEffortEstimator
from typo3_upgrade_planner.exceptions import ExtractionError
from typo3_upgrade_planner.extraction.classifier import ClassificationContext, ExtensionClassifier
from typo3_upgrade_planner.extraction.rules import (
    DATABASE_FIELD_RULES,
    DATABASE_RULES,
    EXTENSION_KEY_RULES,
    EXTENSION_LIST_RULES,
    EXTENSION_VENDOR_RULES,
    EXTENSION_VERSION_RULES,
    PLATFORM_VERSION_RULES,
    RUNTIME_PLATFORM_VERSION_RULES,
    RUNTIME_VERSION_RULES,
    first_hit,
    string_rule,
)
from typo3_upgrade_planner.models import (
    DatabaseFacts,
    ExtensionFact,
    InstallationMode,
    SystemFacts,
)

logger = logging.getLogger(__name__)

# Versions an export may leave blank for well-known tooling packages
DEFAULT_PACKAGE_VERSIONS = {
    "helhum/typo3-console": "7.1.2",
}

_EXPORT_INFO_RULES = {
    "timestamp": [string_rule("ExportTimestamp"), string_rule("exportTimestamp")],
    "exported_by": [string_rule("ExportedBy"), string_rule("exportedBy")],
}


def load_document(content: str | bytes) -> dict[str, Any]:
    """Parse a JSON or YAML document.

    Args:
        content: Raw document text

    Returns:
        Top-level mapping

    Raises:
        ExtractionError: If the text is neither JSON nor YAML, or is not a mapping
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ExtractionError(f"Document is not valid UTF-8: {e}") from e

    try:
        document = json.loads(content)
    except json.JSONDecodeError:
        try:
            document = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ExtractionError(f"Document is neither JSON nor YAML: {e}") from e

    if not isinstance(document, dict):
        raise ExtractionError("Document does not contain a key/value mapping")

    return document


class DocumentExtractor:
    """Normalizes export documents into SystemFacts."""

    def __init__(self, classifier: ExtensionClassifier, estimator: BestEffortEstimator) -> None:
        self.classifier = classifier
        self.estimator = estimator

    def extract(self, document: dict[str, Any]) -> SystemFacts:
        """Recover system facts from a key/value document.

        Documents carrying the platform, runtime and extension triple are
        treated as exports. Anything else is passed through: whatever
        fields exist are returned and the rest stays empty.

        Args:
            document: Parsed document

        Returns:
            System facts
        """
        platform_version = first_hit(PLATFORM_VERSION_RULES, document)
        runtime_version = first_hit(RUNTIME_VERSION_RULES, document)
        raw_extensions = first_hit(EXTENSION_LIST_RULES, document)

        is_export = platform_version is not None and runtime_version is not None and raw_extensions is not None
        if is_export:
            logger.debug("Document carries platform, runtime and extensions; reading as export")
        else:
            logger.debug("Document is not a complete export; passing through available fields")

        facts = SystemFacts(
            platform_version=platform_version,
            runtime_version=runtime_version,
            runtime_platform_version=first_hit(RUNTIME_PLATFORM_VERSION_RULES, document),
            source="export" if is_export else "document",
        )
        facts.extensions = self._extensions(raw_extensions, platform_version)
        facts.installation_mode = self._installation_mode(document, facts.extensions)
        facts.database = self._database(first_hit(DATABASE_RULES, document), facts)

        for name, rules in _EXPORT_INFO_RULES.items():
            value = first_hit(rules, document)
            if value is not None:
                facts.export_info[name] = value

        return facts

    def _extensions(self, raw: Any, platform_version: str | None) -> list[ExtensionFact]:
        records: list[tuple[str, str | None, str | None]] = []

        if isinstance(raw, dict):
            # {"news": "11.0.0"} or {"news": {"version": ...}}
            for key, value in raw.items():
                if isinstance(value, dict):
                    records.append((
                        str(key),
                        first_hit(EXTENSION_VERSION_RULES, value),
                        first_hit(EXTENSION_VENDOR_RULES, value),
                    ))
                else:
                    records.append((str(key), str(value) if value not in (None, "") else None, None))
        elif isinstance(raw, list):
            for item in raw:
                if isinstance(item, str) and item.strip():
                    records.append((item.strip(), None, None))
                elif isinstance(item, dict):
                    key = first_hit(EXTENSION_KEY_RULES, item)
                    if key is None:
                        logger.debug(f"Skipping extension record without key: {item}")
                        continue
                    records.append((
                        key,
                        first_hit(EXTENSION_VERSION_RULES, item),
                        first_hit(EXTENSION_VENDOR_RULES, item),
                    ))
        elif raw is not None:
            logger.debug(f"Ignoring extension list of type {type(raw).__name__}")

        extensions: list[ExtensionFact] = []
        seen: set[str] = set()
        for identifier, version, vendor in records:
            version = version or DEFAULT_PACKAGE_VERSIONS.get(identifier.lower())
            fact = self.classifier.classify(
                identifier,
                ClassificationContext(platform_version=platform_version, vendor=vendor, version=version),
            )
            if fact.key in seen:
                continue
            seen.add(fact.key)
            extensions.append(fact)

        return extensions

    @staticmethod
    def _installation_mode(document: dict[str, Any], extensions: list[ExtensionFact]) -> InstallationMode:
        declared = first_hit([string_rule("installationMode"), string_rule("installation_mode")], document)
        if declared is not None:
            try:
                return InstallationMode(declared.lower())
            except ValueError:
                logger.debug(f"Unknown installation mode {declared!r}")

        third_party = [ext for ext in extensions if not ext.bundled]
        if third_party and all(ext.is_vendor_qualified for ext in third_party):
            return InstallationMode.PACKAGE_MANAGER
        return InstallationMode.MANUAL

    def _database(self, raw: Any, facts: SystemFacts) -> DatabaseFacts:
        database = DatabaseFacts()
        if isinstance(raw, dict):
            values = {name: first_hit(rules, raw) for name, rules in DATABASE_FIELD_RULES.items()}
            database.type = values["type"].lower() if values["type"] else None
            database.version = values["version"]
            database.host = values["host"]
            database.name = values["name"]
            database.port = _int_or_none(values["port"])
            database.table_count = _int_or_none(values["table_count"])

        if database.table_count is None:
            database.table_count = self.estimator.table_count(len(facts.extensions))
            database.table_count_estimated = True
        if database.version is None:
            database.version = self.estimator.database_version(facts.platform_version)
            database.version_estimated = True

        return database


def _int_or_none(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
