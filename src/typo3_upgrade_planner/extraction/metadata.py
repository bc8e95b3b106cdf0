"""Extension metadata parsing (ext_emconf.php, extension composer.json, folder structure)."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from typo3_upgrade_planner.extraction.base import ArchiveReader
from typo3_upgrade_planner.models import ExtensionType

logger = logging.getLogger(__name__)

_EMCONF_FIELDS = {
    "title": re.compile(r"'title'\s*=>\s*'([^']+)'"),
    "version": re.compile(r"'version'\s*=>\s*'([^']+)'"),
    "category": re.compile(r"'category'\s*=>\s*'([^']+)'"),
    "author": re.compile(r"'author'\s*=>\s*'([^']+)'"),
    "author_email": re.compile(r"'author_email'\s*=>\s*'([^']+)'"),
    "author_company": re.compile(r"'author_company'\s*=>\s*'([^']+)'"),
    "state": re.compile(r"'state'\s*=>\s*'([^']+)'"),
}

# 'constraints' => ['depends' => ['typo3' => '11.5.0-12.4.99', ...]] in array() or [] syntax
_EMCONF_TYPO3_CONSTRAINT = re.compile(
    r"'depends'\s*=>\s*(?:array\s*\(|\[)[^\])]*?'typo3'\s*=>\s*'([^']*)'",
    re.DOTALL,
)


@dataclass
class ExtensionMetadata:
    """What an extension folder says about itself."""

    title: str | None = None
    version: str | None = None
    typo3_constraint: str | None = None
    category: str | None = None
    author: str | None = None
    author_email: str | None = None
    author_company: str | None = None
    state: str | None = None
    package_name: str | None = None
    extension_key: str | None = None
    composer_type: str | None = None
    keywords: list[str] = field(default_factory=list)
    source_file: str | None = None

    def merge(self, other: "ExtensionMetadata") -> "ExtensionMetadata":
        """Fill missing fields from ``other``; values already set win."""
        for name in self.__dataclass_fields__:
            if getattr(self, name) in (None, []) and getattr(other, name) not in (None, []):
                setattr(self, name, getattr(other, name))
        return self


def parse_ext_emconf(content: str) -> ExtensionMetadata:
    """Parse the ``$EM_CONF`` array of an ext_emconf.php file.

    Args:
        content: PHP source

    Returns:
        Metadata with whatever fields matched
    """
    metadata = ExtensionMetadata()

    for name, pattern in _EMCONF_FIELDS.items():
        match = pattern.search(content)
        if match:
            setattr(metadata, name, match.group(1).strip())

    match = _EMCONF_TYPO3_CONSTRAINT.search(content)
    if match and match.group(1).strip():
        metadata.typo3_constraint = match.group(1).strip()

    return metadata


def parse_extension_composer(content: str) -> ExtensionMetadata:
    """Parse an extension's own composer.json.

    Invalid JSON yields empty metadata rather than an error.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.debug(f"Ignoring invalid extension composer.json: {e}")
        return ExtensionMetadata()

    if not isinstance(data, dict):
        return ExtensionMetadata()

    metadata = ExtensionMetadata(
        title=_str_or_none(data.get("description")),
        version=_str_or_none(data.get("version")),
        package_name=_str_or_none(data.get("name")),
        composer_type=_str_or_none(data.get("type")),
    )

    require = data.get("require")
    if isinstance(require, dict):
        metadata.typo3_constraint = _str_or_none(require.get("typo3/cms-core"))

    authors = data.get("authors")
    if isinstance(authors, list) and authors and isinstance(authors[0], dict):
        metadata.author = _str_or_none(authors[0].get("name"))
        metadata.author_email = _str_or_none(authors[0].get("email"))

    keywords = data.get("keywords")
    if isinstance(keywords, list):
        metadata.keywords = [str(k) for k in keywords]

    extra: Any = data.get("extra", {})
    if isinstance(extra, dict):
        typo3_extra = extra.get("typo3/cms", {})
        if isinstance(typo3_extra, dict):
            metadata.extension_key = _str_or_none(typo3_extra.get("extension-key"))

    return metadata


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def read_folder_metadata(reader: ArchiveReader, folder: str) -> ExtensionMetadata | None:
    """Read ext_emconf.php, then composer.json, from an extension folder.

    Args:
        reader: Archive reader
        folder: Folder path ending in ``/``

    Returns:
        Combined metadata, or None when the folder has neither file
    """
    metadata: ExtensionMetadata | None = None

    emconf_path = f"{folder}ext_emconf.php"
    emconf = reader.read_text(emconf_path)
    if emconf is not None:
        metadata = parse_ext_emconf(emconf)
        metadata.source_file = emconf_path

    composer_path = f"{folder}composer.json"
    composer = reader.read_text(composer_path)
    if composer is not None:
        from_composer = parse_extension_composer(composer)
        from_composer.source_file = composer_path
        metadata = metadata.merge(from_composer) if metadata else from_composer

    return metadata


def determine_extension_type(entries: list[str], folder: str) -> ExtensionType:
    """Classify an extension folder by its structure.

    Args:
        entries: All archive entries
        folder: Extension folder path ending in ``/``

    Returns:
        First matching structural type, in order extbase, modern,
        classic, frontend, customization, hook
    """
    files = [entry[len(folder):] for entry in entries if entry.startswith(folder)]

    def any_startswith(prefix: str) -> bool:
        return any(f.startswith(prefix) for f in files)

    has_controllers = any_startswith("Classes/Controller/") or any(
        f.startswith("Classes/") and f.endswith("Controller.php") for f in files
    )
    has_models = any_startswith("Classes/Domain/Model/")
    has_repositories = any_startswith("Classes/Domain/Repository/")
    has_classes = any_startswith("Classes/")
    has_tca = any_startswith("Configuration/TCA/") or "Configuration/TCA.php" in files
    has_tca_overrides = any_startswith("Configuration/TCA/Overrides/")
    has_ext_tables = "ext_tables.php" in files
    has_ext_localconf = "ext_localconf.php" in files
    has_typoscript = any_startswith("Configuration/TypoScript/") or any(
        f.endswith(".typoscript") or f.startswith("ext_typoscript_") for f in files
    )
    has_templates = any_startswith("Resources/Private/Templates/") or any(
        f.endswith(".html") for f in files
    )
    has_hooks = any_startswith("Classes/Hooks/") or any(
        (f.startswith("Classes/") and f.endswith("Hook.php")) or "xclass" in f.lower()
        for f in files
    )

    if has_controllers and has_models and has_repositories:
        return ExtensionType.EXTBASE
    elif has_classes and has_tca and not has_tca_overrides_only(files):
        return ExtensionType.MODERN
    elif has_ext_tables and has_ext_localconf:
        return ExtensionType.CLASSIC
    elif has_typoscript and has_templates:
        return ExtensionType.FRONTEND
    elif has_tca_overrides:
        return ExtensionType.CUSTOMIZATION
    elif has_hooks:
        return ExtensionType.HOOK
    return ExtensionType.UNKNOWN


def has_tca_overrides_only(files: list[str]) -> bool:
    """Check whether every TCA file is an override."""
    tca = [f for f in files if f.startswith("Configuration/TCA/")]
    return bool(tca) and all(f.startswith("Configuration/TCA/Overrides/") for f in tca)
