"""Ordered extraction rules for key/value documents.

Each fact is recovered by a list of rules tried in priority order. A rule
returns a value or None; the first non-None value wins.
"""

from typing import Any, Callable, Iterable

Rule = Callable[[dict[str, Any]], Any | None]


def lookup(document: dict[str, Any], dotted: str) -> Any | None:
    """Resolve a dotted path (``typo3.version``) inside nested mappings."""
    value: Any = document
    for part in dotted.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return None
    return value


def path_rule(dotted: str) -> Rule:
    """Rule reading a dotted path; empty strings and containers count as missing."""

    def rule(document: dict[str, Any]) -> Any | None:
        value = lookup(document, dotted)
        if value is None or value == "" or value == [] or value == {}:
            return None
        return value

    rule.__name__ = f"path:{dotted}"
    return rule


def first_hit(rules: Iterable[Rule], document: dict[str, Any]) -> Any | None:
    """Apply rules in order and return the first non-None result."""
    for rule in rules:
        value = rule(document)
        if value is not None:
            return value
    return None


def string_rule(dotted: str) -> Rule:
    """Like ``path_rule`` but only accepts scalars, returned as stripped strings."""

    def rule(document: dict[str, Any]) -> str | None:
        value = lookup(document, dotted)
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return None
        text = str(value).strip()
        return text or None

    rule.__name__ = f"string:{dotted}"
    return rule


PLATFORM_VERSION_RULES: list[Rule] = [
    string_rule("TYPO3Version"),
    string_rule("typo3.version"),
    string_rule("typo3Version"),
    string_rule("platform_version"),
]

RUNTIME_VERSION_RULES: list[Rule] = [
    string_rule("PHPVersion"),
    string_rule("typo3.phpVersion"),
    string_rule("system.php.version"),
    string_rule("phpVersion"),
    string_rule("runtime_version"),
]

RUNTIME_PLATFORM_VERSION_RULES: list[Rule] = [
    string_rule("system.php.platformVersion"),
]

EXTENSION_LIST_RULES: list[Rule] = [
    path_rule("InstalledExtensions"),
    path_rule("extensions"),
    path_rule("typo3.extensions"),
]

DATABASE_RULES: list[Rule] = [
    path_rule("DatabaseInfo"),
    path_rule("database"),
]

# Keys naming one extension inside an extension record
EXTENSION_KEY_RULES: list[Rule] = [
    string_rule("ExtensionKey"),
    string_rule("Identifier"),
    string_rule("identifier"),
    string_rule("package_name"),
    string_rule("name"),
    string_rule("key"),
]

EXTENSION_VERSION_RULES: list[Rule] = [
    string_rule("Version"),
    string_rule("version"),
]

EXTENSION_VENDOR_RULES: list[Rule] = [
    string_rule("Vendor"),
    string_rule("vendor"),
]

DATABASE_FIELD_RULES: dict[str, list[Rule]] = {
    "type": [string_rule("Driver"), string_rule("Type"), string_rule("type"), string_rule("driver")],
    "version": [string_rule("Version"), string_rule("version")],
    "host": [string_rule("Host"), string_rule("host")],
    "name": [string_rule("DatabaseName"), string_rule("name"), string_rule("database")],
    "port": [string_rule("Port"), string_rule("port")],
    "table_count": [string_rule("TableCount"), string_rule("tableCount"), string_rule("table_count")],
}
