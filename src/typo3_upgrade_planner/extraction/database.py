"""Database facts from configuration files and SQL dumps."""

import logging
import re

from typo3_upgrade_planner.estimates import BestEffortEstimator
from typo3_upgrade_planner.extraction.base import ArchiveReader
from typo3_upgrade_planner.models import DatabaseFacts

logger = logging.getLogger(__name__)

# Checked in order, first readable file wins
DATABASE_CONFIG_FILES = [
    "typo3conf/LocalConfiguration.php",
    "public/typo3conf/LocalConfiguration.php",
    "config/system/settings.php",
    ".env",
]

_PHP_PATTERNS = {
    "host": re.compile(r"'host'\s*=>\s*'([^']+)'"),
    "name": re.compile(r"'dbname'\s*=>\s*'([^']+)'|'database'\s*=>\s*'([^']+)'"),
    "type": re.compile(r"'driver'\s*=>\s*'([^']+)'"),
    "port": re.compile(r"'port'\s*=>\s*'?(\d+)'?"),
}

_ENV_PATTERNS = {
    "host": re.compile(r"^\s*(?:TYPO3_)?DB_HOST\s*=\s*['\"]?([^'\"\r\n]+)", re.MULTILINE),
    "name": re.compile(r"^\s*(?:TYPO3_)?DB_(?:NAME|DBNAME|DATABASE)\s*=\s*['\"]?([^'\"\r\n]+)", re.MULTILINE),
    "type": re.compile(r"^\s*(?:TYPO3_)?DB_DRIVER\s*=\s*['\"]?([^'\"\r\n]+)", re.MULTILINE),
    "port": re.compile(r"^\s*(?:TYPO3_)?DB_PORT\s*=\s*['\"]?(\d+)", re.MULTILINE),
}

_CREATE_TABLE = re.compile(r"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?[`\"']?([\w$]+)", re.IGNORECASE)
_MARIADB_VERSION = re.compile(r"(\d+\.\d+\.\d+)-MariaDB|MariaDB[^\d\n]*(\d+\.\d+\.\d+)", re.IGNORECASE)
_SERVER_VERSION = re.compile(r"Server version:?\s+(\d+\.\d+\.\d+)|Distrib\s+(\d+\.\d+\.\d+)", re.IGNORECASE)
_MYSQL_VERSION = re.compile(r"MySQL[^\d\n]*(\d+\.\d+\.\d+)", re.IGNORECASE)

# Dump locations ranked by how likely they hold the site database
_DUMP_PREFERENCE = [
    re.compile(r"typo3temp/dumps/.*\.sql$", re.IGNORECASE),
    re.compile(r"(?:^|/)(?:backup|dump|database)[^/]*\.sql$", re.IGNORECASE),
    re.compile(r"typo3conf/.*\.sql$", re.IGNORECASE),
    re.compile(r"\.sql$", re.IGNORECASE),
]

# Schema definitions shipped by extensions are not dumps
_EXTENSION_SCHEMA = re.compile(r"(?:^|/)ext_tables(?:_static\+adt)?\.sql$", re.IGNORECASE)

# Normalizes driver names like pdo_mysql / mysqli
_DRIVER_TYPES = {
    "mysqli": "mysql",
    "pdo_mysql": "mysql",
    "pdo_pgsql": "postgresql",
    "pdo_sqlite": "sqlite",
    "pdo_sqlsrv": "sqlsrv",
}


def _first_group(match: re.Match[str] | None) -> str | None:
    if match is None:
        return None
    for group in match.groups():
        if group:
            return group.strip()
    return None


def parse_database_config(path: str, content: str) -> dict[str, str]:
    """Pull driver/host/name/port from a PHP config or .env file.

    Args:
        path: Entry path, used to pick the syntax
        content: File content

    Returns:
        Found fields only
    """
    patterns = _ENV_PATTERNS if path.endswith(".env") else _PHP_PATTERNS
    found: dict[str, str] = {}
    for name, pattern in patterns.items():
        value = _first_group(pattern.search(content))
        if value:
            found[name] = value
    return found


def analyze_dump(content: str) -> tuple[int, str | None, str | None]:
    """Count tables and detect the server in an SQL dump.

    Returns:
        (table count, server type, server version)
    """
    tables = {match.group(1).lower() for match in _CREATE_TABLE.finditer(content)}

    header = content[:8192]
    mariadb = _MARIADB_VERSION.search(header)
    if mariadb:
        return len(tables), "mariadb", _first_group(mariadb)

    if "mysql" in header.lower():
        version = _first_group(_SERVER_VERSION.search(header)) or _first_group(
            _MYSQL_VERSION.search(header)
        )
        if version:
            return len(tables), "mysql", version

    return len(tables), None, None


class DatabaseExtractor:
    """Recovers DatabaseFacts, falling back to flagged estimates."""

    def __init__(self, estimator: BestEffortEstimator) -> None:
        self.estimator = estimator

    def extract(
        self,
        reader: ArchiveReader,
        platform_version: str | None,
        extension_count: int,
        analyzed_paths: list[str] | None = None,
    ) -> DatabaseFacts:
        """Build database facts for an archive.

        Args:
            reader: Archive reader
            platform_version: Detected platform version (drives estimates)
            extension_count: Number of extensions found (drives estimates)
            analyzed_paths: List that receives every file consulted

        Returns:
            Database facts; estimated values are flagged
        """
        analyzed = analyzed_paths if analyzed_paths is not None else []
        facts = DatabaseFacts()

        for candidate in DATABASE_CONFIG_FILES:
            path = reader.find(candidate)
            if path is None:
                continue
            content = reader.read_text(path)
            if content is None:
                continue

            analyzed.append(path)
            found = parse_database_config(path, content)
            facts.type = _DRIVER_TYPES.get(found.get("type", ""), found.get("type", "mysql"))
            facts.host = found.get("host", "localhost")
            facts.name = found.get("name")
            facts.port = int(found["port"]) if "port" in found else None
            facts.source_file = path
            logger.debug(f"Database settings read from {path}")
            break

        dump_path = self._find_dump(reader)
        if dump_path is not None:
            content = reader.read_text(dump_path)
            if content:
                table_count, server_type, server_version = analyze_dump(content)
                if table_count:
                    analyzed.append(dump_path)
                    facts.dump_file = dump_path
                    facts.table_count = table_count
                    if server_version:
                        facts.type = server_type
                        facts.version = server_version

        if facts.table_count is None:
            facts.table_count = self.estimator.table_count(extension_count)
            facts.table_count_estimated = True
        if facts.version is None:
            facts.version = self.estimator.database_version(platform_version)
            facts.version_estimated = True
        if facts.type is None:
            facts.type = "mysql"

        return facts

    @staticmethod
    def _find_dump(reader: ArchiveReader) -> str | None:
        dumps = [
            entry for entry in reader.list_entries()
            if entry.lower().endswith(".sql") and not _EXTENSION_SCHEMA.search(entry)
        ]
        for pattern in _DUMP_PREFERENCE:
            for entry in dumps:
                if pattern.search(entry):
                    return entry
        return None
