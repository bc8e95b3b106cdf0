"""Archive readers: the only file access the extractor needs."""

from abc import ABC, abstractmethod
import io
import logging
import os
from pathlib import Path
import zipfile

from typo3_upgrade_planner.exceptions import ExtractionError

logger = logging.getLogger(__name__)

# Larger entries are not decoded; dumps beyond this are only partially useful anyway
MAX_TEXT_BYTES = 64 * 1024 * 1024

# Top-level folders of a TYPO3 project; never treated as a wrapping folder
PROJECT_FOLDERS = {
    "public", "typo3conf", "typo3", "typo3_src", "typo3temp", "fileadmin",
    "vendor", "config", "var", "packages", "ext",
}


class ArchiveReader(ABC):
    """Read-only view of a project file tree.

    Entry names use forward slashes and are relative to the project root.
    """

    name: str = "archive"

    @abstractmethod
    def list_entries(self) -> list[str]:
        """List file entries (directories excluded).

        Returns:
            Relative entry paths
        """
        pass

    @abstractmethod
    def read_text(self, path: str) -> str | None:
        """Read an entry as text.

        Args:
            path: Entry path as returned by ``list_entries``

        Returns:
            Decoded content, or None if the entry does not exist
        """
        pass

    def has_entry(self, path: str) -> bool:
        """Check whether an entry exists."""
        return path in set(self.list_entries())

    def has_prefix(self, prefix: str) -> bool:
        """Check whether any entry lives below ``prefix``."""
        return any(entry.startswith(prefix) for entry in self.list_entries())

    def find(self, name: str) -> str | None:
        """Find an entry by exact path first, then by path suffix.

        Suffix matches must align with a path separator; the shallowest
        match wins.

        Args:
            name: Relative path such as ``composer.json`` or ``typo3conf/PackageStates.php``

        Returns:
            Matching entry path or None
        """
        entries = self.list_entries()
        if name in entries:
            return name

        suffix = "/" + name.lstrip("/")
        matches = [entry for entry in entries if entry.endswith(suffix)]
        if not matches:
            return None
        return min(matches, key=lambda entry: (entry.count("/"), entry))


def _strip_common_root(entries: list[str]) -> tuple[list[str], str]:
    """Drop a single wrapping folder (``project/...``) shared by every entry."""
    if not entries:
        return entries, ""

    first = entries[0].split("/", 1)
    if len(first) < 2:
        return entries, ""

    if first[0] in PROJECT_FOLDERS:
        return entries, ""

    root = first[0] + "/"
    if all(entry.startswith(root) for entry in entries):
        return [entry[len(root):] for entry in entries], root
    return entries, ""


class ZipArchiveReader(ArchiveReader):
    """Reader over a zip archive given as a path or raw bytes."""

    def __init__(self, source: Path | str | bytes, strip_root: bool = True) -> None:
        """Open the archive.

        Args:
            source: Path to a zip file or its bytes
            strip_root: Remove a single wrapping top-level folder

        Raises:
            ExtractionError: If the input is not a readable zip archive
        """
        if isinstance(source, bytes):
            self.name = "upload.zip"
            handle: io.BytesIO | str = io.BytesIO(source)
        else:
            self.name = Path(source).name
            handle = str(source)

        try:
            self._zip = zipfile.ZipFile(handle)
        except (zipfile.BadZipFile, OSError) as e:
            raise ExtractionError(str(e), source=self.name) from e

        raw_entries = [info.filename for info in self._zip.infolist() if not info.is_dir()]
        if strip_root:
            entries, self._root = _strip_common_root(raw_entries)
        else:
            entries, self._root = raw_entries, ""
        self._entries = entries
        self._entry_set = set(entries)

    def list_entries(self) -> list[str]:
        return list(self._entries)

    def has_entry(self, path: str) -> bool:
        return path in self._entry_set

    def read_text(self, path: str) -> str | None:
        if path not in self._entry_set:
            return None

        info = self._zip.getinfo(self._root + path)
        if info.file_size > MAX_TEXT_BYTES:
            logger.debug(f"Skipping oversized entry {path} ({info.file_size} bytes)")
            return None

        try:
            data = self._zip.read(info)
        except (zipfile.BadZipFile, OSError, RuntimeError) as e:
            logger.warning(f"Could not read {path} from {self.name}: {e}")
            return None
        return data.decode("utf-8", errors="replace")

    def close(self) -> None:
        """Close the underlying zip file."""
        self._zip.close()

    def __enter__(self) -> "ZipArchiveReader":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class DirectoryArchiveReader(ArchiveReader):
    """Reader over an unpacked project directory."""

    # Folders that are never part of an analysis
    SKIP_DIRS = {".git", "node_modules", ".idea", ".ddev"}

    def __init__(self, root: Path) -> None:
        """Index the directory.

        Raises:
            ExtractionError: If ``root`` is not a directory
        """
        self.root = Path(root)
        self.name = self.root.name
        if not self.root.is_dir():
            raise ExtractionError("not a directory", source=str(self.root))

        entries: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if d not in self.SKIP_DIRS)
            for filename in sorted(filenames):
                full = Path(dirpath) / filename
                entries.append(full.relative_to(self.root).as_posix())
        self._entries = entries
        self._entry_set = set(entries)

    def list_entries(self) -> list[str]:
        return list(self._entries)

    def has_entry(self, path: str) -> bool:
        return path in self._entry_set

    def read_text(self, path: str) -> str | None:
        if path not in self._entry_set:
            return None
        file_path = self.root / path
        try:
            if file_path.stat().st_size > MAX_TEXT_BYTES:
                logger.debug(f"Skipping oversized file {path}")
                return None
            return file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Could not read {file_path}: {e}")
            return None


class MappingArchiveReader(ArchiveReader):
    """In-memory reader over a ``{path: text}`` mapping."""

    def __init__(self, files: dict[str, str], name: str = "memory") -> None:
        self._files = dict(files)
        self.name = name

    def list_entries(self) -> list[str]:
        return list(self._files)

    def has_entry(self, path: str) -> bool:
        return path in self._files

    def read_text(self, path: str) -> str | None:
        return self._files.get(path)
