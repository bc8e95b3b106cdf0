"""Single entry point turning any supported input into SystemFacts."""

import logging
from pathlib import Path
from typing import Any

from typo3_upgrade_planner.estimates import BestEffortEstimator, HeuristicEstimator
from typo3_upgrade_planner.exceptions import ExtractionError
from typo3_upgrade_planner.extraction.archive import ArchiveExtractor
from typo3_upgrade_planner.extraction.base import (
    ArchiveReader,
    DirectoryArchiveReader,
    ZipArchiveReader,
)
from typo3_upgrade_planner.extraction.classifier import ExtensionClassifier
from typo3_upgrade_planner.extraction.document import DocumentExtractor, load_document
from typo3_upgrade_planner.models import SystemFacts

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIXES = {".json", ".yaml", ".yml"}


class Extractor:
    """Dispatches documents, archive readers, paths and raw bytes."""

    def __init__(
        self,
        classifier: ExtensionClassifier | None = None,
        estimator: BestEffortEstimator | None = None,
    ) -> None:
        classifier = classifier or ExtensionClassifier()
        estimator = estimator or HeuristicEstimator()
        self.documents = DocumentExtractor(classifier, estimator)
        self.archives = ArchiveExtractor(classifier, estimator)

    def extract(self, source: Any) -> SystemFacts:
        """Recover system facts from one input.

        Args:
            source: Parsed mapping, ArchiveReader, path to a zip/JSON/YAML
                file or project directory, or raw zip/document bytes

        Returns:
            System facts

        Raises:
            ExtractionError: If the input cannot be read at all
        """
        if isinstance(source, dict):
            return self.documents.extract(source)

        if isinstance(source, ArchiveReader):
            return self.archives.extract(source)

        if isinstance(source, (bytes, bytearray)):
            return self._extract_bytes(bytes(source))

        if isinstance(source, (str, Path)):
            return self._extract_path(Path(source))

        raise ExtractionError(f"Unsupported input type: {type(source).__name__}")

    def _extract_path(self, path: Path) -> SystemFacts:
        if path.is_dir():
            logger.info(f"Analyzing project directory {path}")
            return self.archives.extract(DirectoryArchiveReader(path))

        if not path.exists():
            raise ExtractionError(f"Input not found: {path}", source=str(path))

        if path.suffix.lower() in DOCUMENT_SUFFIXES:
            logger.info(f"Analyzing export document {path}")
            try:
                content = path.read_bytes()
            except OSError as e:
                raise ExtractionError(f"Cannot read {path}: {e}", source=str(path)) from e
            return self.documents.extract(load_document(content))

        logger.info(f"Analyzing archive {path}")
        with ZipArchiveReader(path) as reader:
            return self.archives.extract(reader)

    def _extract_bytes(self, content: bytes) -> SystemFacts:
        if content[:4] == b"PK\x03\x04":
            with ZipArchiveReader(content) as reader:
                return self.archives.extract(reader)
        return self.documents.extract(load_document(content))


def extract(source: Any) -> SystemFacts:
    """Extract system facts with the default classifier and estimator."""
    return Extractor().extract(source)
