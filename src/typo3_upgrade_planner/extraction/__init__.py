"""Project introspection: archives and export documents to SystemFacts."""

from typo3_upgrade_planner.extraction.archive import ArchiveExtractor
from typo3_upgrade_planner.extraction.base import (
    ArchiveReader,
    DirectoryArchiveReader,
    MappingArchiveReader,
    ZipArchiveReader,
)
from typo3_upgrade_planner.extraction.classifier import ExtensionClassifier, canonical_key
from typo3_upgrade_planner.extraction.document import DocumentExtractor, load_document
from typo3_upgrade_planner.extraction.extractor import Extractor, extract

__all__ = [
    "ArchiveExtractor",
    "ArchiveReader",
    "DirectoryArchiveReader",
    "DocumentExtractor",
    "ExtensionClassifier",
    "Extractor",
    "MappingArchiveReader",
    "ZipArchiveReader",
    "canonical_key",
    "extract",
    "load_document",
]
