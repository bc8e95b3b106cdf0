"""Reporters package."""

from typo3_upgrade_planner.reporters.json_formats import JSONReporter
from typo3_upgrade_planner.reporters.markdown import MarkdownReporter
from typo3_upgrade_planner.reporters.terminal import TerminalReporter

__all__ = [
    "TerminalReporter",
    "MarkdownReporter",
    "JSONReporter",
]
