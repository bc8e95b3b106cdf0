"""Upgrade path planning, step generation and command composition."""

from typo3_upgrade_planner.planner.commands import CommandComposer, Resolution
from typo3_upgrade_planner.planner.planner import UpgradePlanner
from typo3_upgrade_planner.planner.steps import StepGenerator

__all__ = [
    "CommandComposer",
    "Resolution",
    "StepGenerator",
    "UpgradePlanner",
]
