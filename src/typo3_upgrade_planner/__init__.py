"""TYPO3 Upgrade Planner - project introspection and LTS-routed upgrade plans."""

__version__ = "0.3.0"
