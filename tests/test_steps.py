"""Tests for remediation step generation."""

import pytest

from typo3_upgrade_planner.catalog import ReleaseCatalog
from typo3_upgrade_planner.models import (
    ExtensionFact,
    InstallationMode,
    Release,
    ReleaseType,
    StepKind,
    UpgradeMethod,
)
from typo3_upgrade_planner.planner import CommandComposer, StepGenerator, UpgradePlanner
from typo3_upgrade_planner.planner.steps import DOWNGRADE_NOTE, RESOLUTION_NOTE, SCHEMA_NOTE


@pytest.fixture
def planner(catalog):
    return UpgradePlanner(catalog)


@pytest.fixture
def generator(catalog):
    """Step generator with an offline composer."""
    return StepGenerator(catalog, CommandComposer(mappings=catalog.extension_mappings()))


def _kinds(steps):
    return [step.kind for step in steps]


def _step(steps, kind):
    return next(step for step in steps if step.kind == kind)


class TestUpgradeSteps:
    """Test step selection for upgrade hops."""

    def test_major_hop_has_full_sequence(self, planner, generator):
        """Test a major hop into an LTS with schema and wizard changes."""
        hop = planner.plan("12.4", "13.4")[0]
        steps = generator.steps_for(hop, InstallationMode.PACKAGE_MANAGER)

        assert _kinds(steps) == [
            StepKind.REVIEW_DEPRECATIONS,
            StepKind.UPDATE_RUNTIME,
            StepKind.BACKUP,
            StepKind.DEPENDENCY_UPDATE,
            StepKind.SCHEMA_UPDATE,
            StepKind.MIGRATION_WIZARD,
            StepKind.CACHE_FLUSH,
        ]

    def test_same_major_without_changes(self, planner, generator):
        """Test a sprint hop without schema or wizard changes needs three steps."""
        hop = planner.plan("13.1", "13.3")[0]
        steps = generator.steps_for(hop, InstallationMode.PACKAGE_MANAGER)

        assert _kinds(steps) == [StepKind.BACKUP, StepKind.DEPENDENCY_UPDATE, StepKind.CACHE_FLUSH]

    def test_one_major_hop_without_changes(self):
        """Test a one-major hop without schema or wizard changes keeps the advisory steps."""
        catalog = ReleaseCatalog([
            Release(version="12.4", release_type=ReleaseType.LTS),
            Release(
                version="13.4",
                release_type=ReleaseType.LTS,
                needs_schema_change=False,
                needs_migration_wizard=False,
            ),
        ])
        generator = StepGenerator(catalog, CommandComposer())
        hop = UpgradePlanner(catalog).plan("12.4", "13.4")[0]

        steps = generator.steps_for(hop, InstallationMode.PACKAGE_MANAGER, [])

        assert _kinds(steps) == [
            StepKind.REVIEW_DEPRECATIONS,
            StepKind.UPDATE_RUNTIME,
            StepKind.BACKUP,
            StepKind.DEPENDENCY_UPDATE,
            StepKind.CACHE_FLUSH,
        ]

    def test_wizard_skipped_when_target_has_none(self, planner, generator):
        """Test 12.4 brings schema changes but no wizards."""
        hop = planner.plan("11.5", "12.4")[0]
        kinds = _kinds(generator.steps_for(hop, InstallationMode.PACKAGE_MANAGER))

        assert StepKind.SCHEMA_UPDATE in kinds
        assert StepKind.MIGRATION_WIZARD not in kinds

    def test_runtime_note_names_requirement(self, planner, generator):
        """Test the runtime step states the PHP range of the target."""
        hop = planner.plan("12.4", "13.4")[0]
        steps = generator.steps_for(hop, InstallationMode.PACKAGE_MANAGER)

        assert _step(steps, StepKind.UPDATE_RUNTIME).note == "TYPO3 13.4 requires PHP 8.2 - 8.4."

    def test_prohibits_check_for_wide_jumps(self, catalog, generator):
        """Test hops over two majors add a dependency check."""
        hop = UpgradePlanner._hop("10.4", "12.4")
        steps = generator.steps_for(hop, InstallationMode.PACKAGE_MANAGER)

        review = _step(steps, StepKind.REVIEW_DEPRECATIONS)
        assert "composer prohibits typo3/cms-core:^12.4" in review.commands

    def test_manual_check_for_wide_jumps(self, generator):
        """Test manual installations get a reminder instead of composer."""
        hop = UpgradePlanner._hop("10.4", "12.4")
        steps = generator.steps_for(hop, InstallationMode.MANUAL)

        review = _step(steps, StepKind.REVIEW_DEPRECATIONS)
        assert review.commands[-1].startswith("# Manual check required")


class TestPackageManagerCommands:
    """Test composer-mode commands."""

    def test_dependency_update_command(self, planner, generator):
        """Test the composed command appears verbatim."""
        hop = planner.plan("12.4", "13.4")[0]
        extensions = [ExtensionFact(key="news", raw_identifier="georgringer/news")]
        steps = generator.steps_for(hop, InstallationMode.PACKAGE_MANAGER, extensions)

        update = _step(steps, StepKind.DEPENDENCY_UPDATE)
        assert update.title == "Update composer.json to TYPO3 13.4"
        assert update.commands == ['composer require typo3/cms-core:"^13.4" georgringer/news -W']
        assert update.note == RESOLUTION_NOTE

    def test_console_binary(self, planner, generator):
        """Test composer installations use the vendor binary."""
        hop = planner.plan("12.4", "13.4")[0]
        steps = generator.steps_for(hop, InstallationMode.PACKAGE_MANAGER)

        assert _step(steps, StepKind.SCHEMA_UPDATE).commands == ["./vendor/bin/typo3 database:updateschema"]
        assert _step(steps, StepKind.MIGRATION_WIZARD).commands == ["./vendor/bin/typo3 upgrade:run"]
        assert _step(steps, StepKind.CACHE_FLUSH).commands == ["./vendor/bin/typo3 cache:flush"]

    def test_schema_step_notes(self, planner, generator):
        """Test the schema step carries its known pitfalls."""
        hop = planner.plan("12.4", "13.4")[0]
        schema = _step(generator.steps_for(hop, InstallationMode.PACKAGE_MANAGER), StepKind.SCHEMA_UPDATE)

        assert schema.note == SCHEMA_NOTE
        assert schema.warning is not None


class TestManualCommands:
    """Test source-switch commands for manual installations."""

    def test_source_switch(self, planner, generator):
        """Test the source package is downloaded and symlinked."""
        hop = planner.plan("12.4", "13.4")[0]
        steps = generator.steps_for(hop, InstallationMode.MANUAL)

        update = _step(steps, StepKind.DEPENDENCY_UPDATE)
        assert update.commands[0] == "wget https://get.typo3.org/13.4 -O typo3_src-13.4.tar.gz"
        assert "ln -s typo3_src-13.4 typo3_src" in update.commands

    def test_core_binary_and_cache_folder(self, planner, generator):
        """Test manual installations use the core binary and clear typo3temp."""
        hop = planner.plan("12.4", "13.4")[0]
        steps = generator.steps_for(hop, InstallationMode.MANUAL)

        assert _step(steps, StepKind.SCHEMA_UPDATE).commands == [
            "typo3/sysext/core/bin/typo3 database:updateschema"
        ]
        assert "rm -rf typo3temp/var/cache/*" in _step(steps, StepKind.CACHE_FLUSH).commands


class TestAdminPanelMethod:
    """Test backend instructions instead of shell commands."""

    def test_backend_instructions(self, planner, generator):
        """Test the schema step points at the Maintenance module."""
        hop = planner.plan("12.4", "13.4")[0]
        steps = generator.steps_for(
            hop, InstallationMode.PACKAGE_MANAGER, method=UpgradeMethod.ADMIN_PANEL
        )

        schema = _step(steps, StepKind.SCHEMA_UPDATE)
        assert schema.commands[0].startswith("1. Navigate to Admin Tools > Maintenance")
        wizard = _step(steps, StepKind.MIGRATION_WIZARD)
        assert "Upgrade Wizard" in wizard.commands[0]

    def test_composer_step_still_needs_shell(self, planner, generator):
        """Test the dependency update embeds the composer command."""
        hop = planner.plan("12.4", "13.4")[0]
        steps = generator.steps_for(
            hop, InstallationMode.PACKAGE_MANAGER, method=UpgradeMethod.ADMIN_PANEL
        )

        update = _step(steps, StepKind.DEPENDENCY_UPDATE)
        assert any('composer require typo3/cms-core:"^13.4"' in line for line in update.commands)

    def test_same_step_count_as_console(self, planner, generator):
        """Test the method changes wording, not the step selection."""
        hop = planner.plan("12.4", "13.4")[0]
        console = generator.steps_for(hop, InstallationMode.MANUAL)
        backend = generator.steps_for(hop, InstallationMode.MANUAL, method=UpgradeMethod.ADMIN_PANEL)

        assert _kinds(console) == _kinds(backend)


class TestDowngradeSteps:
    """Test downgrade hops."""

    def test_downgrade_template(self, planner, generator):
        """Test downgrades always back up, switch, migrate and flush."""
        hop = planner.plan("12.4", "11.5", allow_downgrade=True)[0]
        steps = generator.steps_for(hop, InstallationMode.PACKAGE_MANAGER)

        assert _kinds(steps) == [
            StepKind.BACKUP,
            StepKind.DEPENDENCY_UPDATE,
            StepKind.SCHEMA_UPDATE,
            StepKind.MIGRATION_WIZARD,
            StepKind.CACHE_FLUSH,
        ]
        assert steps[0].title == "Backup before downgrading"
        assert steps[0].note == DOWNGRADE_NOTE
        assert steps[1].title == "Downgrade composer.json to TYPO3 11.5"
