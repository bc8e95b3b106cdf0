"""Remediation step generation for upgrade hops."""

import logging
from dataclasses import dataclass
from typing import Callable

from typo3_upgrade_planner.catalog import ReleaseCatalog
from typo3_upgrade_planner.catalog.baseline import default_php_requirement
from typo3_upgrade_planner.models import (
    ExtensionFact,
    Hop,
    InstallationMode,
    Release,
    RemediationStep,
    StepKind,
    UpgradeMethod,
)
from typo3_upgrade_planner.planner.commands import CommandComposer
from typo3_upgrade_planner.versions import major_minor, major_of

logger = logging.getLogger(__name__)

DOWNLOAD_URL = "https://get.typo3.org/{version}"

RESOLUTION_NOTE = (
    "Use the -W flag (equivalent to --with-all-dependencies) to properly resolve dependencies. "
    "Do not use --update-with-dependencies as it may cause dependency conflicts."
)
SCHEMA_NOTE = (
    "If you encounter a 503 error with 'Incorrect integer value: info for column level at row 1', "
    "run: ALTER TABLE sys_log MODIFY level int(1) unsigned DEFAULT '0' NOT NULL;"
)
SCHEMA_WARNING = "Some database columns may need manual fixing due to data type changes between versions."
DOWNGRADE_NOTE = "Downgrading is not officially supported. Restore from backup if anything fails."


@dataclass
class StepContext:
    """Everything a step template may depend on."""

    hop: Hop
    target: Release | None
    mode: InstallationMode
    method: UpgradeMethod
    extensions: list[ExtensionFact]
    composer: CommandComposer

    @property
    def console(self) -> bool:
        return self.method == UpgradeMethod.CONSOLE

    @property
    def package_manager(self) -> bool:
        return self.mode == InstallationMode.PACKAGE_MANAGER

    @property
    def cli(self) -> str:
        """Path of the TYPO3 console binary for the installation mode."""
        return "./vendor/bin/typo3" if self.package_manager else "typo3/sysext/core/bin/typo3"

    @property
    def to_version(self) -> str:
        return self.hop.to_version

    @property
    def major_delta(self) -> int:
        return self.hop.major_delta


@dataclass
class StepTemplate:
    """One step kind with its inclusion predicate and builder."""

    kind: StepKind
    include_if: Callable[[StepContext], bool]
    build: Callable[[StepContext], RemediationStep]


def _always(ctx: StepContext) -> bool:
    return True


def _crosses_major(ctx: StepContext) -> bool:
    return ctx.major_delta >= 1


def _needs_schema(ctx: StepContext) -> bool:
    return ctx.target is None or ctx.target.needs_schema_change


def _needs_wizard(ctx: StepContext) -> bool:
    return ctx.target is None or ctx.target.needs_migration_wizard


def php_requirement(ctx: StepContext) -> str:
    """PHP range required by the hop target."""
    if ctx.target is not None and ctx.target.php_requirement:
        return ctx.target.php_requirement
    return default_php_requirement(major_of(ctx.to_version))


def review_deprecations(ctx: StepContext) -> RemediationStep:
    if ctx.console:
        commands = ["grep -r 'deprecated' typo3temp/var/log/"]
        if ctx.major_delta >= 2:
            if ctx.package_manager:
                commands.append(f"composer prohibits typo3/cms-core:^{major_minor(ctx.to_version)}")
            else:
                commands.append("# Manual check required for extension compatibility")
    else:
        commands = [
            "# Check deprecation logs to identify potential issues",
            "1. Navigate to Admin Tools > Settings > Configure Installation-Wide Options",
            "2. Set [SYS][exceptionalErrors] to 12290 to log deprecation notices",
            "3. Review typo3temp/var/log/deprecation*.log for calls from your extensions",
            "4. Plan code changes for every deprecated API still in use",
            "5. Reset exceptionalErrors to your production setting afterwards",
        ]
    return RemediationStep(
        kind=StepKind.REVIEW_DEPRECATIONS,
        title="Review deprecation logs before upgrading",
        commands=commands,
        note=f"Deprecated APIs are removed in TYPO3 {major_of(ctx.to_version)}.",
    )


def update_runtime(ctx: StepContext) -> RemediationStep:
    required = php_requirement(ctx)
    if ctx.console:
        commands = ["php -v", "mysql --version"]
    else:
        commands = [
            "# Verify system requirements in the TYPO3 backend",
            "1. Navigate to Admin Tools > Environment > Environment Status",
            f"2. Ensure the PHP version meets the requirement of TYPO3 {ctx.to_version}",
            "3. Check the MySQL/MariaDB version and memory_limit/max_execution_time",
            "4. Resolve every warning before continuing",
        ]
    return RemediationStep(
        kind=StepKind.UPDATE_RUNTIME,
        title="Update PHP to a supported version",
        commands=commands,
        note=f"TYPO3 {ctx.to_version} requires PHP {required}.",
    )


def backup(ctx: StepContext) -> RemediationStep:
    files = (
        "tar -czf typo3_files_backup_$(date +%Y%m%d).tar.gz public/ config/ var/"
        if ctx.package_manager
        else "tar -czf typo3_files_backup_$(date +%Y%m%d).tar.gz ."
    )
    if ctx.console:
        commands = [
            "# Create database backup",
            "mysqldump -u [username] -p [database] > typo3_backup_$(date +%Y%m%d).sql",
            "# Create files backup",
            files,
        ]
    else:
        commands = [
            "# Create a full backup",
            "1. Export the database with your hosting panel or phpMyAdmin",
            "2. Download a copy of all project files",
            "3. Document the location of both backups and a rollback plan",
        ]
    title = "Backup before downgrading" if ctx.hop.is_downgrade else "Create a full backup"
    return RemediationStep(kind=StepKind.BACKUP, title=title, commands=commands)


def dependency_update(ctx: StepContext) -> RemediationStep:
    if ctx.package_manager:
        return _composer_update(ctx)
    return _source_update(ctx)


def _composer_update(ctx: StepContext) -> RemediationStep:
    command = ctx.composer.compose_command(ctx.to_version, ctx.extensions)
    verb = "Downgrade" if ctx.hop.is_downgrade else "Update"
    if ctx.console:
        commands = [command]
    else:
        commands = [
            "# This step needs shell access; it cannot be done in the backend",
            "1. Connect to your server via SSH",
            "2. Change to the project root directory",
            f"3. Run: {command}",
            "4. If you have no shell access, ask your hosting provider",
        ]
    return RemediationStep(
        kind=StepKind.DEPENDENCY_UPDATE,
        title=f"{verb} composer.json to TYPO3 {ctx.to_version}",
        commands=commands,
        note=RESOLUTION_NOTE,
        warning=None if ctx.hop.is_downgrade else "Using --update-with-dependencies instead of -W can lead to unresolvable conflicts.",
    )


def _source_update(ctx: StepContext) -> RemediationStep:
    version = ctx.to_version
    url = DOWNLOAD_URL.format(version=version)
    if ctx.console:
        commands = [
            f"wget {url} -O typo3_src-{version}.tar.gz",
            f"tar -xzf typo3_src-{version}.tar.gz",
            f"rm typo3_src-{version}.tar.gz",
            "mv typo3_src typo3_src_backup",
            f"ln -s typo3_src-{version} typo3_src",
            "ls -la typo3_src",
        ]
    else:
        commands = [
            f"1. Download the source package from {url}",
            f"2. Extract it and upload 'typo3_src-{version}' next to the current typo3_src",
            "3. Rename the current 'typo3_src' symlink to 'typo3_src_backup'",
            f"4. Create a symlink 'typo3_src' pointing to 'typo3_src-{version}'",
            "5. Keep the backup until the new version is verified",
        ]
    verb = "Switch back" if ctx.hop.is_downgrade else "Switch"
    return RemediationStep(
        kind=StepKind.DEPENDENCY_UPDATE,
        title=f"{verb} the source to TYPO3 {version}",
        commands=commands,
        note="Extensions are updated through the Extension Manager in this installation mode.",
    )


def schema_update(ctx: StepContext) -> RemediationStep:
    if ctx.console:
        commands = [f"{ctx.cli} database:updateschema"]
    else:
        commands = [
            "1. Navigate to Admin Tools > Maintenance > Analyze Database Structure",
            "2. Compare the current database with the specification",
            "3. Apply the safe operations",
            "4. Apply destructive operations only after reviewing them",
        ]
    return RemediationStep(
        kind=StepKind.SCHEMA_UPDATE,
        title="Update database schema",
        commands=commands,
        note=SCHEMA_NOTE,
        warning=SCHEMA_WARNING,
    )


def migration_wizard(ctx: StepContext) -> RemediationStep:
    if ctx.console:
        commands = [f"{ctx.cli} upgrade:run"]
    else:
        commands = [
            "1. Navigate to Admin Tools > Upgrade > Upgrade Wizard",
            "2. Read the description of each listed wizard",
            "3. Execute the wizards one at a time",
            "4. Repeat until no wizard is left",
        ]
    return RemediationStep(
        kind=StepKind.MIGRATION_WIZARD,
        title="Run the upgrade wizards",
        commands=commands,
    )


def cache_flush(ctx: StepContext) -> RemediationStep:
    if ctx.console:
        commands = [f"{ctx.cli} cache:flush"]
        if not ctx.package_manager:
            commands.append("rm -rf typo3temp/var/cache/*")
    else:
        commands = [
            "1. Click the flush cache icon in the top toolbar",
            "2. Select 'Flush all caches'",
            "3. If the backend is unavailable, delete typo3temp/var/cache/ via FTP",
        ]
    return RemediationStep(kind=StepKind.CACHE_FLUSH, title="Clear all caches", commands=commands)


UPGRADE_TEMPLATES: list[StepTemplate] = [
    StepTemplate(StepKind.REVIEW_DEPRECATIONS, _crosses_major, review_deprecations),
    StepTemplate(StepKind.UPDATE_RUNTIME, _crosses_major, update_runtime),
    StepTemplate(StepKind.BACKUP, _always, backup),
    StepTemplate(StepKind.DEPENDENCY_UPDATE, _always, dependency_update),
    StepTemplate(StepKind.SCHEMA_UPDATE, _needs_schema, schema_update),
    StepTemplate(StepKind.MIGRATION_WIZARD, _needs_wizard, migration_wizard),
    StepTemplate(StepKind.CACHE_FLUSH, _always, cache_flush),
]

DOWNGRADE_TEMPLATES: list[StepTemplate] = [
    StepTemplate(StepKind.BACKUP, _always, backup),
    StepTemplate(StepKind.DEPENDENCY_UPDATE, _always, dependency_update),
    StepTemplate(StepKind.SCHEMA_UPDATE, _always, schema_update),
    StepTemplate(StepKind.MIGRATION_WIZARD, _always, migration_wizard),
    StepTemplate(StepKind.CACHE_FLUSH, _always, cache_flush),
]


class StepGenerator:
    """Expands hops into ordered remediation steps."""

    def __init__(self, catalog: ReleaseCatalog, composer: CommandComposer) -> None:
        self.catalog = catalog
        self.composer = composer

    def steps_for(
        self,
        hop: Hop,
        installation_mode: InstallationMode,
        extensions: list[ExtensionFact] | None = None,
        method: UpgradeMethod = UpgradeMethod.CONSOLE,
    ) -> list[RemediationStep]:
        """Generate the steps of one hop.

        Args:
            hop: Hop to expand
            installation_mode: Selects composer or source-switch commands
            extensions: Installed extensions, used by the composed command
            method: Console commands or backend instructions

        Returns:
            Steps in dependency order
        """
        ctx = StepContext(
            hop=hop,
            target=self.catalog.get(hop.to_version),
            mode=installation_mode,
            method=method,
            extensions=list(extensions or []),
            composer=self.composer,
        )
        templates = DOWNGRADE_TEMPLATES if hop.is_downgrade else UPGRADE_TEMPLATES
        steps = [template.build(ctx) for template in templates if template.include_if(ctx)]

        if hop.is_downgrade:
            steps[0].note = DOWNGRADE_NOTE

        logger.debug(f"Generated {len(steps)} steps for hop {hop}")
        return steps
