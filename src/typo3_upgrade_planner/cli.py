"""CLI interface using Typer."""

import logging
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console

from typo3_upgrade_planner.analyzer import UpgradeAnalyzer
from typo3_upgrade_planner.config import Config, load_config
from typo3_upgrade_planner.exceptions import ExtractionError, PlanningError
from typo3_upgrade_planner.extraction.classifier import ClassificationContext, ExtensionClassifier
from typo3_upgrade_planner.models import InstallationMode, SystemFacts, UpgradeMethod, UpgradePlan
from typo3_upgrade_planner.reporters import JSONReporter, MarkdownReporter, TerminalReporter

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="t3-upgrade",
    help="TYPO3 upgrade path planner",
    add_completion=False,
)

console = Console()


class OutputFormat(str, Enum):
    """Output format options."""
    terminal = "terminal"
    json = "json"
    markdown = "markdown"


class ModeOption(str, Enum):
    """Installation mode options."""
    package_manager = "package-manager"
    manual = "manual"


class MethodOption(str, Enum):
    """Upgrade method options."""
    console = "console"
    admin_panel = "admin-panel"


def _setup(config_file: Path | None, verbose: bool, offline: bool) -> UpgradeAnalyzer:
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(config_file=config_file)
    analyzer = UpgradeAnalyzer(config, offline=offline)
    if config.refresh_on_start:
        analyzer.refresh_catalog()
    else:
        logger.debug("Catalog refresh disabled, using the bundled release table")
    return analyzer


def _color(config: Config, no_color: bool) -> bool:
    return not no_color and bool(config.get("output.color", True))


def _emit(
    output_format: OutputFormat,
    output: Path | None,
    color: bool,
    facts: SystemFacts | None = None,
    plan: UpgradePlan | None = None,
) -> None:
    if output_format == OutputFormat.terminal:
        reporter = TerminalReporter(color=color)
        if facts is not None:
            reporter.print_facts(facts)
        if plan is not None:
            reporter.print_plan(plan)

    elif output_format == OutputFormat.json:
        json_output = JSONReporter().generate_report(facts=facts, plan=plan, output_file=output)
        if output:
            console.print(f"[green]✅ Report saved to: {output}[/green]")
        else:
            typer.echo(json_output)

    elif output_format == OutputFormat.markdown:
        if plan is None:
            console.print("[red]Error: markdown output needs an upgrade plan[/red]")
            raise typer.Exit(1)
        reporter = MarkdownReporter()
        if output:
            reporter.generate_report(plan, output, facts=facts)
            console.print(f"[green]✅ Markdown guide saved to: {output}[/green]")
        else:
            typer.echo(reporter.render(plan, facts))


@app.command()
def analyze(
    source: Path = typer.Argument(..., help="Project archive (.zip), directory or export (.json/.yaml)"),
    to_version: str = typer.Option(None, "--to", "-t", help="Target version (default: next LTS)"),
    no_plan: bool = typer.Option(False, "--no-plan", help="Only show the analyzed system"),
    method: MethodOption = typer.Option(None, "--method", "-m", help="Upgrade method"),
    allow_downgrade: bool = typer.Option(False, "--allow-downgrade", help="Permit downgrade plans"),
    output: Path = typer.Option(None, "--output", "-o", help="Path to output file"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.terminal, "--format", "-f", help="Output format (terminal, json, markdown)"
    ),
    config_file: Path = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    offline: bool = typer.Option(False, "--offline", help="Do not contact remote services"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
) -> None:
    """Analyze a TYPO3 project and plan its upgrade."""
    analyzer = _setup(config_file, verbose, offline)

    try:
        facts = analyzer.analyze(source)

        plan = None
        if not no_plan:
            if facts.platform_version is None:
                console.print("[yellow]⚠️  TYPO3 version not detected; skipping the upgrade plan[/yellow]")
            else:
                plan = analyzer.plan_for(
                    facts,
                    to_version,
                    allow_downgrade=allow_downgrade or None,
                    method=UpgradeMethod(method.value) if method else None,
                )

        _emit(output_format, output, _color(analyzer.config, no_color), facts=facts, plan=plan)

        if output_format == OutputFormat.terminal and plan is not None and plan.hops:
            first_target = plan.hops[0].to_version
            if analyzer.runtime_check(facts, first_target) is False:
                console.print(
                    f"[yellow]⚠️  PHP {facts.runtime_version} does not meet the requirement "
                    f"of TYPO3 {first_target}[/yellow]"
                )

    except (ExtractionError, PlanningError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        analyzer.close()


@app.command()
def plan(
    from_version: str = typer.Argument(..., help="Current TYPO3 version"),
    to_version: str = typer.Argument(..., help="Target TYPO3 version"),
    source: Path = typer.Option(None, "--source", "-s", help="Project or export providing the extensions"),
    mode: ModeOption = typer.Option(None, "--mode", help="Installation mode"),
    method: MethodOption = typer.Option(None, "--method", "-m", help="Upgrade method"),
    allow_downgrade: bool = typer.Option(False, "--allow-downgrade", help="Permit downgrade plans"),
    output: Path = typer.Option(None, "--output", "-o", help="Path to output file"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.terminal, "--format", "-f", help="Output format (terminal, json, markdown)"
    ),
    config_file: Path = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    offline: bool = typer.Option(False, "--offline", help="Do not contact remote services"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
) -> None:
    """Plan an upgrade between two TYPO3 versions."""
    analyzer = _setup(config_file, verbose, offline)

    try:
        facts = analyzer.analyze(source) if source else None
        upgrade_plan = analyzer.plan(
            from_version,
            to_version,
            facts=facts,
            allow_downgrade=allow_downgrade or None,
            installation_mode=InstallationMode(mode.value) if mode else None,
            method=UpgradeMethod(method.value) if method else None,
        )
        _emit(output_format, output, _color(analyzer.config, no_color), plan=upgrade_plan)

    except (ExtractionError, PlanningError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        analyzer.close()


@app.command()
def releases(
    lts_only: bool = typer.Option(False, "--lts", help="Only list LTS releases"),
    json_output: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    offline: bool = typer.Option(False, "--offline", help="Use the bundled release table only"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
) -> None:
    """List known TYPO3 releases."""
    analyzer = _setup(config_file, verbose, offline)

    try:
        listing = analyzer.catalog.lts_releases() if lts_only else analyzer.catalog.get_all()
        if json_output:
            typer.echo(JSONReporter().generate_report(releases=listing))
        else:
            TerminalReporter(color=_color(analyzer.config, no_color)).print_releases(listing)
    finally:
        analyzer.close()


@app.command()
def command(
    to_version: str = typer.Argument(..., help="Target TYPO3 version"),
    source: Path = typer.Option(None, "--source", "-s", help="Project or export providing the extensions"),
    extensions: list[str] = typer.Option(
        None, "--ext", "-e", help="Extension key or vendor/package (can be repeated)"
    ),
    config_file: Path = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    offline: bool = typer.Option(False, "--offline", help="Do not contact remote services"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Print the composer command for a target version."""
    analyzer = _setup(config_file, verbose, offline)

    try:
        facts = analyzer.analyze(source) if source else SystemFacts()
        classifier = ExtensionClassifier()
        extra = [
            classifier.classify(identifier, ClassificationContext(platform_version=facts.platform_version))
            for identifier in extensions or []
        ]
        all_extensions = facts.extensions + extra

        resolution = analyzer.composer.resolve(all_extensions)
        typer.echo(analyzer.composer.compose_command(to_version, all_extensions))
        for key in resolution.unresolved:
            console.print(f"[yellow]⚠️  Could not resolve a package for {key}[/yellow]")

    except (ExtractionError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        analyzer.close()


@app.command()
def version() -> None:
    """Show version information."""

    from typo3_upgrade_planner import __version__

    console.print(f"[bold]TYPO3 Upgrade Planner[/bold] v{__version__}")
    console.print("\n[dim]Features:[/dim]")
    console.print("  • Project analysis from archives, directories and exports")
    console.print("  • LTS-aware upgrade path planning")
    console.print("  • Composer and manual installation steps")
    console.print("  • Terminal, JSON and Markdown output")


if __name__ == "__main__":
    app()
