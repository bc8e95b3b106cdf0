"""Terminal reporter using Rich library."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from typo3_upgrade_planner.models import (
    Complexity,
    Release,
    SupportStatus,
    SystemFacts,
    UpgradePlan,
)


class TerminalReporter:
    """Generates terminal output using Rich."""

    def __init__(self, color: bool = True, console: Console | None = None) -> None:
        """Initialize terminal reporter.

        Args:
            color: If True, use colored output
            console: Console to print to (defaults to stdout)
        """
        self.console = console or Console(color_system="auto" if color else None)

    def print_facts(self, facts: SystemFacts) -> None:
        """Print the analyzed installation."""
        db = facts.database
        est = " [dim](estimated)[/dim]"

        summary = (
            f"TYPO3: [bold]{facts.platform_version or 'unknown'}[/bold]"
            f"{est if facts.platform_version_estimated else ''}\n"
            f"PHP: {facts.runtime_version or 'unknown'}\n"
            f"Installation: {facts.installation_mode.value}\n"
            f"Database: {db.type or 'unknown'} {db.version or ''}{est if db.version_estimated else ''}\n"
            f"Tables: {db.table_count if db.table_count is not None else 'unknown'}"
            f"{est if db.table_count_estimated else ''}"
        )
        self.console.print(Panel(summary, title=f"🔍 System ({facts.source})", border_style="cyan"))

        if facts.extensions:
            self.print_extensions(facts)

    def print_extensions(self, facts: SystemFacts) -> None:
        """Print the extension inventory."""
        table = Table(
            title="🧩 Extensions",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Key", style="bold")
        table.add_column("Version", justify="center")
        table.add_column("Vendor")
        table.add_column("Bundled", justify="center")
        table.add_column("Compatible", justify="center")
        table.add_column("Type")

        for ext in sorted(facts.extensions, key=lambda e: (e.bundled, e.key)):
            table.add_row(
                ext.key,
                ext.version,
                ext.vendor or "-",
                "✓" if ext.bundled else "",
                self._compatibility_mark(ext.compatible),
                ext.extension_type.value,
            )

        self.console.print(table)

    def print_plan(self, plan: UpgradePlan, show_commands: bool = True) -> None:
        """Print an upgrade plan.

        Args:
            plan: Upgrade plan
            show_commands: Print the commands of every step
        """
        title = f"🚀 Upgrade Path: {' → '.join(plan.waypoints)}"
        self.console.print(f"\n[bold]{title}[/bold]")

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right")
        table.add_column("From", justify="center")
        table.add_column("To", justify="center")
        table.add_column("Complexity", justify="center")
        table.add_column("Breaking", justify="center")
        table.add_column("Steps", justify="right")

        for index, hop in enumerate(plan.hops, start=1):
            color = self._get_complexity_color(hop.complexity)
            table.add_row(
                str(index),
                hop.from_version,
                hop.to_version,
                f"[{color}]{hop.complexity.value}[/{color}]",
                "⚠️" if hop.breaking else "",
                str(len(hop.steps)),
            )
        self.console.print(table)

        for index, hop in enumerate(plan.hops, start=1):
            self.console.print(f"\n[bold]Step {index}: {hop}[/bold]")

            for warning in hop.warnings:
                self.console.print(f"  ⚠️  {warning}", style="yellow")

            for number, step in enumerate(hop.steps, start=1):
                self.console.print(f"  {index}.{number} {step.title}", style="bold")
                if show_commands:
                    for command in step.commands:
                        self.console.print(f"      {command}", style="green", markup=False, highlight=False)
                if step.note:
                    self.console.print(f"      {step.note}", style="dim", markup=False)
                if step.warning:
                    self.console.print(f"      {step.warning}", style="yellow", markup=False)

            if hop.publish_note:
                self.console.print(f"  💡 {hop.publish_note}", style="cyan")

        self.print_statistics(plan)

    def print_statistics(self, plan: UpgradePlan) -> None:
        """Print plan statistics."""
        stats = Text()
        stats.append("📊 Summary: ", style="bold")
        stats.append(f"{len(plan.hops)} hop(s) | {plan.total_steps} steps")

        incompatible = [e for e in plan.extensions if e.compatible is False]
        if incompatible:
            stats.append(f" | ❌ {len(incompatible)} incompatible extension(s)", style="bold red")
        if plan.unresolved_extensions:
            stats.append(f" | ❔ {len(plan.unresolved_extensions)} unresolved", style="bold yellow")
        if plan.is_downgrade:
            stats.append(" | downgrade", style="bold red")

        self.console.print(Panel(stats, border_style="blue"))

    def print_releases(self, releases: list[Release]) -> None:
        """Print the release catalog."""
        table = Table(
            title="📦 TYPO3 Releases",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Version", style="bold")
        table.add_column("Type", justify="center")
        table.add_column("Released")
        table.add_column("Support", justify="center")
        table.add_column("PHP")
        table.add_column("Schema", justify="center")
        table.add_column("Wizard", justify="center")

        for release in reversed(releases):
            status = release.support_status()
            color = self._get_status_color(status)
            table.add_row(
                release.version,
                release.release_type.value.upper(),
                release.release_date or "-",
                f"[{color}]{status.value}[/{color}]",
                release.php_requirement or "-",
                "✓" if release.needs_schema_change else "",
                "✓" if release.needs_migration_wizard else "",
            )

        self.console.print(table)

    @staticmethod
    def _compatibility_mark(compatible: bool | None) -> str:
        if compatible is None:
            return "[dim]?[/dim]"
        return "[green]✓[/green]" if compatible else "[red]✗[/red]"

    @staticmethod
    def _get_complexity_color(complexity: Complexity) -> str:
        """Get color for complexity tier.

        Args:
            complexity: Complexity tier

        Returns:
            Color name
        """
        colors = {
            Complexity.VERY_HIGH: "red",
            Complexity.HIGH: "yellow",
            Complexity.MEDIUM: "blue",
            Complexity.LOW: "green",
        }

        return colors.get(complexity, "white")

    @staticmethod
    def _get_status_color(status: SupportStatus) -> str:
        colors = {
            SupportStatus.ACTIVE: "green",
            SupportStatus.SECURITY: "yellow",
            SupportStatus.EOL: "red",
        }
        return colors.get(status, "white")
