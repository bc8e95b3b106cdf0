"""Markdown upgrade guide generator."""

from pathlib import Path

from typo3_upgrade_planner.models import Complexity, SystemFacts, UpgradePlan


class MarkdownReporter:
    """Generates a printable Markdown upgrade guide."""

    def generate_report(
        self,
        plan: UpgradePlan,
        output_file: Path,
        facts: SystemFacts | None = None,
    ) -> None:
        """Generate the upgrade guide.

        Args:
            plan: Upgrade plan
            output_file: Path to output file
            facts: Analyzed installation, adds a system section when given
        """
        output_file.write_text(self.render(plan, facts), encoding="utf-8")

    def render(self, plan: UpgradePlan, facts: SystemFacts | None = None) -> str:
        """Render the guide as a string."""
        lines: list[str] = []

        lines.append(f"# TYPO3 Upgrade Guide: {plan.from_version} → {plan.to_version}\n")
        lines.append(f"**Installation:** {plan.installation_mode.value}  ")
        lines.append(f"**Method:** {plan.upgrade_method.value}  ")
        lines.append(f"**Path:** {' → '.join(plan.waypoints)}\n")

        if facts is not None:
            lines.append(self._system_section(facts))

        lines.append("## Upgrade Path\n")
        lines.append("| # | From | To | Complexity | Breaking | Steps |")
        lines.append("|---|------|----|------------|----------|-------|")
        for index, hop in enumerate(plan.hops, start=1):
            lines.append(
                f"| {index} | {hop.from_version} | {hop.to_version} "
                f"| {self._complexity_emoji(hop.complexity)} {hop.complexity.value} "
                f"| {'yes' if hop.breaking else 'no'} | {len(hop.steps)} |"
            )
        lines.append("")

        for index, hop in enumerate(plan.hops, start=1):
            lines.append(f"## Step {index}: {hop.from_version} → {hop.to_version}\n")

            for warning in hop.warnings:
                lines.append(f"> ⚠️ {warning}")
            if hop.warnings:
                lines.append("")

            for number, step in enumerate(hop.steps, start=1):
                lines.append(f"### {index}.{number} {step.title}\n")
                if step.commands:
                    lines.append("```bash")
                    lines.extend(step.commands)
                    lines.append("```\n")
                if step.note:
                    lines.append(f"**Note:** {step.note}\n")
                if step.warning:
                    lines.append(f"**Warning:** {step.warning}\n")

            if hop.publish_note:
                lines.append(f"*{hop.publish_note}*\n")
            lines.append("---\n")

        if plan.extensions:
            lines.append(self._extension_section(plan))

        return "\n".join(lines)

    @staticmethod
    def _system_section(facts: SystemFacts) -> str:
        db = facts.database
        estimated = " (estimated)"
        lines = [
            "## System\n",
            f"- **TYPO3:** {facts.platform_version or 'unknown'}"
            f"{estimated if facts.platform_version_estimated else ''}",
            f"- **PHP:** {facts.runtime_version or 'unknown'}",
            f"- **Database:** {db.type or 'unknown'} {db.version or ''}"
            f"{estimated if db.version_estimated else ''}",
            f"- **Tables:** {db.table_count if db.table_count is not None else 'unknown'}"
            f"{estimated if db.table_count_estimated else ''}",
            f"- **Extensions:** {len(facts.third_party_extensions)} third-party, "
            f"{len(facts.bundled_extensions)} bundled",
            "",
        ]
        return "\n".join(lines)

    @staticmethod
    def _extension_section(plan: UpgradePlan) -> str:
        lines = [
            "## Extensions\n",
            "| Extension | Version | Vendor | Compatible | Alternatives |",
            "|-----------|---------|--------|------------|--------------|",
        ]
        for ext in plan.extensions:
            if ext.bundled:
                continue
            compatible = {True: "✅", False: "❌", None: "❔"}[ext.compatible]
            lines.append(
                f"| **{ext.key}** | {ext.version} | {ext.vendor or '-'} "
                f"| {compatible} | {', '.join(ext.alternatives) or '-'} |"
            )
        lines.append("")

        if plan.unresolved_extensions:
            lines.append(
                "**Not included in the composer command:** "
                + ", ".join(f"`{key}`" for key in plan.unresolved_extensions)
                + "\n"
            )

        return "\n".join(lines)

    @staticmethod
    def _complexity_emoji(complexity: Complexity) -> str:
        """Get emoji for complexity tier."""
        emojis = {
            Complexity.VERY_HIGH: "🔴",
            Complexity.HIGH: "🟠",
            Complexity.MEDIUM: "🟡",
            Complexity.LOW: "🟢",
        }
        return emojis.get(complexity, "⚪")
