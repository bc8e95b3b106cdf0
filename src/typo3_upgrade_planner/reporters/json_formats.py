"""JSON output formatter."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from typo3_upgrade_planner import __version__
from typo3_upgrade_planner.models import (
    ExtensionFact,
    Hop,
    Release,
    SystemFacts,
    UpgradePlan,
)

logger = logging.getLogger(__name__)


def serialize_extension(extension: ExtensionFact) -> dict[str, Any]:
    """Serialize one extension."""
    return {
        "key": extension.key,
        "identifier": extension.raw_identifier,
        "version": extension.version,
        "vendor": extension.vendor,
        "bundled": extension.bundled,
        "compatible": extension.compatible,
        "alternatives": extension.alternatives,
        "title": extension.title,
        "package_name": extension.package_name,
        "typo3_constraint": extension.typo3_constraint,
        "type": extension.extension_type.value,
        "dev": extension.is_dev,
        "active": extension.is_active,
        "path": extension.path,
    }


def serialize_facts(facts: SystemFacts) -> dict[str, Any]:
    """Serialize system facts; estimated values carry their flags."""
    db = facts.database
    return {
        "source": facts.source,
        "platform_version": facts.platform_version,
        "platform_version_estimated": facts.platform_version_estimated,
        "runtime_version": facts.runtime_version,
        "runtime_platform_version": facts.runtime_platform_version,
        "installation_mode": facts.installation_mode.value,
        "has_extension_manager": facts.has_extension_manager,
        "allowed_plugins": facts.allowed_plugins,
        "database": {
            "type": db.type,
            "version": db.version,
            "version_estimated": db.version_estimated,
            "host": db.host,
            "name": db.name,
            "port": db.port,
            "table_count": db.table_count,
            "table_count_estimated": db.table_count_estimated,
            "source_file": db.source_file,
            "dump_file": db.dump_file,
        },
        "extensions": [serialize_extension(e) for e in facts.extensions],
        "export_info": facts.export_info,
        "analyzed_paths": facts.analyzed_paths,
        "total_files": facts.total_files,
    }


def serialize_hop(hop: Hop) -> dict[str, Any]:
    """Serialize one hop with its steps."""
    return {
        "from": hop.from_version,
        "to": hop.to_version,
        "complexity": hop.complexity.value,
        "breaking": hop.breaking,
        "is_downgrade": hop.is_downgrade,
        "warnings": hop.warnings,
        "publish_note": hop.publish_note,
        "steps": [
            {
                "kind": step.kind.value,
                "title": step.title,
                "commands": step.commands,
                "note": step.note,
                "warning": step.warning,
            }
            for step in hop.steps
        ],
    }


def serialize_plan(plan: UpgradePlan) -> dict[str, Any]:
    """Serialize an upgrade plan."""
    return {
        "from": plan.from_version,
        "to": plan.to_version,
        "installation_mode": plan.installation_mode.value,
        "upgrade_method": plan.upgrade_method.value,
        "waypoints": plan.waypoints,
        "total_steps": plan.total_steps,
        "hops": [serialize_hop(hop) for hop in plan.hops],
        "extensions": [serialize_extension(e) for e in plan.extensions],
        "unresolved_extensions": plan.unresolved_extensions,
    }


def serialize_release(release: Release) -> dict[str, Any]:
    """Serialize one catalog release."""
    return {
        "version": release.version,
        "type": release.release_type.value,
        "release_date": release.release_date,
        "active_support_until": release.active_support_until,
        "security_support_until": release.security_support_until,
        "support_status": release.support_status().value,
        "php": release.php_requirement,
        "database": release.database_requirement,
        "composer": release.composer_requirement,
        "needs_schema_change": release.needs_schema_change,
        "needs_migration_wizard": release.needs_migration_wizard,
    }


class JSONReporter:
    """Generates JSON format reports."""

    def generate_report(
        self,
        facts: SystemFacts | None = None,
        plan: UpgradePlan | None = None,
        releases: list[Release] | None = None,
        output_file: Path | None = None,
    ) -> str:
        """Generate JSON report.

        Args:
            facts: Analyzed installation
            plan: Upgrade plan
            releases: Catalog listing
            output_file: Optional path to save report

        Returns:
            JSON string
        """
        data: dict[str, Any] = {
            "version": "1.0",
            "tool_version": __version__,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }
        if facts is not None:
            data["system"] = serialize_facts(facts)
        if plan is not None:
            data["plan"] = serialize_plan(plan)
        if releases is not None:
            data["releases"] = [serialize_release(r) for r in releases]

        json_str = json.dumps(data, indent=2, default=str)

        if output_file:
            output_file.write_text(json_str, encoding="utf-8")
            logger.info(f"JSON report written to {output_file}")

        return json_str
