"""Output formatters for duplicate reports."""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from packageurl import PackageURL

from .models import AnalysisReport, OutputFormat, Package, PackageId, VersionReport

logger = logging.getLogger(__name__)

ROOT_UNREACHABLE = "root-unreachable"
MISSING_DEPENDENCY = "missing-dependency"


class OutputFormatter:
    """Formatter for the supported output formats."""

    @staticmethod
    def format(report: AnalysisReport, output_format: OutputFormat) -> str:
        """Render the report in the chosen format."""
        if OutputFormat(output_format) == OutputFormat.JSON:
            return OutputFormatter.format_as_json(report)
        return OutputFormatter.format_as_text(report)

    @staticmethod
    def format_path(path: Sequence[PackageId], project_name: Optional[str] = None) -> str:
        """Render a path as 'project -> a@1.0 -> b@2.0'."""
        parts = [str(key) for key in path]
        if project_name:
            parts.insert(0, project_name)
        return " -> ".join(parts)

    @staticmethod
    def format_as_text(report: AnalysisReport) -> str:
        """
        Human-readable report, one block per duplicated name:

            C: 1.0, 2.0
              C@1.0 (1 dependent)
                R -> A@1.0 -> C@1.0
              C@2.0 (1 dependent, latest)
                R -> B@1.0 -> C@2.0

        Returns an empty string when there is nothing to report.
        """
        blocks: List[str] = []

        for group in report.groups:
            versions = ", ".join(v.package.version for v in group.versions)
            lines = [f"{group.name}: {versions}"]
            for version in group.versions:
                lines.append(f"  {version.package} ({OutputFormatter._describe(version)})")
                if version.root_unreachable:
                    lines.append(f"    {ROOT_UNREACHABLE}")
                for path in version.paths:
                    lines.append(f"    {OutputFormatter.format_path(path, report.project_name)}")
            blocks.append("\n".join(lines))

        if report.missing:
            blocks.append("\n".join(f"{MISSING_DEPENDENCY}: {missing}" for missing in report.missing))

        if not blocks:
            return ""
        return "\n\n".join(blocks) + "\n"

    @staticmethod
    def _describe(version: VersionReport) -> str:
        count = len(version.dependents)
        notes = [f"{count} dependent" if count == 1 else f"{count} dependents"]
        if version.latest:
            notes.append("latest")
        return ", ".join(notes)

    @staticmethod
    def format_as_json(report: AnalysisReport) -> str:
        """Machine-readable report; always a complete JSON document."""
        document = {
            "project": report.project_name,
            "duplicates": [
                {
                    "name": group.name,
                    "versions": [OutputFormatter._version_to_dict(v) for v in group.versions],
                }
                for group in report.groups
            ],
            "missing_dependencies": [
                {
                    "dependent": str(missing.dependent),
                    "name": missing.reference.name,
                    "version": missing.reference.version,
                    "reason": missing.reason,
                }
                for missing in report.missing
            ],
        }
        return json.dumps(document, indent=2) + "\n"

    @staticmethod
    def _version_to_dict(version: VersionReport) -> Dict[str, Any]:
        pkg = version.package
        return {
            "version": pkg.version,
            "purl": OutputFormatter._build_purl(pkg),
            "latest": version.latest,
            "root_unreachable": version.root_unreachable,
            "dependents": [str(key) for key in version.dependents],
            "paths": [[str(key) for key in path] for path in version.paths],
        }

    @staticmethod
    def _build_purl(pkg: Package) -> Optional[str]:
        """Build a Package URL (purl) string for a package, None if the system is not a valid purl type."""
        system = pkg.system.lower()
        namespace = None
        name = pkg.name
        if system == 'maven' and ':' in name:
            namespace, name = name.split(':', 1)
        elif '/' in name:
            namespace, name = name.rsplit('/', 1)
        try:
            return PackageURL(type=system, namespace=namespace, name=name, version=pkg.version).to_string()
        except ValueError as e:
            logger.debug(f"No purl for {pkg}: {e}")
            return None
