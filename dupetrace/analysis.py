"""Combines duplicate detection and path finding into a report."""

import logging

from .detector import find_duplicates
from .models import AnalysisReport, DependencyGraph, GroupReport, VersionReport
from .path_finder import PathFinder

logger = logging.getLogger(__name__)


def analyze(graph: DependencyGraph, all_dependents: bool = False) -> AnalysisReport:
    """
    Explain every duplicated version in the graph.

    Each version gets one shortest path from a root, or with all_dependents
    one path per direct dependent. A version no root reaches keeps an empty
    path list and is reported as root-unreachable.
    """
    finder = PathFinder(graph)
    report = AnalysisReport(missing=list(graph.missing), project_name=graph.project_name)

    for group in find_duplicates(graph):
        group_report = GroupReport(name=group.name)
        for pkg in group.packages:
            if all_dependents:
                paths = finder.paths_via_dependents(pkg.key)
            else:
                path = finder.shortest_path(pkg.key)
                paths = [path] if path is not None else []

            version_report = VersionReport(
                package=pkg,
                paths=paths,
                dependents=graph.parents(pkg.key),
                latest=pkg is group.latest,
            )
            if version_report.root_unreachable:
                logger.warning(f"{pkg} is not reachable from any root")
            group_report.versions.append(version_report)
        report.groups.append(group_report)

    return report
