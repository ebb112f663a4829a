"""Detects package names resolved to more than one version."""

import logging
from collections import defaultdict
from typing import Dict, List

from .models import DependencyGraph, DuplicateGroup, Package
from .version_parser import VersionParser

logger = logging.getLogger(__name__)


def find_duplicates(graph: DependencyGraph) -> List[DuplicateGroup]:
    """
    Group nodes by name and keep names with two or more distinct versions.

    Groups are ordered by name (code-point order, case-sensitive); the
    packages of a group by version, lowest first.
    """
    by_name: Dict[str, Dict[str, Package]] = defaultdict(dict)
    for pkg in graph.nodes.values():
        by_name[pkg.name][pkg.version] = pkg

    groups = []
    for name in sorted(by_name):
        by_version = by_name[name]
        if len(by_version) < 2:
            continue
        versions = VersionParser.sort_versions(by_version)
        groups.append(DuplicateGroup(name=name, packages=tuple(by_version[v] for v in versions)))
        logger.debug(f"Duplicate: {name} at versions {', '.join(versions)}")

    logger.info(f"Found {len(groups)} duplicated package names")
    return groups
