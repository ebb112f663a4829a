"""Builds the dependency graph from loaded package records."""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Set

from .models import (
    DependencyGraph,
    DependencyRef,
    MissingDependency,
    Package,
    PackageId,
    PackageRecord,
    RootStrategy,
)
from .parsers import InputParseError

logger = logging.getLogger(__name__)


class DependencyGraphBuilder:
    """
    Builds a read-only DependencyGraph in two passes:

    Pass 1: Register nodes
    - One node per (name, version); repeated records are merged

    Pass 2: Resolve edges
    - Each reference resolves to the node with matching name and version
    - A name-only reference resolves when exactly one version of the name exists
    - Anything else is recorded as a MissingDependency and building continues
    """

    def __init__(self):
        """Initialize the graph builder."""
        self.records: Dict[PackageId, PackageRecord] = {}
        self.versions_by_name: Dict[str, List[str]] = defaultdict(list)
        self.edges: Dict[PackageId, Set[PackageId]] = defaultdict(set)
        self.parent_map: Dict[PackageId, Set[PackageId]] = defaultdict(set)  # child -> parents
        self.missing: List[MissingDependency] = []

        # Configuration
        self.root_strategy: RootStrategy = RootStrategy.INFERRED
        self.root_refs: List[DependencyRef] = []
        self.project_name: Optional[str] = None

    def set_root_strategy(self, strategy: RootStrategy) -> None:
        """Set how root nodes are chosen (inferred or manifest)."""
        self.root_strategy = RootStrategy(strategy)
        logger.info(f"Root strategy set to: {self.root_strategy.value}")

    def set_roots(self, roots: Sequence[DependencyRef]) -> None:
        """Set explicit root references for the manifest strategy."""
        self.root_refs = list(roots)
        logger.info(f"Explicit roots set with {len(self.root_refs)} entries")

    def set_project_name(self, name: Optional[str]) -> None:
        """Set the label shown in front of every path."""
        self.project_name = name or None

    def build(self, records: Sequence[PackageRecord], source: str = '<input>') -> DependencyGraph:
        """Build the graph. `source` names the input in InputParseError messages."""
        logger.info(f"Building dependency graph from {len(records)} records")

        self._register_nodes(records)
        self._resolve_edges()
        roots = self._select_roots(source)

        nodes = {
            key: Package(
                name=record.name,
                version=record.version,
                system=record.system,
                source=record.source,
                dependencies=tuple(sorted(self.edges.get(key, ()))),
            )
            for key, record in sorted(self.records.items())
        }
        graph = DependencyGraph(
            nodes=nodes,
            edges={key: pkg.dependencies for key, pkg in nodes.items()},
            dependents={key: tuple(sorted(parents)) for key, parents in sorted(self.parent_map.items())},
            roots=tuple(roots),
            missing=tuple(self.missing),
            project_name=self.project_name,
        )

        logger.info(f"Graph complete: {len(nodes)} nodes, {len(roots)} roots, "
                    f"{len(self.missing)} missing dependencies")
        return graph

    def _register_nodes(self, records: Sequence[PackageRecord]) -> None:
        for record in records:
            existing = self.records.get(record.key)
            if existing is None:
                self.records[record.key] = PackageRecord(
                    name=record.name,
                    version=record.version,
                    system=record.system,
                    source=record.source,
                    dependencies=list(record.dependencies),
                )
                self.versions_by_name[record.name].append(record.version)
                continue

            logger.warning(f"Package {record.key} listed more than once; merging its dependencies")
            for dep in record.dependencies:
                if dep not in existing.dependencies:
                    existing.dependencies.append(dep)

    def _resolve_edges(self) -> None:
        for key, record in self.records.items():
            for ref in record.dependencies:
                child = self._resolve(key, ref)
                if child is None:
                    continue
                self.edges[key].add(child)
                self.parent_map[child].add(key)

    def _resolve(self, dependent: PackageId, ref: DependencyRef) -> Optional[PackageId]:
        """Resolve one reference; records a MissingDependency when it fails."""
        versions = self.versions_by_name.get(ref.name, [])

        if ref.version is not None:
            if ref.version in versions:
                return PackageId(ref.name, ref.version)
            reason = MissingDependency.NOT_FOUND
        elif len(versions) == 1:
            return PackageId(ref.name, versions[0])
        elif versions:
            reason = MissingDependency.AMBIGUOUS
        else:
            reason = MissingDependency.NOT_FOUND

        missing = MissingDependency(dependent=dependent, reference=ref, reason=reason)
        logger.warning(f"Missing dependency: {missing}")
        self.missing.append(missing)
        return None

    def _select_roots(self, source: str) -> List[PackageId]:
        if self.root_strategy == RootStrategy.INFERRED:
            roots = sorted(key for key in self.records if not self.parent_map.get(key))
            logger.info(f"Inferred {len(roots)} roots (packages nothing depends on)")
            return roots

        if not self.root_refs:
            raise InputParseError(source, "manifest root strategy selected but no roots were supplied")

        roots: Set[PackageId] = set()
        for ref in self.root_refs:
            versions = self.versions_by_name.get(ref.name, [])
            if ref.version is not None:
                matches = [ref.version] if ref.version in versions else []
            else:
                matches = versions
            if not matches:
                logger.warning(f"Root {ref} does not match any package; skipping")
                continue
            if len(matches) > 1:
                logger.info(f"Root {ref} matches {len(matches)} versions; using all of them")
            roots.update(PackageId(ref.name, version) for version in matches)

        logger.info(f"Using {len(roots)} roots from the manifest")
        return sorted(roots)
