"""Finds root-to-package paths explaining why a version is in the graph."""

import logging
from collections import deque
from typing import Dict, List, Optional, Tuple

from .models import DependencyGraph, PackageId

logger = logging.getLogger(__name__)

Path = Tuple[PackageId, ...]


class PathFinder:
    """
    Breadth-first search over "depends on" edges, starting from all roots at once.

    Roots are seeded and children visited in sorted (name, version) order, so
    the first time a node is reached is along a shortest path and the choice
    between equally short paths is the same on every run.
    """

    def __init__(self, graph: DependencyGraph):
        self.graph = graph
        self._parents: Optional[Dict[PackageId, Optional[PackageId]]] = None

    def shortest_path(self, target: PackageId) -> Optional[Path]:
        """Return a minimum-length path from some root to target, or None if unreachable."""
        if target not in self.graph:
            return None

        parents = self._search_tree()
        if target not in parents:
            logger.debug(f"{target} is not reachable from any root")
            return None

        path = [target]
        node = parents[target]
        while node is not None:
            path.append(node)
            node = parents[node]
        path.reverse()
        return tuple(path)

    def paths_via_dependents(self, target: PackageId) -> List[Path]:
        """
        One path per direct dependent of target: the shortest path to that
        dependent, extended by target. Dependents no root reaches are skipped.
        """
        paths: List[Path] = []
        for dependent in self.graph.parents(target):
            prefix = self.shortest_path(dependent)
            if prefix is None or target in prefix:
                # Unreachable, or the route to the dependent already runs through target
                continue
            path = prefix + (target,)
            if path not in paths:
                paths.append(path)

        if not paths and target in self.graph.roots:
            paths.append((target,))
        return paths

    def _search_tree(self) -> Dict[PackageId, Optional[PackageId]]:
        """
        BFS tree over the whole graph, computed once: node -> predecessor.

        Every shortest-path query shares it, since the search from the root
        set does not depend on the target.
        """
        if self._parents is not None:
            return self._parents

        parents: Dict[PackageId, Optional[PackageId]] = {}
        queue = deque()
        for root in sorted(self.graph.roots):
            if root not in parents:
                parents[root] = None
                queue.append(root)

        while queue:
            node = queue.popleft()
            for child in sorted(self.graph.children(node)):
                if child in parents:
                    continue
                parents[child] = node
                queue.append(child)

        logger.debug(f"Search tree covers {len(parents)} of {len(self.graph)} nodes")
        self._parents = parents
        return parents
