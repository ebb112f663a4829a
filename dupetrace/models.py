"""Core data models for dupetrace."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple


class PackageId(NamedTuple):
    """Unique key of a node: the (name, version) pair."""

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(frozen=True)
class DependencyRef:
    """A dependency reference as written in the input; version may be omitted."""

    name: str
    version: Optional[str] = None

    def __str__(self) -> str:
        if self.version is None:
            return self.name
        return f"{self.name}@{self.version}"

    @classmethod
    def parse(cls, text: str) -> 'DependencyRef':
        """Parse 'name', 'name@version', 'name version' or 'name version (source)'."""
        text = text.strip()
        parts = text.split()
        if len(parts) >= 2:
            return cls(name=parts[0], version=parts[1])
        if '@' in text[1:]:
            # Leading '@' belongs to scoped names such as @types/node
            name, _, version = text.rpartition('@')
            return cls(name=name, version=version or None)
        return cls(name=text)


@dataclass
class PackageRecord:
    """A package as read from the input, before references are resolved."""

    name: str
    version: str
    system: str = "generic"  # purl type: cargo, npm, pypi, generic
    source: Optional[str] = None
    dependencies: List[DependencyRef] = field(default_factory=list)

    @property
    def key(self) -> PackageId:
        return PackageId(self.name, self.version)


@dataclass
class LockfileListing:
    """Loader output: package records plus whatever root information the input carries."""

    records: List[PackageRecord] = field(default_factory=list)
    roots: List[DependencyRef] = field(default_factory=list)
    project_name: Optional[str] = None


@dataclass(frozen=True)
class Package:
    """A resolved node of the dependency graph."""

    name: str
    version: str
    system: str = "generic"
    source: Optional[str] = field(default=None, compare=False)
    dependencies: Tuple[PackageId, ...] = field(default=(), compare=False)

    @property
    def key(self) -> PackageId:
        return PackageId(self.name, self.version)

    def __str__(self) -> str:
        return str(self.key)

    def __hash__(self) -> int:
        return hash(self.key)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Package):
            return False
        return self.key == other.key


@dataclass(frozen=True)
class MissingDependency:
    """A dependency reference that does not resolve to a node."""

    NOT_FOUND = "not-found"
    AMBIGUOUS = "ambiguous"

    dependent: PackageId
    reference: DependencyRef
    reason: str = NOT_FOUND

    def __str__(self) -> str:
        return f"{self.dependent} -> {self.reference} ({self.reason})"


class RootStrategy(str, Enum):
    """How root nodes are chosen."""

    INFERRED = "inferred"  # nodes without incoming edges
    MANIFEST = "manifest"  # roots supplied explicitly


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


@dataclass
class DependencyGraph:
    """
    Read-only dependency graph stored as an arena keyed by PackageId.

    Edge lists hold keys rather than nodes, so shared children and the
    occasional cycle need no special ownership handling.
    """

    nodes: Dict[PackageId, Package]
    edges: Dict[PackageId, Tuple[PackageId, ...]]
    dependents: Dict[PackageId, Tuple[PackageId, ...]]
    roots: Tuple[PackageId, ...] = ()
    missing: Tuple[MissingDependency, ...] = ()
    project_name: Optional[str] = None

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, key: PackageId) -> bool:
        return key in self.nodes

    def children(self, key: PackageId) -> Tuple[PackageId, ...]:
        return self.edges.get(key, ())

    def parents(self, key: PackageId) -> Tuple[PackageId, ...]:
        return self.dependents.get(key, ())


@dataclass(frozen=True)
class DuplicateGroup:
    """Packages sharing a name at two or more distinct versions, sorted by version."""

    name: str
    packages: Tuple[Package, ...]

    @property
    def versions(self) -> List[str]:
        return [pkg.version for pkg in self.packages]

    @property
    def latest(self) -> Package:
        return self.packages[-1]


@dataclass
class VersionReport:
    """Explanation of how one duplicated version entered the graph."""

    package: Package
    paths: List[Tuple[PackageId, ...]] = field(default_factory=list)
    dependents: Tuple[PackageId, ...] = ()
    latest: bool = False

    @property
    def root_unreachable(self) -> bool:
        return not self.paths


@dataclass
class GroupReport:
    name: str
    versions: List[VersionReport] = field(default_factory=list)


@dataclass
class AnalysisReport:
    """Everything the formatters render."""

    groups: List[GroupReport] = field(default_factory=list)
    missing: List[MissingDependency] = field(default_factory=list)
    project_name: Optional[str] = None

    @property
    def has_duplicates(self) -> bool:
        return bool(self.groups)

    @property
    def unreachable(self) -> List[VersionReport]:
        return [v for group in self.groups for v in group.versions if v.root_unreachable]
