"""Version ordering utilities for lockfile version strings."""

from dataclasses import dataclass
from functools import total_ordering
from typing import Iterable, List, Optional

import semver


@total_ordering
@dataclass(frozen=True)
class VersionKey:
    """
    Sort key for a version string.

    Attributes:
        original_string: The version string as written in the lockfile
        parsed: The parsed semantic version, or None if the string is not semver

    Semver versions order by semver precedence, so 1.0.0-1 and 1.0.0-alpha.beta
    sort before 1.0.0. They come before unparseable strings, which order
    lexicographically. Two strings with the same precedence (1.0 and 1.0.0,
    or builds differing only in metadata) are ordered by their raw text.
    """
    original_string: str
    parsed: Optional[semver.Version] = None

    def _tuple(self):
        if self.parsed is not None:
            return (0, self.parsed, self.original_string)
        return (1, self.original_string)

    def __lt__(self, other: 'VersionKey') -> bool:
        if not isinstance(other, VersionKey):
            return NotImplemented
        return self._tuple() < other._tuple()


class VersionParser:
    """Parser for semver version strings with a lexicographic fallback."""

    @classmethod
    def parse(cls, version: str) -> VersionKey:
        """
        Parse a version string into a sort key.

        Missing minor and patch numbers are read as zero, so listings that
        write "1.0" still order semantically.

        Args:
            version: The version string to parse

        Returns:
            VersionKey ordering the version semantically where possible
        """
        try:
            parsed = semver.Version.parse(version, optional_minor_and_patch=True)
        except ValueError:
            parsed = None
        return VersionKey(original_string=version, parsed=parsed)

    @classmethod
    def sort_versions(cls, versions: Iterable[str]) -> List[str]:
        """Return versions in ascending order."""
        return sorted(versions, key=cls.parse)
