"""Input loaders for lockfiles, dependency listings and manifests."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests
import toml
from packageurl import PackageURL

from .models import DependencyRef, LockfileListing, PackageRecord

logger = logging.getLogger(__name__)

INPUT_FORMATS = ('cargo', 'json', 'sbom')


class InputParseError(Exception):
    """The input could not be interpreted as a dependency listing."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


def _is_url(path: str) -> bool:
    """Check if a path is a URL."""
    try:
        result = urlparse(path)
    except ValueError:
        return False
    return result.scheme in ('http', 'https')


def _read_content(path: str) -> str:
    """
    Read content from either a file path or URL.

    Args:
        path: File path or URL

    Returns:
        Content as string

    Raises:
        FileNotFoundError: If file doesn't exist
        requests.RequestException: If URL fetch fails
    """
    if _is_url(path):
        logger.info(f"Fetching content from URL: {path}")
        response = requests.get(path, timeout=30)
        response.raise_for_status()
        return response.text
    else:
        logger.info(f"Reading content from file: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except UnicodeDecodeError as e:
            raise InputParseError(path, f"not valid UTF-8: {e}") from e


def _load_json(path: str) -> Any:
    try:
        return json.loads(_read_content(path))
    except json.JSONDecodeError as e:
        raise InputParseError(path, f"invalid JSON: {e}") from e


def _load_toml(path: str) -> Dict[str, Any]:
    try:
        return toml.loads(_read_content(path))
    except ValueError as e:  # toml.TomlDecodeError and the bare ValueErrors toml raises
        raise InputParseError(path, f"invalid TOML: {e}") from e


def _require_str(path: str, entry: Dict[str, Any], key: str, what: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InputParseError(path, f"{what} has no valid '{key}'")
    return value.strip()


def _name_from_purl(purl: PackageURL) -> str:
    """Package name with its namespace, maven-style for maven, path-style otherwise."""
    if not purl.namespace:
        return purl.name
    if purl.type == 'maven':
        return f"{purl.namespace}:{purl.name}"
    return f"{purl.namespace}/{purl.name}"


def _parse_purl(purl: str) -> Optional[PackageURL]:
    try:
        return PackageURL.from_string(purl)
    except ValueError:
        logger.warning(f"Invalid purl format: {purl}")
        return None


class FileParser:
    """Loaders for the supported input formats."""

    @staticmethod
    def detect_format(file_path: str) -> str:
        """Detect the input format based on the file name."""
        name_lower = Path(urlparse(file_path).path if _is_url(file_path) else file_path).name.lower()

        if name_lower.endswith('.lock'):
            return 'cargo'
        if (name_lower.endswith('.sbom') or name_lower.endswith('.cdx.json') or
                (name_lower.endswith('.json') and any(x in name_lower for x in ['sbom', 'bom', 'cdx']))):
            return 'sbom'
        return 'json'

    @staticmethod
    def load(file_path: str, input_format: Optional[str] = None, ecosystem: str = 'generic') -> LockfileListing:
        """Load a listing, detecting the format when none is given."""
        input_format = input_format or FileParser.detect_format(file_path)
        logger.info(f"Loading {file_path} as {input_format}")

        if input_format == 'cargo':
            return FileParser.parse_cargo_lock(file_path)
        if input_format == 'sbom':
            return FileParser.parse_sbom_file(file_path)
        if input_format == 'json':
            return FileParser.parse_json_listing(file_path, ecosystem)
        raise InputParseError(file_path, f"unknown input format '{input_format}'")

    @staticmethod
    def parse_cargo_lock(file_path: str) -> LockfileListing:
        """
        Parse a Cargo.lock file.

        Each [[package]] entry becomes a record. Dependency entries are
        "name", "name version" or "name version (source)"; the bare name is
        used when only one version of that crate is locked.
        """
        data = _load_toml(file_path)
        entries = data.get('package', [])
        if not isinstance(entries, list):
            raise InputParseError(file_path, "'package' is not an array of tables")

        records = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise InputParseError(file_path, f"package entry {index} is not a table")
            name = _require_str(file_path, entry, 'name', f"package entry {index}")
            version = _require_str(file_path, entry, 'version', f"package '{name}'")
            dependencies = entry.get('dependencies', [])
            if not isinstance(dependencies, list) or not all(isinstance(d, str) for d in dependencies):
                raise InputParseError(file_path, f"package '{name}' has malformed dependencies")

            records.append(PackageRecord(
                name=name,
                version=version,
                system='cargo',
                source=entry.get('source'),
                dependencies=[DependencyRef.parse(d) for d in dependencies],
            ))

        logger.info(f"Parsed {len(records)} packages from Cargo.lock")
        return LockfileListing(records=records)

    @staticmethod
    def parse_json_listing(file_path: str, ecosystem: str = 'generic') -> LockfileListing:
        """
        Parse a JSON dependency listing.

        Accepts a bare list of package records or an object:

            {
              "project": "my-app",
              "roots": ["serde@1.0.188", "tokio"],
              "packages": [
                {"name": "tokio", "version": "1.32.0",
                 "dependencies": ["bytes@1.5.0", {"name": "mio", "version": "0.8.8"}]}
              ]
            }
        """
        data = _load_json(file_path)

        project_name = None
        roots: List[DependencyRef] = []
        if isinstance(data, dict):
            project_name = data.get('project')
            if project_name is not None and not isinstance(project_name, str):
                raise InputParseError(file_path, "'project' must be a string")
            raw_roots = data.get('roots', [])
            if not isinstance(raw_roots, list):
                raise InputParseError(file_path, "'roots' must be a list")
            roots = [FileParser._parse_json_ref(file_path, r, "root") for r in raw_roots]
            packages = data.get('packages')
        else:
            packages = data

        if not isinstance(packages, list):
            raise InputParseError(file_path, "expected a list of packages")

        records = []
        for index, entry in enumerate(packages):
            if not isinstance(entry, dict):
                raise InputParseError(file_path, f"package entry {index} is not an object")
            name = _require_str(file_path, entry, 'name', f"package entry {index}")
            version = _require_str(file_path, entry, 'version', f"package '{name}'")
            dependencies = entry.get('dependencies', [])
            if not isinstance(dependencies, list):
                raise InputParseError(file_path, f"package '{name}' has malformed dependencies")

            records.append(PackageRecord(
                name=name,
                version=version,
                system=entry.get('system') or ecosystem,
                source=entry.get('source'),
                dependencies=[FileParser._parse_json_ref(file_path, d, f"dependency of '{name}'")
                              for d in dependencies],
            ))

        logger.info(f"Parsed {len(records)} packages from JSON listing")
        return LockfileListing(records=records, roots=roots, project_name=project_name)

    @staticmethod
    def _parse_json_ref(file_path: str, value: Any, what: str) -> DependencyRef:
        if isinstance(value, str) and value.strip():
            return DependencyRef.parse(value)
        if isinstance(value, dict):
            name = _require_str(file_path, value, 'name', what)
            version = value.get('version')
            if version is not None and not isinstance(version, str):
                raise InputParseError(file_path, f"{what} '{name}' has a non-string version")
            return DependencyRef(name=name, version=version)
        raise InputParseError(file_path, f"{what} is neither a string nor an object: {value!r}")

    @staticmethod
    def parse_sbom_file(file_path: str) -> LockfileListing:
        """
        Parse a CycloneDX SBOM JSON file.

        Components become records; the dependencies array supplies edges. The
        metadata component, when present, names the project and its
        dependsOn entries become the roots.
        """
        sbom = _load_json(file_path)
        if not isinstance(sbom, dict) or not isinstance(sbom.get('components', []), list):
            raise InputParseError(file_path, "not a CycloneDX document")
        if not isinstance(sbom.get('dependencies', []), list):
            raise InputParseError(file_path, "'dependencies' must be a list")
        metadata = sbom.get('metadata', {})
        if not isinstance(metadata, dict):
            raise InputParseError(file_path, "'metadata' must be an object")

        bomref_to_record: Dict[str, PackageRecord] = {}
        records = []
        for index, component in enumerate(sbom.get('components', [])):
            if not isinstance(component, dict):
                raise InputParseError(file_path, f"component {index} is not an object")
            record = FileParser._component_to_record(component)
            if record is None:
                continue
            records.append(record)
            bomref = component.get('bom-ref') or component.get('purl')
            if isinstance(bomref, str) and bomref:
                bomref_to_record[bomref] = record

        metadata_component = metadata.get('component') or {}
        if not isinstance(metadata_component, dict):
            raise InputParseError(file_path, "'metadata.component' must be an object")
        project_name = metadata_component.get('name')
        if project_name is not None and not isinstance(project_name, str):
            raise InputParseError(file_path, "'metadata.component.name' must be a string")
        project_ref = metadata_component.get('bom-ref')

        roots: List[DependencyRef] = []
        for index, dep in enumerate(sbom.get('dependencies', [])):
            if not isinstance(dep, dict):
                raise InputParseError(file_path, f"dependency entry {index} is not an object")
            ref = dep.get('ref')
            if ref is not None and not isinstance(ref, str):
                raise InputParseError(file_path, f"dependency entry {index} has a non-string 'ref'")
            targets = dep.get('dependsOn', [])
            if not isinstance(targets, list) or not all(isinstance(r, str) for r in targets):
                raise InputParseError(file_path, f"dependency entry {index} has a malformed 'dependsOn'")
            depends_on = [FileParser._bomref_to_dependency(r, bomref_to_record) for r in targets]
            if ref is not None and ref == project_ref:
                roots.extend(depends_on)
                continue
            record = bomref_to_record.get(ref)
            if record is None:
                logger.debug(f"Dependency entry for unknown component: {ref}")
                continue
            record.dependencies.extend(depends_on)

        logger.info(f"Parsed {len(records)} packages from SBOM")
        return LockfileListing(records=records, roots=roots, project_name=project_name)

    @staticmethod
    def _component_to_record(component: Dict[str, Any]) -> Optional[PackageRecord]:
        purl_string = component.get('purl')
        if isinstance(purl_string, str) and purl_string:
            purl = _parse_purl(purl_string)
            if purl and purl.version:
                return PackageRecord(name=_name_from_purl(purl), version=purl.version, system=purl.type)
        name, version = component.get('name'), component.get('version')
        if isinstance(name, str) and isinstance(version, str) and name and version:
            return PackageRecord(name=name, version=version)
        return None

    @staticmethod
    def _bomref_to_dependency(ref: str, bomref_to_record: Dict[str, PackageRecord]) -> DependencyRef:
        record = bomref_to_record.get(ref)
        if record is not None:
            return DependencyRef(name=record.name, version=record.version)
        # Unknown ref: keep whatever identity it carries so the report can name it
        purl = _parse_purl(ref) if ref.startswith('pkg:') else None
        if purl is not None:
            return DependencyRef(name=_name_from_purl(purl), version=purl.version)
        return DependencyRef(name=ref)

    @staticmethod
    def parse_manifest(file_path: str, listing: LockfileListing) -> Tuple[List[DependencyRef], Optional[str]]:
        """
        Read root references and the project name from a Cargo.toml.

        Roots are the names under [dependencies], [build-dependencies] and
        [dev-dependencies], including target-specific tables; renamed
        dependencies (package = "...") use the real crate name. When the
        lockfile holds the manifest's own package, its locked dependency
        entries supply the versions. A virtual workspace manifest has no
        dependencies of its own, so the local (source-less) packages of the
        lockfile become the roots.
        """
        data = _load_toml(file_path)
        package = data.get('package') or {}
        project_name = package.get('name')

        tables = [data]
        tables.extend(t for t in (data.get('target') or {}).values() if isinstance(t, dict))

        names = []
        for table in tables:
            for section in ('dependencies', 'build-dependencies', 'dev-dependencies'):
                for key, spec in (table.get(section) or {}).items():
                    name = spec.get('package', key) if isinstance(spec, dict) else key
                    if name not in names:
                        names.append(name)

        if not package and 'workspace' in data:
            local = sorted({r.name for r in listing.records if r.source is None})
            logger.info(f"Virtual workspace manifest; using {len(local)} local packages as roots")
            return [DependencyRef(name=name) for name in local], project_name

        # The locked entry of the manifest's own package pins the exact versions;
        # a crate locked at several versions (renamed deps) stays a name-only root
        locked: Dict[str, List[DependencyRef]] = {}
        for record in listing.records:
            if record.name == project_name and record.source is None:
                for dep in record.dependencies:
                    if dep.version is not None:
                        locked.setdefault(dep.name, []).append(dep)
        pinned = {name: deps[0] for name, deps in locked.items() if len(deps) == 1}

        logger.info(f"Read {len(names)} direct dependencies from {file_path}")
        return [pinned.get(name, DependencyRef(name=name)) for name in names], project_name
