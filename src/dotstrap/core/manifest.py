#!/usr/bin/env python3
"""
Declarative bootstrap manifest.

The manifest lists what a run should produce: base packages, version-gated
tools with their fallbacks, command aliases, symlinks and private
directories. It is plain data (YAML, TOML or JSON) so it can be extended
without touching the engine.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import toml
import yaml

from .errors import ManifestError
from .symlinks import LinkSpec
from ..utils.logger import get_logger
from ..utils.path import expand_path, expand_text

logger = get_logger(__name__)

MANIFEST_NAMES = ('dotstrap.yaml', 'dotstrap.yml', 'dotstrap.toml', 'dotstrap.json')


def default_manifest_path() -> Path:
    """Manifest shipped with the package."""
    return Path(__file__).resolve().parent.parent / 'templates' / 'default_manifest.yaml'


def _section(data: Mapping[str, Any], name: str) -> List[Any]:
    """A list section of the manifest; absent or empty sections are empty."""
    entries = data.get(name) or []
    if not isinstance(entries, list):
        raise ManifestError(f"'{name}' must be a list, got {type(entries).__name__}")
    return entries


@dataclass(frozen=True)
class ToolSpec:
    """A version-gated tool as declared in the manifest."""
    command: str
    package: str
    minimum: str
    fallback: Dict[str, Any]


@dataclass(frozen=True)
class PrivateDir:
    """A directory that must exist with restricted permissions."""
    path: Path
    mode: int = 0o700


@dataclass
class Manifest:
    """Everything a bootstrap run should produce."""
    packages: List[str] = field(default_factory=list)
    tools: List[ToolSpec] = field(default_factory=list)
    aliases: Dict[str, str] = field(default_factory=dict)
    links: List[LinkSpec] = field(default_factory=list)
    private_dirs: List[PrivateDir] = field(default_factory=list)
    source: Optional[Path] = None

    @classmethod
    def from_dict(cls,
                  data: Mapping[str, Any],
                  variables: Mapping[str, str],
                  home: Path,
                  source: Optional[Path] = None) -> 'Manifest':
        """
        Build a manifest from loaded data.

        Args:
            data: Parsed manifest document
            variables: Values for ${VAR} references (XDG dirs, HOME)
            home: Home directory used for '~'
            source: File the data came from

        Raises:
            ManifestError: A section is malformed
        """
        if not isinstance(data, Mapping):
            raise ManifestError("Manifest must be a mapping at the top level")

        def expand(value: Any) -> Any:
            if isinstance(value, str):
                return expand_text(value, variables, home)
            if isinstance(value, list):
                return [expand(v) for v in value]
            if isinstance(value, dict):
                return {k: expand(v) for k, v in value.items()}
            return value

        packages = data.get('packages') or []
        if not isinstance(packages, list) or not all(isinstance(p, str) for p in packages):
            raise ManifestError("'packages' must be a list of package names")

        aliases = data.get('aliases') or {}
        if not isinstance(aliases, dict):
            raise ManifestError("'aliases' must map command names to alternate binaries")

        tools = []
        for entry in _section(data, 'tools'):
            try:
                command = entry['command']
                minimum = entry['minimum']
                fallback = entry['fallback']
            except (KeyError, TypeError) as e:
                raise ManifestError(f"Tool entry {entry!r} is missing field {e}")
            if not isinstance(minimum, str):
                raise ManifestError(
                    f"Minimum version of '{command}' must be a quoted string, got {minimum!r}"
                )
            if not isinstance(fallback, dict):
                raise ManifestError(f"Fallback of '{command}' must be a mapping")
            tools.append(ToolSpec(
                command=command,
                package=entry.get('package', command),
                minimum=minimum,
                fallback=expand(fallback),
            ))

        links = []
        for entry in _section(data, 'links'):
            try:
                links.append(LinkSpec(
                    source=entry['source'],
                    destination=expand_path(entry['destination'], variables, home),
                ))
            except (KeyError, TypeError) as e:
                raise ManifestError(f"Link entry {entry!r} is missing field {e}")

        private_dirs = []
        for entry in _section(data, 'private_dirs'):
            try:
                path = expand_path(entry['path'], variables, home)
                mode = entry.get('mode', 0o700)
                if isinstance(mode, str):
                    mode = int(mode, 8)
            except (KeyError, TypeError, ValueError) as e:
                raise ManifestError(f"Private directory entry {entry!r} is invalid: {e}")
            private_dirs.append(PrivateDir(path=path, mode=mode))

        return cls(
            packages=list(packages),
            tools=tools,
            aliases=dict(aliases),
            links=links,
            private_dirs=private_dirs,
            source=source,
        )


def load_manifest_data(path: Path) -> Dict[str, Any]:
    """
    Parse a manifest file according to its extension.

    Raises:
        ManifestError: The file is missing, unreadable or not valid
    """
    try:
        content = Path(path).read_text(encoding='utf-8')
    except OSError as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}")

    suffix = Path(path).suffix.lower()
    try:
        if suffix in ('.yaml', '.yml'):
            data = yaml.safe_load(content)
        elif suffix == '.toml':
            data = toml.loads(content)
        elif suffix == '.json':
            data = json.loads(content)
        else:
            raise ManifestError(f"Unsupported manifest format: {path}")
    except (yaml.YAMLError, toml.TomlDecodeError, json.JSONDecodeError) as e:
        raise ManifestError(f"Invalid manifest {path}: {e}")

    return data or {}


def find_manifest(dotfiles_dir: Path, explicit: Optional[Path] = None) -> Path:
    """
    Locate the manifest: explicit path, then one inside the dotfiles tree,
    then the packaged default.
    """
    if explicit is not None:
        if not Path(explicit).is_file():
            raise ManifestError(f"Manifest not found: {explicit}")
        return Path(explicit)

    for name in MANIFEST_NAMES:
        candidate = Path(dotfiles_dir) / name
        if candidate.is_file():
            return candidate

    return default_manifest_path()


def load_manifest(dotfiles_dir: Path,
                  variables: Mapping[str, str],
                  home: Path,
                  explicit: Optional[Path] = None) -> Manifest:
    """Find, parse and validate the manifest for a run."""
    path = find_manifest(dotfiles_dir, explicit)
    logger.debug(f"Loading manifest from {path}")
    return Manifest.from_dict(load_manifest_data(path), variables, home, source=path)
