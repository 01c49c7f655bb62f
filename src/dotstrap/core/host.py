"""
Host fix-ups around provisioning: XDG base directories, command aliases for
binaries some distributions ship under another name, and private directories
with fixed permissions.
"""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional

from .errors import DotstrapError
from .runner import CommandRunner
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class XdgDirs:
    """XDG base directories for this run."""
    config_home: Path
    cache_home: Path
    data_home: Path
    state_home: Path

    @classmethod
    def from_environ(cls, environ: Mapping[str, str], home: Path) -> 'XdgDirs':
        """Read the XDG variables, falling back to the standard defaults."""
        def pick(name: str, default: Path) -> Path:
            value = environ.get(name)
            return Path(value) if value else default

        return cls(
            config_home=pick('XDG_CONFIG_HOME', home / '.config'),
            cache_home=pick('XDG_CACHE_HOME', home / '.cache'),
            data_home=pick('XDG_DATA_HOME', home / '.local' / 'share'),
            state_home=pick('XDG_STATE_HOME', home / '.local' / 'state'),
        )

    def variables(self) -> Dict[str, str]:
        return {
            'XDG_CONFIG_HOME': str(self.config_home),
            'XDG_CACHE_HOME': str(self.cache_home),
            'XDG_DATA_HOME': str(self.data_home),
            'XDG_STATE_HOME': str(self.state_home),
        }

    def export(self, environ: MutableMapping[str, str]):
        """Set each variable in `environ` unless it is already set."""
        for name, value in self.variables().items():
            if not environ.get(name):
                environ[name] = value

    def ensure(self, local_bin: Path):
        """Create the base directories and the private executable directory."""
        logger.info("Configuring XDG base directories...")
        for directory in (self.config_home, self.cache_home, self.data_home,
                          self.state_home, local_bin):
            directory.mkdir(parents=True, exist_ok=True)


def link_command_alias(runner: CommandRunner,
                       command: str,
                       alternate: str,
                       local_bin: Path) -> Optional[Path]:
    """
    Expose `alternate` under the name `command` in the private bin directory.

    Only acts when the alternate binary exists and `command` does not,
    e.g. Debian ships fd as 'fdfind'.
    """
    alternate_path = runner.which(alternate)
    if alternate_path is None or runner.which(command) is not None:
        return None

    link = local_bin / command
    if link.exists() and not link.is_symlink():
        logger.warning(f"{link} exists and is not a symlink; not aliasing {alternate}")
        return None

    logger.info(f"Mapping '{alternate}' to '{command}' in {local_bin}...")
    local_bin.mkdir(parents=True, exist_ok=True)
    if link.is_symlink():
        link.unlink()
    os.symlink(alternate_path, link)
    return link


def secure_directory(path: Path, owner: str, mode: int = 0o700):
    """
    Create a directory, hand it recursively to `owner` and restrict its mode.

    Raises:
        DotstrapError: `owner` is not a known user
        OSError: Ownership or permissions could not be applied
    """
    path.mkdir(parents=True, exist_ok=True)

    try:
        shutil.chown(path, user=owner)
        for root, dirs, files in os.walk(path):
            for name in dirs + files:
                entry = os.path.join(root, name)
                if not os.path.islink(entry):
                    shutil.chown(entry, user=owner)
    except LookupError as e:
        raise DotstrapError(f"Cannot hand {path} to '{owner}': {e}")

    os.chmod(path, mode)
    logger.info(f"Permissions secured on {path} ({oct(mode)}, owner {owner})")
