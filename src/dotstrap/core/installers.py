#!/usr/bin/env python3
"""
Fallback installers.

Used only when the package manager cannot provide a recent enough tool. Each
installer exposes a single install() method so the provisioner does not care
which mechanism is behind it.
"""

import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from .errors import ManifestError
from .runner import CommandRunner
from ..utils.logger import get_logger


@dataclass(frozen=True)
class InstallerResult:
    """Outcome of a fallback installation."""
    success: bool
    message: str = ""
    binary_path: Optional[Path] = None


class Installer(ABC):
    """Manager-independent installation mechanism for one tool."""

    kind = "installer"

    def __init__(self, tool: str, runner: CommandRunner):
        self.logger = get_logger(f"{__name__}.{type(self).__name__}")
        self.tool = tool
        self.runner = runner

    @abstractmethod
    def install(self) -> InstallerResult:
        """Install the tool."""

    def describe(self) -> str:
        return f"{self.kind} installer for {self.tool}"


class ScriptInstaller(Installer):
    """
    Runs a vendor-provided install script.

    The script is downloaded once, then run with `args`. When that fails and
    `retry_args` is set (typically a user-local target directory), it is run
    once more with those instead.
    """

    kind = "script"

    def __init__(self,
                 tool: str,
                 runner: CommandRunner,
                 url: str,
                 args: Sequence[str] = (),
                 retry_args: Sequence[str] = ()):
        super().__init__(tool, runner)
        self.url = url
        self.args = tuple(args)
        self.retry_args = tuple(retry_args)

    def install(self) -> InstallerResult:
        self.logger.info(f"Fallback: installing {self.tool} via official script...")

        with tempfile.TemporaryDirectory(prefix="dotstrap-") as tmp:
            script = Path(tmp) / "install.sh"
            download = self.runner.run(("curl", "-fsSL", "-o", str(script), self.url))
            if not download.ok:
                return InstallerResult(False, f"Could not download {self.url}: {download.stderr.strip()}")

            result = self.runner.run(("sh", str(script)) + self.args, capture=False)
            if result.ok:
                return InstallerResult(True, f"{self.tool} installed by {self.url}")

            if not self.retry_args:
                return InstallerResult(False, f"Install script exited with {result.returncode}")

            self.logger.info("System-wide install failed. Attempting local install...")
            retry = self.runner.run(("sh", str(script)) + self.retry_args, capture=False)
            if retry.ok:
                return InstallerResult(True, f"{self.tool} installed locally by {self.url}")
            return InstallerResult(False, f"Install script exited with {retry.returncode}")


class SourceBuildInstaller(Installer):
    """
    Clones a repository and builds the tool from source.

    The checkout lives at a fixed path that is wiped before each attempt; the
    built binary is symlinked into the private executable directory.
    """

    kind = "source"

    def __init__(self,
                 tool: str,
                 runner: CommandRunner,
                 repository: str,
                 checkout_dir: Path,
                 build_command: Sequence[str],
                 binary: str,
                 link_path: Path):
        super().__init__(tool, runner)
        self.repository = repository
        self.checkout_dir = Path(checkout_dir)
        self.build_command = tuple(build_command)
        self.binary = binary
        self.link_path = Path(link_path)

    def install(self) -> InstallerResult:
        self.logger.info(f"Fallback: installing {self.tool} from source...")

        if self.checkout_dir.is_symlink() or self.checkout_dir.is_file():
            self.checkout_dir.unlink()
        elif self.checkout_dir.exists():
            self.logger.debug(f"Removing previous checkout {self.checkout_dir}")
            shutil.rmtree(self.checkout_dir)

        # GitPython refuses to import without a git binary, which the base
        # packages may only have installed during this run
        try:
            from git import Repo
            from git.exc import GitError
        except ImportError as e:
            return InstallerResult(False, f"GitPython cannot find git: {e}")

        self.checkout_dir.parent.mkdir(parents=True, exist_ok=True)
        try:
            Repo.clone_from(self.repository, self.checkout_dir, depth=1)
        except GitError as e:
            return InstallerResult(False, f"Failed to clone {self.repository}: {e}")

        build = self._resolve_build_command()
        result = self.runner.run(build, capture=False)
        if not result.ok:
            return InstallerResult(False, f"Build command exited with {result.returncode}")

        binary_path = self.checkout_dir / self.binary
        if not binary_path.exists():
            return InstallerResult(False, f"Build did not produce {binary_path}")

        self.link_path.parent.mkdir(parents=True, exist_ok=True)
        if self.link_path.is_symlink() or self.link_path.is_file():
            self.link_path.unlink()
        os.symlink(binary_path, self.link_path)

        self.logger.info(f"{self.tool} installed manually to {self.link_path}")
        return InstallerResult(True, f"{self.tool} built from {self.repository}", self.link_path)

    def _resolve_build_command(self) -> Tuple[str, ...]:
        # A relative program path refers to a file inside the checkout
        program, *rest = self.build_command
        if not os.path.isabs(program) and os.sep in program:
            program = str(self.checkout_dir / program)
        return (program, *rest)


INSTALLER_TYPES = {
    ScriptInstaller.kind: ScriptInstaller,
    SourceBuildInstaller.kind: SourceBuildInstaller,
}


def create_installer(tool: str,
                     spec: Dict[str, Any],
                     runner: CommandRunner,
                     local_bin: Path) -> Installer:
    """
    Build an installer from a manifest fallback entry.

    Args:
        tool: Command name the installer provides
        spec: Fallback entry with a 'type' key and type-specific fields
        runner: Command runner for external commands
        local_bin: Private executable directory

    Raises:
        ManifestError: Unknown type or missing field
    """
    kind = spec.get('type')
    try:
        if kind == ScriptInstaller.kind:
            return ScriptInstaller(
                tool,
                runner,
                url=spec['url'],
                args=spec.get('args', ()),
                retry_args=spec.get('retry_args', ()),
            )
        if kind == SourceBuildInstaller.kind:
            return SourceBuildInstaller(
                tool,
                runner,
                repository=spec['repository'],
                checkout_dir=Path(spec['checkout_dir']),
                build_command=spec['build_command'],
                binary=spec['binary'],
                link_path=Path(spec.get('link', local_bin / tool)),
            )
    except KeyError as e:
        raise ManifestError(f"Fallback for '{tool}' is missing field {e}")

    raise ManifestError(
        f"Unknown fallback type '{kind}' for '{tool}'. "
        f"Expected one of: {', '.join(sorted(INSTALLER_TYPES))}"
    )
