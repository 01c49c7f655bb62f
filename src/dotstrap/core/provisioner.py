#!/usr/bin/env python3
"""
Version-gated tool provisioning.

For each required tool, tries in order: the copy already installed, the
package manager's candidate, then the tool's fallback installer. The first
step that yields a recent enough version wins.
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .candidate import CandidateResolver
from .environment import Strategy
from .errors import FallbackInstallFailed, PackageManagerInstallFailed
from .installers import Installer
from .parsers import format_for_tool, parse_tool_version
from .runner import C_LOCALE, CommandRunner
from .version import compare, is_older, Comparison
from ..utils.logger import get_logger


@dataclass(frozen=True)
class ToolRequirement:
    """
    A tool that must be present at a minimum version.

    Attributes:
        command: Executable name (e.g. "fzf")
        package: Package name in the system repositories
        minimum: Minimum acceptable version
        fallback: Installer used when the package manager falls short
    """
    command: str
    package: str
    minimum: str
    fallback: Installer


class ProvisionStatus(Enum):
    """How a requirement ended up satisfied."""
    SATISFIED = "satisfied"
    INSTALLED = "installed"
    FALLBACK_USED = "fallback_used"


@dataclass(frozen=True)
class ProvisionOutcome:
    """Result of ensuring one requirement."""
    command: str
    status: ProvisionStatus
    version: Optional[str] = None


class ToolProvisioner:
    """Ensures tools meet their minimum versions."""

    def __init__(self,
                 runner: CommandRunner,
                 strategy: Strategy,
                 resolver: CandidateResolver,
                 local_bin: Path):
        """
        Initialize tool provisioner.

        Args:
            runner: Command runner for version probes and installs
            strategy: Detected package manager strategy
            resolver: Candidate version resolver
            local_bin: Private executable directory, searched first
        """
        self.logger = get_logger(f"{__name__}.ToolProvisioner")
        self.runner = runner
        self.strategy = strategy
        self.resolver = resolver
        self.local_bin = Path(local_bin)

    def locate(self, command: str) -> Optional[str]:
        """Path of a command, preferring the private executable directory."""
        local = self.local_bin / command
        if local.is_file() and os.access(local, os.X_OK):
            return str(local)
        return self.runner.which(command)

    def installed_version(self, command: str) -> Optional[str]:
        """Version of the installed command, or None when absent."""
        path = self.locate(command)
        if path is None:
            return None

        result = self.runner.run((path, "--version"), env=C_LOCALE)
        return parse_tool_version(result.output, format_for_tool(command))

    def ensure(self, requirement: ToolRequirement) -> ProvisionOutcome:
        """
        Make sure a tool is installed at its minimum version.

        Raises:
            FallbackInstallFailed: The fallback installer failed
        """
        command, minimum = requirement.command, requirement.minimum
        self.logger.info(f"Checking requirement: {command} >= {minimum}")

        # Step 1: local copy
        current = self.installed_version(command)
        if current is not None:
            if not is_older(current, minimum):
                self.logger.info(f"✓ Local {command} version ({current}) is sufficient.")
                return ProvisionOutcome(command, ProvisionStatus.SATISFIED, current)
            self.logger.info(f"⚠ Local {command} version ({current}) is outdated.")

        # Step 2: package manager candidate
        try:
            installed = self._install_from_repository(requirement)
        except PackageManagerInstallFailed as e:
            self.logger.warning(f"{e}. Proceeding to fallback.")
        else:
            if installed is not None:
                return ProvisionOutcome(command, ProvisionStatus.INSTALLED, installed)

        # Step 3: fallback
        fallback = requirement.fallback
        self.logger.info(f"Proceeding with manual installation strategy ({fallback.describe()})...")
        result = fallback.install()
        if not result.success:
            raise FallbackInstallFailed(command, result.message)

        version = self.installed_version(command)
        if is_older(version, minimum):
            self.logger.warning(
                f"{command} reports {version or 'no version'} after fallback installation"
            )
        return ProvisionOutcome(command, ProvisionStatus.FALLBACK_USED, version)

    def _install_from_repository(self, requirement: ToolRequirement) -> Optional[str]:
        """
        Install through the package manager when its candidate is recent enough.

        Returns:
            Installed version, or None when the candidate is missing or too old

        Raises:
            PackageManagerInstallFailed: Install failed or delivered an old version
        """
        package, minimum = requirement.package, requirement.minimum
        self.logger.info(f"Checking repository candidate for '{package}'...")
        candidate = self.resolver.resolve(self.strategy, package)

        if candidate is None or compare(candidate, minimum) is Comparison.LESS:
            self.logger.info(
                f"⚠ Repository version ({candidate or 'not found'}) is insufficient."
            )
            return None

        self.logger.info(
            f"✓ Repository version ({candidate}) is sufficient. "
            f"Installing via {self.strategy.name}..."
        )
        result = self.runner.run(self.strategy.install_args([package]), capture=False)
        if not result.ok:
            raise PackageManagerInstallFailed(package, f"exit code {result.returncode}")

        # The package manager copy stays installed even if it is too old.
        installed = self.installed_version(requirement.command)
        if is_older(installed, minimum):
            raise PackageManagerInstallFailed(
                package,
                f"installed {installed or 'nothing'}, which is still older than {minimum}",
            )
        return installed
