#!/usr/bin/env python3
"""
Bootstrap orchestration for dotstrap.

This module runs the stages of a bootstrap in order: detect the package
manager, install base packages, provision version-gated tools, fix naming
quirks, synchronize symlinks and secure private directories. Any fatal error
stops the run and names the stage that failed; re-running is always safe.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, MutableMapping, Optional

from .candidate import CandidateResolver
from .environment import EnvironmentDetector, Strategy
from .errors import DotstrapError, StepFailed
from .host import XdgDirs, link_command_alias, secure_directory
from .installers import create_installer
from .manifest import Manifest
from .provisioner import ProvisionOutcome, ToolProvisioner, ToolRequirement
from .runner import CommandRunner
from .symlinks import BackupSet, SymlinkSynchronizer, SyncReport
from .version import satisfies
from ..utils.logger import get_logger
from ..utils.platform import PlatformDetector, platform_detector


class Stage(Enum):
    """Orchestrator states, in the order they are reached."""
    INIT = "init"
    ENVIRONMENT_DETECTED = "environment_detected"
    BASE_PACKAGES_INSTALLED = "base_packages_installed"
    TOOLS_PROVISIONED = "tools_provisioned"
    QUIRKS_FIXED = "quirks_fixed"
    LINKS_SYNCED = "links_synced"
    PERMISSIONS_SECURED = "permissions_secured"
    DONE = "done"

    @property
    def description(self) -> str:
        return _STAGE_DESCRIPTIONS[self]


_STAGE_DESCRIPTIONS = {
    Stage.INIT: "Initialization",
    Stage.ENVIRONMENT_DETECTED: "Environment detection",
    Stage.BASE_PACKAGES_INSTALLED: "Base package installation",
    Stage.TOOLS_PROVISIONED: "Tool provisioning",
    Stage.QUIRKS_FIXED: "Platform quirk fix-ups",
    Stage.LINKS_SYNCED: "Dotfile synchronization",
    Stage.PERMISSIONS_SECURED: "Permission hardening",
    Stage.DONE: "Completion",
}


@dataclass
class RunReport:
    """What a bootstrap run did."""
    stage: Stage = Stage.INIT
    strategy: Optional[Strategy] = None
    outcomes: List[ProvisionOutcome] = field(default_factory=list)
    aliases: List[Path] = field(default_factory=list)
    sync: Optional[SyncReport] = None

    @property
    def succeeded(self) -> bool:
        return self.stage is Stage.DONE and (self.sync is None or self.sync.failed == 0)


@dataclass(frozen=True)
class ToolCheck:
    """Read-only view of one requirement."""
    command: str
    minimum: str
    installed: Optional[str]
    candidate: Optional[str]

    @property
    def satisfied(self) -> bool:
        return satisfies(self.installed, self.minimum)


class Orchestrator:
    """Sequences a full bootstrap run."""

    def __init__(self,
                 manifest: Manifest,
                 xdg: XdgDirs,
                 dotfiles_dir: Path,
                 runner: Optional[CommandRunner] = None,
                 platform: Optional[PlatformDetector] = None,
                 environ: Optional[MutableMapping[str, str]] = None,
                 timestamp: Optional[datetime] = None):
        """
        Initialize orchestrator.

        Args:
            manifest: Declarative description of the run
            xdg: XDG base directories for this run
            dotfiles_dir: Root of the dotfiles tree (link sources)
            runner: Command runner (subprocess-backed by default)
            platform: Host facts (home, root, acting user)
            environ: Environment receiving the XDG exports
            timestamp: Run time, names the backup directory
        """
        self.logger = get_logger(f"{__name__}.Orchestrator")
        self.manifest = manifest
        self.xdg = xdg
        self.dotfiles_dir = Path(dotfiles_dir)
        self.runner = runner or CommandRunner()
        self.platform = platform or platform_detector
        self.environ = os.environ if environ is None else environ
        self.timestamp = timestamp or datetime.now()
        self.report = RunReport()

    @property
    def local_bin(self) -> Path:
        return self.platform.local_bin

    def run(self) -> RunReport:
        """
        Run every stage in order.

        Raises:
            StepFailed: A stage failed fatally
        """
        self.logger.info("Starting dotfiles setup")

        self._advance(Stage.ENVIRONMENT_DETECTED, self.detect_environment)
        self._advance(Stage.BASE_PACKAGES_INSTALLED, self.install_base_packages)
        self._advance(Stage.TOOLS_PROVISIONED, self.provision_tools)
        self._advance(Stage.QUIRKS_FIXED, self.fix_quirks)
        self._advance(Stage.LINKS_SYNCED, self.sync_links)
        self._advance(Stage.PERMISSIONS_SECURED, self.secure_permissions)
        self.report.stage = Stage.DONE

        self.logger.info("Setup complete! Restart your shell or run 'source ~/.bashrc' to apply changes.")
        return self.report

    def run_links_only(self) -> RunReport:
        """Prepare XDG directories and synchronize symlinks, nothing else."""
        self._advance(Stage.LINKS_SYNCED, self._links_with_xdg)
        self.report.stage = Stage.DONE
        return self.report

    def _links_with_xdg(self):
        self.prepare_xdg()
        self.sync_links()

    def _advance(self, stage: Stage, action):
        try:
            action()
        except (DotstrapError, OSError) as e:
            self.logger.error(f"{stage.description} failed: {e}")
            raise StepFailed(stage, e) from e
        self.report.stage = stage

    def detect_environment(self):
        self.report.strategy = EnvironmentDetector(self.runner, self.platform).detect()
        self.prepare_xdg()

    def prepare_xdg(self):
        self.xdg.export(self.environ)
        self.xdg.ensure(self.local_bin)

    def install_base_packages(self):
        strategy = self._strategy()
        packages = list(self.manifest.packages) + list(strategy.baseline_packages)

        self.logger.info("Updating repositories...")
        self.runner.run(strategy.update_args(), capture=False).check()

        if packages:
            self.logger.info(f"Installing: {' '.join(strategy.package_name(p) for p in packages)}")
            self.runner.run(strategy.install_args(packages), capture=False).check()
        self.logger.info("Base packages installed.")

    def provision_tools(self):
        provisioner = self._provisioner()
        for requirement in self.requirements():
            self.report.outcomes.append(provisioner.ensure(requirement))

    def requirements(self) -> List[ToolRequirement]:
        """ToolRequirements built from the manifest."""
        return [
            ToolRequirement(
                command=tool.command,
                package=tool.package,
                minimum=tool.minimum,
                fallback=create_installer(tool.command, tool.fallback, self.runner, self.local_bin),
            )
            for tool in self.manifest.tools
        ]

    def fix_quirks(self):
        for command, alternate in self.manifest.aliases.items():
            link = link_command_alias(self.runner, command, alternate, self.local_bin)
            if link is not None:
                self.report.aliases.append(link)

    def sync_links(self):
        backup_set = BackupSet(self.platform.home_dir, self.timestamp)
        synchronizer = SymlinkSynchronizer(self.dotfiles_dir, backup_set)
        self.report.sync = synchronizer.sync(self.manifest.links)
        if self.report.sync.failed:
            self.logger.warning(f"{self.report.sync.failed} link(s) could not be synchronized")

    def secure_permissions(self):
        owner = self.platform.acting_user()
        for private_dir in self.manifest.private_dirs:
            secure_directory(private_dir.path, owner, private_dir.mode)

    def check_tools(self) -> List[ToolCheck]:
        """Report installed and candidate versions without changing anything."""
        strategy = EnvironmentDetector(self.runner, self.platform).detect(prewarm=False)
        self.report.strategy = strategy
        resolver = CandidateResolver(self.runner)
        provisioner = ToolProvisioner(self.runner, strategy, resolver, self.local_bin)
        return [
            ToolCheck(
                command=tool.command,
                minimum=tool.minimum,
                installed=provisioner.installed_version(tool.command),
                candidate=resolver.resolve(strategy, tool.package),
            )
            for tool in self.manifest.tools
        ]

    def _strategy(self) -> Strategy:
        if self.report.strategy is None:
            raise DotstrapError("Environment has not been detected")
        return self.report.strategy

    def _provisioner(self) -> ToolProvisioner:
        strategy = self._strategy()
        return ToolProvisioner(self.runner, strategy, CandidateResolver(self.runner), self.local_bin)
