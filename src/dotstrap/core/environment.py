#!/usr/bin/env python3
"""
Package manager detection.

Probes the host for a supported package manager and a privilege mechanism
and returns an immutable Strategy describing how to update, install and
query packages on it.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from .errors import UnsupportedEnvironment
from .runner import CommandRunner
from ..utils.logger import get_logger
from ..utils.platform import PlatformDetector, platform_detector


class ManagerKind(Enum):
    """Supported package manager backends."""
    APT = "apt"
    DNF = "dnf"
    PACMAN = "pacman"
    BREW = "brew"


@dataclass(frozen=True)
class Strategy:
    """
    Selected package manager backend and its command templates.

    Attributes:
        kind: Backend identity
        executable: Binary whose presence selected this backend
        update_command: Refreshes repository metadata
        install_command: Install command, packages are appended
        query_command: Read-only candidate query, the package is appended
        baseline_packages: Distro-specific packages installed with the base set
        renames: Package names that differ on this backend
        privilege_prefix: Prepended to mutating commands ('sudo' or nothing)
    """
    kind: ManagerKind
    executable: str
    update_command: Tuple[str, ...]
    install_command: Tuple[str, ...]
    query_command: Tuple[str, ...]
    baseline_packages: Tuple[str, ...] = ()
    renames: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    privilege_prefix: Tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.kind.value

    def package_name(self, package: str) -> str:
        """Name of a package on this backend."""
        return self.renames.get(package, package)

    def update_args(self) -> Tuple[str, ...]:
        return self.privilege_prefix + self.update_command

    def install_args(self, packages: Iterable[str]) -> Tuple[str, ...]:
        names = tuple(self.package_name(p) for p in packages)
        return self.privilege_prefix + self.install_command + names

    def query_args(self, package: str) -> Tuple[str, ...]:
        return self.query_command + (self.package_name(package),)


# Probe order is deliberate (distro popularity), not alphabetical.
MANAGER_TEMPLATES: Tuple[Strategy, ...] = (
    Strategy(
        kind=ManagerKind.APT,
        executable="apt-get",
        update_command=("apt-get", "update"),
        install_command=("apt-get", "install", "-y"),
        query_command=("apt-cache", "policy"),
        baseline_packages=("build-essential", "fd-find"),
    ),
    Strategy(
        kind=ManagerKind.DNF,
        executable="dnf",
        update_command=("dnf", "makecache"),
        install_command=("dnf", "install", "-y"),
        query_command=("dnf", "info", "--available"),
        baseline_packages=("@development-tools", "fd-find"),
    ),
    Strategy(
        kind=ManagerKind.PACMAN,
        executable="pacman",
        update_command=("pacman", "-Sy"),
        install_command=("pacman", "-S", "--noconfirm", "--needed"),
        query_command=("pacman", "-Si"),
        baseline_packages=("base-devel", "fd"),
        renames=MappingProxyType({"gnupg2": "gnupg"}),
    ),
    Strategy(
        kind=ManagerKind.BREW,
        executable="brew",
        update_command=("brew", "update"),
        install_command=("brew", "install"),
        query_command=("brew", "info"),
        # GNU coreutils for version-aware sort in shell configuration
        baseline_packages=("coreutils", "fd"),
        renames=MappingProxyType({"gnupg2": "gnupg"}),
    ),
)


def get_template(kind: ManagerKind) -> Strategy:
    """Unprivileged strategy template for a backend."""
    for template in MANAGER_TEMPLATES:
        if template.kind is kind:
            return template
    raise KeyError(kind)


class EnvironmentDetector:
    """Chooses the package manager strategy for this host."""

    def __init__(self, runner: CommandRunner, platform: Optional[PlatformDetector] = None):
        self.logger = get_logger(f"{__name__}.EnvironmentDetector")
        self.runner = runner
        self.platform = platform or platform_detector

    def has_sudo(self) -> bool:
        return self.runner.which("sudo") is not None

    def detect(self, prewarm: bool = True) -> Strategy:
        """
        Probe the host and return the strategy to use for this run.

        Args:
            prewarm: Pre-authenticate sudo for the mutating commands that follow

        Raises:
            UnsupportedEnvironment: No manager found, or a system manager
                found without any way to obtain root
        """
        is_root = self.platform.is_root
        has_sudo = self.has_sudo()

        if not is_root and not has_sudo and self.runner.which("brew") is None:
            raise UnsupportedEnvironment(
                "Administrator privileges (sudo) or Homebrew are required."
            )

        if prewarm and has_sudo and not is_root:
            self.prewarm_sudo()

        for template in MANAGER_TEMPLATES:
            if self.runner.which(template.executable) is None:
                continue

            if template.kind is ManagerKind.BREW or is_root:
                prefix: Tuple[str, ...] = ()
            elif has_sudo:
                prefix = ("sudo",)
            else:
                raise UnsupportedEnvironment(
                    f"{template.name} requires root, but sudo is not available."
                )

            strategy = replace(template, privilege_prefix=prefix)
            self.logger.info(f"Environment detected: {strategy.name}")
            return strategy

        raise UnsupportedEnvironment(
            "Unsupported OS. Could not detect apt, dnf, pacman, or brew."
        )

    def prewarm_sudo(self) -> bool:
        """Refresh sudo credentials once so later commands don't prompt."""
        result = self.runner.run(("sudo", "-v"), capture=False)
        if not result.ok:
            self.logger.warning(
                "Could not pre-authenticate sudo; commands will prompt as needed"
            )
        return result.ok
