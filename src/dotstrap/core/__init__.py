"""
Core modules for dotstrap.

This package contains the provisioning engine: version comparison, package
manager detection, candidate lookup, tool provisioning, symlink
synchronization and the orchestrator that sequences them.
"""

from .errors import (
    DotstrapError,
    UnsupportedEnvironment,
    MetadataQueryFailed,
    PackageManagerInstallFailed,
    FallbackInstallFailed,
    SymlinkConflict,
    CommandError,
    ManifestError,
    StepFailed,
)
from .version import Comparison, compare
from .environment import EnvironmentDetector, ManagerKind, Strategy
from .provisioner import ToolProvisioner, ToolRequirement, ProvisionStatus
from .symlinks import SymlinkSynchronizer, LinkSpec, BackupSet
from .orchestrator import Orchestrator, Stage

__all__ = [
    'DotstrapError',
    'UnsupportedEnvironment',
    'MetadataQueryFailed',
    'PackageManagerInstallFailed',
    'FallbackInstallFailed',
    'SymlinkConflict',
    'CommandError',
    'ManifestError',
    'StepFailed',
    'Comparison',
    'compare',
    'EnvironmentDetector',
    'ManagerKind',
    'Strategy',
    'ToolProvisioner',
    'ToolRequirement',
    'ProvisionStatus',
    'SymlinkSynchronizer',
    'LinkSpec',
    'BackupSet',
    'Orchestrator',
    'Stage',
]
