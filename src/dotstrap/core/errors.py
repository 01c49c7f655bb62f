"""
Exception hierarchy for dotstrap.

Recoverable conditions (MetadataQueryFailed, PackageManagerInstallFailed,
SymlinkConflict) are absorbed by the component that raises them. The rest
propagate to the orchestrator and terminate the run.
"""

from typing import Optional, Sequence


class DotstrapError(Exception):
    """Base exception for dotstrap errors."""
    pass


class UnsupportedEnvironment(DotstrapError):
    """No supported package manager or privilege mechanism on this host."""
    pass


class MetadataQueryFailed(DotstrapError):
    """A package manager metadata query produced no usable candidate."""

    def __init__(self, package: str, reason: str):
        self.package = package
        self.reason = reason
        super().__init__(f"Candidate lookup for '{package}' failed: {reason}")


class PackageManagerInstallFailed(DotstrapError):
    """The package manager did not deliver a sufficient version."""

    def __init__(self, package: str, reason: str):
        self.package = package
        self.reason = reason
        super().__init__(f"Package manager install of '{package}' failed: {reason}")


class FallbackInstallFailed(DotstrapError):
    """A fallback installer failed; no further recovery exists."""

    def __init__(self, tool: str, reason: str):
        self.tool = tool
        self.reason = reason
        super().__init__(f"Fallback installation of '{tool}' failed: {reason}")


class SymlinkConflict(DotstrapError):
    """A destination could not be moved out of the way."""
    pass


class CommandError(DotstrapError):
    """A strict external command exited non-zero or could not start."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = ""):
        self.args_ = tuple(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(
            f"Command '{' '.join(self.args_)}' failed with exit code {returncode}{detail}"
        )


class ManifestError(DotstrapError):
    """The manifest is missing or malformed."""
    pass


class StepFailed(DotstrapError):
    """Wraps a fatal error with the orchestrator stage that raised it."""

    def __init__(self, stage, cause: Optional[BaseException] = None):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage.description} failed: {cause}")
