"""
Repository candidate lookup.

Asks the selected package manager which version it would install, using
read-only metadata queries only.
"""

from typing import Optional

from .environment import Strategy
from .errors import MetadataQueryFailed
from .parsers import parse_candidate
from .runner import C_LOCALE, CommandRunner
from ..utils.logger import get_logger


class CandidateResolver:
    """Resolves the candidate version of a package for a strategy."""

    def __init__(self, runner: CommandRunner):
        self.logger = get_logger(f"{__name__}.CandidateResolver")
        self.runner = runner

    def query(self, strategy: Strategy, package: str) -> str:
        """
        Query the candidate version of a package.

        Raises:
            MetadataQueryFailed: The query failed or printed no version
        """
        result = self.runner.run(strategy.query_args(package), env=C_LOCALE)
        if not result.ok:
            raise MetadataQueryFailed(package, f"exit code {result.returncode}")

        version = parse_candidate(strategy.kind, result.stdout)
        if not version:
            raise MetadataQueryFailed(package, "no version field in output")
        return version

    def resolve(self, strategy: Strategy, package: str) -> Optional[str]:
        """Candidate version of a package, or None when there is no usable one."""
        try:
            version = self.query(strategy, package)
        except MetadataQueryFailed as e:
            self.logger.debug(str(e))
            return None

        self.logger.debug(f"{strategy.name} candidate for {package}: {version}")
        return version
