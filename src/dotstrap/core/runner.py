#!/usr/bin/env python3
"""
External command execution for dotstrap.

Every package manager call, version probe and installer script goes through a
CommandRunner so that tests can substitute a scripted fake.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .errors import CommandError
from ..utils.logger import get_logger


# Forced for every metadata/version query: field positions depend on locale.
C_LOCALE: Dict[str, str] = {'LC_ALL': 'C', 'LANG': 'C'}


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of one external command.

    Attributes:
        args: Command line that was executed
        returncode: Process exit status (127 when the executable is missing)
        stdout: Captured standard output ('' when not captured)
        stderr: Captured standard error ('' when not captured)
    """
    args: Tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout followed by stderr, like `2>&1`."""
        return self.stdout + self.stderr

    def check(self) -> 'CommandResult':
        """Raise CommandError unless the command succeeded."""
        if not self.ok:
            raise CommandError(self.args, self.returncode, self.stderr)
        return self


class CommandRunner:
    """Runs external commands with subprocess and looks up executables."""

    def __init__(self):
        self.logger = get_logger(f"{__name__}.CommandRunner")

    def which(self, name: str) -> Optional[str]:
        """Absolute path of an executable on the search path, or None."""
        return shutil.which(name)

    def run(self,
            args: Sequence[str],
            env: Optional[Mapping[str, str]] = None,
            capture: bool = True) -> CommandResult:
        """
        Run a command to completion.

        Args:
            args: Command and arguments
            env: Variables layered over the current environment
            capture: Capture output instead of streaming it to the terminal

        Returns:
            CommandResult; a missing executable yields exit code 127
        """
        args = tuple(str(arg) for arg in args)
        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        self.logger.debug(f"Running: {' '.join(args)}")
        try:
            completed = subprocess.run(
                args,
                env=full_env,
                capture_output=capture,
                encoding='utf-8',
                errors='replace',
            )
        except FileNotFoundError as e:
            return CommandResult(args, 127, "", str(e))
        except PermissionError as e:
            return CommandResult(args, 126, "", str(e))

        return CommandResult(
            args,
            completed.returncode,
            completed.stdout or "",
            completed.stderr or "",
        )
