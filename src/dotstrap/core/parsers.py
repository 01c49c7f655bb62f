"""
Version extraction from command output.

Each tool and each package manager prints version information in its own
shape. The formats form a closed set: every parser here is a pure function
from captured text to a version string (or None when the field is absent).
"""

import re
from enum import Enum
from typing import Callable, Dict, Optional

from .environment import ManagerKind

_EPOCH = re.compile(r"^\d+:")
_BREW_STABLE = re.compile(r"\bstable\s+([^\s,]+)")


class ToolVersionFormat(Enum):
    """Where the version sits on the first line of `<tool> --version`."""
    FIRST_TOKEN = "first_token"    # fzf: "0.60 (devel)"
    SECOND_TOKEN = "second_token"  # starship: "starship 1.22.1"
    LAST_TOKEN = "last_token"      # git: "git version 2.34.1"


TOOL_FORMATS: Dict[str, ToolVersionFormat] = {
    'fzf': ToolVersionFormat.FIRST_TOKEN,
    'starship': ToolVersionFormat.SECOND_TOKEN,
}


def format_for_tool(command: str) -> ToolVersionFormat:
    """Parser variant for a tool; unknown tools use the last token."""
    return TOOL_FORMATS.get(command, ToolVersionFormat.LAST_TOKEN)


def parse_tool_version(output: str, version_format: ToolVersionFormat) -> Optional[str]:
    """Extract a version from the first line of a tool's version output."""
    lines = output.strip().splitlines()
    if not lines:
        return None
    tokens = lines[0].split()
    if not tokens:
        return None

    if version_format is ToolVersionFormat.FIRST_TOKEN:
        return tokens[0]
    if version_format is ToolVersionFormat.SECOND_TOKEN:
        return tokens[1] if len(tokens) > 1 else None
    return tokens[-1]


def _field(output: str, name: str) -> Optional[str]:
    """Value of the first "Name : value" line (whitespace around ':' optional)."""
    pattern = re.compile(rf"^\s*{re.escape(name)}\s*:\s*(\S+)", re.MULTILINE)
    match = pattern.search(output)
    return match.group(1) if match else None


def _strip_release(version: str) -> str:
    """Drop a distro epoch ("1:") and package release ("-1ubuntu2")."""
    return _EPOCH.sub("", version).split("-", 1)[0]


def parse_apt_policy(output: str) -> Optional[str]:
    """`apt-cache policy`: "  Candidate: 0.44.1-1" -> "0.44.1"."""
    candidate = _field(output, "Candidate")
    if not candidate or candidate == "(none)":
        return None
    return _strip_release(candidate) or None


def parse_dnf_info(output: str) -> Optional[str]:
    """`dnf info --available`: first "Version : 0.60.0" line."""
    version = _field(output, "Version")
    return _EPOCH.sub("", version) if version else None


def parse_pacman_info(output: str) -> Optional[str]:
    """`pacman -Si`: "Version : 0.60.3-1" -> "0.60.3"."""
    version = _field(output, "Version")
    return _strip_release(version) if version else None


def parse_brew_info(output: str) -> Optional[str]:
    """`brew info`: "==> fzf: stable 0.60.3 (bottled), HEAD" -> "0.60.3"."""
    lines = output.strip().splitlines()
    if not lines:
        return None
    match = _BREW_STABLE.search(lines[0])
    if match:
        return match.group(1)
    tokens = lines[0].split()
    return tokens[3].rstrip(",") if len(tokens) > 3 else None


CANDIDATE_PARSERS: Dict[ManagerKind, Callable[[str], Optional[str]]] = {
    ManagerKind.APT: parse_apt_policy,
    ManagerKind.DNF: parse_dnf_info,
    ManagerKind.PACMAN: parse_pacman_info,
    ManagerKind.BREW: parse_brew_info,
}


def parse_candidate(kind: ManagerKind, output: str) -> Optional[str]:
    """Candidate version from a manager's metadata query output."""
    return CANDIDATE_PARSERS[kind](output)
