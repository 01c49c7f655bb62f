#!/usr/bin/env python3
"""
Platform detection and host facts for dotstrap.

This module detects the operating system and answers the questions the
provisioning engine asks about the host: where home is, whether the process
runs as root, and which user should own the files it creates.
"""

import os
import getpass
import platform
from pathlib import Path
from typing import Dict, Optional
from enum import Enum


class OSType(Enum):
    """Supported operating system types."""
    LINUX = "linux"
    WSL = "wsl"
    MACOS = "darwin"
    UNKNOWN = "unknown"


class PlatformDetector:
    """Handles platform detection and host-specific facts."""

    def __init__(self, home: Optional[Path] = None):
        self._os_type = self._detect_os()
        self._home_dir = Path(home) if home else Path.home()

    @staticmethod
    def _detect_os() -> OSType:
        """Detect the current operating system."""
        system = platform.system().lower()

        if system == "linux":
            if "microsoft" in platform.release().lower():
                return OSType.WSL
            return OSType.LINUX
        elif system == "darwin":
            return OSType.MACOS
        else:
            return OSType.UNKNOWN

    @property
    def os_type(self) -> OSType:
        """Get the detected OS type."""
        return self._os_type

    @property
    def home_dir(self) -> Path:
        """Get the user's home directory."""
        return self._home_dir

    @property
    def local_bin(self) -> Path:
        """Private executable directory."""
        return self._home_dir / '.local' / 'bin'

    @property
    def is_root(self) -> bool:
        """Check if the process runs with an effective uid of 0."""
        return hasattr(os, 'geteuid') and os.geteuid() == 0

    def acting_user(self) -> str:
        """User who should own created files, even when run under sudo."""
        return os.environ.get('SUDO_USER') or getpass.getuser()

    def get_system_info(self) -> Dict[str, str]:
        """Get detailed system information."""
        return {
            'os_type': self.os_type.value,
            'platform': platform.platform(),
            'machine': platform.machine(),
            'python_version': platform.python_version(),
            'home_directory': str(self.home_dir),
            'is_root': str(self.is_root),
            'acting_user': self.acting_user(),
        }


# Global instance for convenience
platform_detector = PlatformDetector()
