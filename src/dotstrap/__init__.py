"""
dotstrap - bootstrap a user environment from a dotfiles tree

Detects the host's package manager, provisions command-line tools at a
minimum version, and links configuration files into place with safe backup
of anything they replace.
"""

__version__ = "1.0.0"
__description__ = "Bootstrap a user environment from a dotfiles tree"

from .core.orchestrator import Orchestrator
from .core.manifest import Manifest, load_manifest
from .utils.logger import get_logger

__all__ = [
    'Orchestrator',
    'Manifest',
    'load_manifest',
    'get_logger',
]
