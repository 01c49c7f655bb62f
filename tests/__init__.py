"""
Test package for dotstrap.

This package contains unit tests for the provisioning engine (version
comparison, package manager detection, candidate lookup, tool provisioning,
symlink synchronization) and the orchestrator and CLI built on top of it.
"""

import sys
from pathlib import Path

# Add src directory to path so tests can import dotstrap modules
test_dir = Path(__file__).parent
src_dir = test_dir.parent / 'src'
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

__version__ = '1.0.0'
