"""
Utility modules for dotstrap.

This package contains platform detection, logging, and path helpers used
throughout dotstrap.
"""

from .logger import get_logger, setup_logging
from .platform import platform_detector, PlatformDetector, OSType

__all__ = [
    'get_logger',
    'setup_logging',
    'platform_detector',
    'PlatformDetector',
    'OSType',
]
