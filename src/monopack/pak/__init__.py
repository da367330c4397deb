"""
Package manager abstraction: list workspace members and pack them into archives.
"""

from monopack.pak.base import CommandResult, PackageManager
from monopack.pak.manager import PACKAGE_MANAGERS, detect_package_manager

__all__ = ["CommandResult", "PackageManager", "PACKAGE_MANAGERS", "detect_package_manager"]
