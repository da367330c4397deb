"""
Exception types raised while packing a workspace.

Every error that should end a run with a diagnostic derives from MonopackError.
"""

from typing import Optional


class MonopackError(Exception):
    """Base class for fatal packing errors."""


class DiscoveryError(MonopackError):
    """A workspace member could not be listed or its manifest is unusable."""


class PackageManagerError(DiscoveryError):
    """No supported package manager was found for the workspace root."""


class PackError(MonopackError):
    """The package manager failed to produce an archive for a package."""

    def __init__(self, package: str, stderr: str = ""):
        self.package = package
        self.stderr = stderr
        message = f"Packing {package} failed"
        if stderr.strip():
            message += f":\n{stderr.strip()}"
        super().__init__(message)


class DependencyResolutionError(MonopackError):
    """An internal dependency has no produced archive to point at."""

    def __init__(self, dependency: str, package: str):
        self.dependency = dependency
        self.package = package
        super().__init__(f"Did not find workspace {dependency}, required by {package}")


class ArchiveTransformError(MonopackError):
    """An archive or its embedded manifest could not be rewritten."""

    def __init__(self, message: str, package: Optional[str] = None):
        self.package = package
        if package:
            message = f"{package}: {message}"
        super().__init__(message)
