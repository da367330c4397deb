"""
Schemas for workspace packages.

A Package is created while the workspace is discovered. Its dependency names
are filled in once by the dependency grapher and its archive path once by the
packing pipeline; nothing else changes during a run.
"""

from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, Field, field_validator

from monopack.core.errors import DiscoveryError


class Package(BaseModel):
    """A publishable workspace member."""
    name: str
    directory: Path
    version: str
    manifest: Dict[str, Any] = Field(default_factory=dict)
    dependency_names: List[str] = Field(default_factory=list)  # Internal dependencies only
    archive_path: Optional[Path] = None

    @field_validator("name", "version")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @property
    def declared_dependencies(self) -> Dict[str, Any]:
        """The manifest's ``dependencies`` mapping, or an empty one."""
        dependencies = self.manifest.get("dependencies")
        return dependencies if isinstance(dependencies, dict) else {}


class WorkspaceSet:
    """All non-private packages of one run, keyed by name, in discovery order."""

    def __init__(self, packages: Optional[List[Package]] = None):
        self._packages: Dict[str, Package] = {}
        for package in packages or []:
            self.add(package)

    def add(self, package: Package) -> None:
        existing = self._packages.get(package.name)
        if existing is not None:
            raise DiscoveryError(
                f"Duplicate package name {package.name} in {existing.directory} and {package.directory}"
            )
        self._packages[package.name] = package

    def get(self, name: str) -> Optional[Package]:
        return self._packages.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._packages)

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def __iter__(self) -> Iterator[Package]:
        return iter(list(self._packages.values()))

    def __len__(self) -> int:
        return len(self._packages)
