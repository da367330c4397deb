"""
Pack every workspace of a monorepo and point their archives at each other.

The pipeline runs in strictly ordered phases:

1. discovery of all publishable workspaces,
2. resolution of the dependencies between them,
3. creation of one archive per workspace,
4. rewriting each archive's package.json so internal dependencies reference
   the sibling archives through ``file:`` specifiers.

Phases 3 and 4 run one task per package through a bounded queue. The first
failure ends the run once the tasks already in flight have settled.
"""

import asyncio
import functools
import logging
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field

from monopack.archive.naming import file_reference, strip_version
from monopack.archive.scratch import ScratchRoot, scratch_root
from monopack.archive.transform import Manifest, ManifestMutation, rewrite_manifest
from monopack.core.config import settings
from monopack.core.errors import (
    ArchiveTransformError,
    DependencyResolutionError,
    MonopackError,
    PackError,
)
from monopack.pak import PackageManager, detect_package_manager
from monopack.pipelines.queue import BoundedTaskQueue
from monopack.workspace.discovery import discover_workspace
from monopack.workspace.graph import resolve_internal_dependencies
from monopack.workspace.schemas import Package, WorkspaceSet

logger = logging.getLogger(__name__)


class PackOptions(BaseModel):
    """Options of a packing run."""
    target_dir: Path = Field(default_factory=lambda: Path(settings.target_dir))
    no_version: bool = False  # Strip "-<version>" from archive filenames
    absolute: bool = False    # Reference archives by absolute path
    concurrency: int = Field(default_factory=lambda: settings.concurrency, ge=1)


class PackPipeline:
    """Runs the discovery, pack and rewrite phases for one workspace root."""

    def __init__(
        self,
        workspace_root: Union[str, Path],
        options: Optional[PackOptions] = None,
        package_manager: Optional[PackageManager] = None,
    ):
        self.workspace_root = Path(os.path.abspath(workspace_root))
        self.options = options or PackOptions()
        target_dir = Path(self.options.target_dir)
        if not target_dir.is_absolute():
            target_dir = self.workspace_root / target_dir
        self.target_dir = Path(os.path.abspath(target_dir))
        self.package_manager = package_manager

    async def run(self) -> WorkspaceSet:
        """Run all phases. The scratch root is removed however the run ends."""
        with scratch_root(self.target_dir) as scratch:
            if self.package_manager is None:
                self.package_manager = detect_package_manager(self.workspace_root)
            queue = BoundedTaskQueue(self.options.concurrency)

            logger.info("Parsing workspace...")
            workspace_set = await discover_workspace(self.package_manager)
            resolve_internal_dependencies(workspace_set)

            logger.info("Packing tarballs...")
            await asyncio.to_thread(self.target_dir.mkdir, parents=True, exist_ok=True)
            for package in workspace_set:
                queue.add(functools.partial(self.pack_package, package))
            await queue.join()

            logger.info("Modifying workspaces...")
            for package in workspace_set:
                queue.add(functools.partial(self.modify_package, package, workspace_set, scratch))
            await queue.join()

        logger.info("Done!")
        return workspace_set

    async def pack_package(self, package: Package) -> None:
        logger.info(f"  {package.name}")
        workspace = os.path.relpath(package.directory, self.package_manager.cwd)
        result = await self.package_manager.pack(workspace, self.target_dir)
        if not result.success:
            raise PackError(package.name, result.stderr)
        if not result.stdout.strip():
            raise PackError(package.name, "the package manager did not report an archive path")

        archive_path = Path(result.stdout.strip())
        if not archive_path.is_absolute():
            archive_path = self.target_dir / archive_path
        package.archive_path = archive_path

    def final_archive_path(self, package: Package) -> Path:
        """Where the package's archive ends up once the run is complete."""
        if self.options.no_version:
            return Path(strip_version(package.archive_path, package.version))
        return package.archive_path

    def build_mutation(self, package: Package, workspace_set: WorkspaceSet) -> ManifestMutation:
        """
        Build the manifest edit for ``package``'s archive.

        Internal dependencies are pointed at the sibling archives whatever
        version range they declared, and devDependencies are dropped.
        """
        references = {}
        for name in package.dependency_names:
            dependency = workspace_set.get(name)
            if dependency is None or dependency.archive_path is None:
                raise DependencyResolutionError(name, package.name)
            references[name] = file_reference(self.final_archive_path(dependency), self.options.absolute)

        def mutate(manifest: Manifest) -> Manifest:
            if references:
                dependencies = manifest.setdefault("dependencies", {})
                if not isinstance(dependencies, dict):
                    raise ArchiveTransformError("dependencies is not an object", package=package.name)
                dependencies.update(references)
            # Avoid accidentally installing dev dependencies
            manifest.pop("devDependencies", None)
            return manifest

        return mutate

    async def modify_package(self, package: Package, workspace_set: WorkspaceSet, scratch: ScratchRoot) -> None:
        logger.info(f"  {package.name} starting...")
        mutate = self.build_mutation(package, workspace_set)

        async with scratch.task_dir() as task_dir:
            try:
                await asyncio.to_thread(rewrite_manifest, package.archive_path, mutate, task_dir)
            except ArchiveTransformError as e:
                if e.package:
                    raise
                raise ArchiveTransformError(str(e), package=package.name) from e

        final_path = self.final_archive_path(package)
        if final_path != package.archive_path:
            await asyncio.to_thread(os.replace, package.archive_path, final_path)

        logger.info(f"  {package.name} done!")


async def pack_workspace(
    workspace_root: Union[str, Path],
    options: Optional[PackOptions] = None,
    package_manager: Optional[PackageManager] = None,
) -> WorkspaceSet:
    """Pack ``workspace_root`` and return the packages with their archives."""
    pipeline = PackPipeline(workspace_root, options, package_manager)
    return await pipeline.run()


def run(
    workspace_root: Union[str, Path],
    options: Optional[PackOptions] = None,
    package_manager: Optional[PackageManager] = None,
) -> int:
    """
    Pack ``workspace_root`` and return the process exit code.

    Fatal packing errors are logged and turned into exit code 1. Any other
    exception propagates after the scratch directory has been removed.
    """
    try:
        asyncio.run(pack_workspace(workspace_root, options, package_manager))
    except MonopackError as e:
        logger.error(str(e))
        return 1
    return 0
