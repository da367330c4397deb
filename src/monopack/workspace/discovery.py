"""
Workspace discovery: read every member's manifest and build the workspace set.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from monopack.core.errors import DiscoveryError
from monopack.pak.base import PackageManager
from monopack.workspace.manifest import read_manifest_file
from monopack.workspace.schemas import Package, WorkspaceSet

logger = logging.getLogger(__name__)


def package_from_manifest(directory: Path, manifest: Dict[str, Any]) -> Package:
    try:
        return Package(
            name=manifest.get("name"),
            directory=directory,
            version=manifest.get("version"),
            manifest=manifest,
        )
    except ValidationError as e:
        raise DiscoveryError(f"Invalid manifest in {directory}: {e}") from e


async def discover_workspace(package_manager: PackageManager) -> WorkspaceSet:
    """
    Build the workspace set from the package manager's member directories.

    Private members are skipped entirely. Any unreadable or invalid manifest
    aborts discovery.
    """
    workspace_set = WorkspaceSet()
    for directory in await package_manager.workspaces():
        manifest = await asyncio.to_thread(read_manifest_file, directory)
        if manifest.get("private"):
            logger.debug(f"Skipping private workspace {directory}")
            continue
        workspace_set.add(package_from_manifest(Path(directory), manifest))
    logger.info(f"Found {len(workspace_set)} publishable workspaces")
    return workspace_set
