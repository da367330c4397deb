"""
Yarn (berry) implementation of the package manager interface.
"""

import asyncio
from pathlib import Path
from typing import List

from monopack.archive.naming import archive_filename
from monopack.core.errors import DiscoveryError
from monopack.pak.base import CommandResult, PackageManager, read_package_json_workspaces
from monopack.workspace.manifest import read_manifest_file


class YarnPackageManager(PackageManager):
    """Lists workspaces from package.json and packs with ``yarn pack --out``."""

    @property
    def name(self) -> str:
        return "yarn"

    async def workspace_patterns(self) -> List[str]:
        return await asyncio.to_thread(read_package_json_workspaces, self.cwd)

    async def pack(self, workspace: str, target_dir: Path) -> CommandResult:
        directory = self.cwd / workspace
        try:
            manifest = await asyncio.to_thread(read_manifest_file, directory)
        except DiscoveryError as e:
            return CommandResult(success=False, stderr=str(e))

        # yarn does not report where it wrote the archive, so name it up front
        archive_path = Path(target_dir) / archive_filename(manifest["name"], manifest["version"])
        result = await self.run_command([self.name, "pack", "--out", str(archive_path)], cwd=directory)
        if not result.success:
            return result
        return result.model_copy(update={"stdout": str(archive_path)})
