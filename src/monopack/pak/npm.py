"""
npm implementation of the package manager interface.
"""

import asyncio
from pathlib import Path
from typing import List

from monopack.pak.base import CommandResult, PackageManager, last_line, read_package_json_workspaces


class NpmPackageManager(PackageManager):
    """Lists workspaces from package.json and packs with ``npm pack``."""

    @property
    def name(self) -> str:
        return "npm"

    async def workspace_patterns(self) -> List[str]:
        return await asyncio.to_thread(read_package_json_workspaces, self.cwd)

    async def pack(self, workspace: str, target_dir: Path) -> CommandResult:
        result = await self.run_command(
            [self.name, "pack", "--pack-destination", str(target_dir)],
            cwd=self.cwd / workspace,
        )
        if not result.success:
            return result
        # npm prints the archive filename as the last line of stdout
        return result.model_copy(update={"stdout": str(Path(target_dir) / last_line(result.stdout))})
