"""
pnpm implementation of the package manager interface.
"""

import asyncio
from pathlib import Path
from typing import List

import yaml

from monopack.core.errors import DiscoveryError
from monopack.pak.base import CommandResult, PackageManager, last_line

WORKSPACE_FILE = "pnpm-workspace.yaml"


def read_pnpm_workspaces(root: Path) -> List[str]:
    """Return the ``packages`` patterns of ``pnpm-workspace.yaml``."""
    workspace_file = Path(root) / WORKSPACE_FILE
    try:
        with open(workspace_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return []
    except (OSError, yaml.YAMLError) as e:
        raise DiscoveryError(f"Could not read {workspace_file}: {e}") from e

    packages = config.get("packages", []) if isinstance(config, dict) else None
    if not isinstance(packages, list) or not all(isinstance(p, str) for p in packages):
        raise DiscoveryError(f"Unsupported packages field in {workspace_file}")
    return packages


class PnpmPackageManager(PackageManager):
    """Lists workspaces from pnpm-workspace.yaml and packs with ``pnpm pack``."""

    @property
    def name(self) -> str:
        return "pnpm"

    async def workspace_patterns(self) -> List[str]:
        return await asyncio.to_thread(read_pnpm_workspaces, self.cwd)

    async def pack(self, workspace: str, target_dir: Path) -> CommandResult:
        result = await self.run_command(
            [self.name, "pack", "--pack-destination", str(target_dir)],
            cwd=self.cwd / workspace,
        )
        if not result.success:
            return result
        # Recent pnpm versions print the full path, older ones only the filename
        archive_path = Path(last_line(result.stdout))
        if not archive_path.is_absolute():
            archive_path = Path(target_dir) / archive_path.name
        return result.model_copy(update={"stdout": str(archive_path)})
