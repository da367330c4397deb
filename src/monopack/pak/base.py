# src/monopack/pak/base.py
"""
Base class for package manager implementations with common functionality.
"""

import asyncio
import glob
import json
import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel

from monopack.core.errors import DiscoveryError
from monopack.core.settings import MANIFEST_FILENAME

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    """Outcome of a package manager command."""
    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None


def last_line(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else ""


def expand_workspace_patterns(root: Path, patterns: Iterable[str]) -> List[Path]:
    """Resolve workspace glob patterns to member directories.

    Patterns starting with ``!`` exclude matches. Only directories holding a
    ``package.json`` count; anything inside ``node_modules`` is ignored.
    The result keeps the order in which patterns first matched.

    Args:
        root: Directory the patterns are relative to
        patterns: Glob patterns as written in the workspace configuration

    Returns:
        Absolute member directories without duplicates
    """
    included: List[Path] = []
    excluded = set()
    for pattern in patterns:
        pattern = pattern.strip()
        negate = pattern.startswith("!")
        if negate:
            pattern = pattern[1:]
        pattern = pattern.rstrip("/")
        if not pattern:
            continue

        matches = sorted(glob.glob(os.path.join(str(root), pattern), recursive=True))
        for match in matches:
            directory = Path(os.path.abspath(match))
            if "node_modules" in directory.parts:
                continue
            if not (directory / MANIFEST_FILENAME).is_file():
                continue
            if negate:
                excluded.add(directory)
            elif directory not in included:
                included.append(directory)
    return [directory for directory in included if directory not in excluded]


def read_package_json_workspaces(root: Path) -> List[str]:
    """Return the ``workspaces`` patterns of the root ``package.json``.

    Both the array form and the ``{"packages": [...]}`` form are accepted.
    A root without workspaces yields an empty list.
    """
    manifest_path = Path(root) / MANIFEST_FILENAME
    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            manifest = json.load(f)
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DiscoveryError(f"Could not read {manifest_path}: {e}") from e

    workspaces = manifest.get("workspaces") if isinstance(manifest, dict) else None
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    if workspaces is None:
        return []
    if not isinstance(workspaces, list) or not all(isinstance(p, str) for p in workspaces):
        raise DiscoveryError(f"Unsupported workspaces field in {manifest_path}")
    return workspaces


class PackageManager(ABC):
    """Base class for the package managers that list and pack workspaces."""

    def __init__(self, cwd: Union[str, Path]):
        self.cwd = Path(os.path.abspath(cwd))

    @property
    def name(self) -> str:
        """Get the executable name of this package manager.

        This should be overridden by concrete implementations.
        """
        return "base"

    @abstractmethod
    async def workspace_patterns(self) -> List[str]:
        """Return the configured workspace glob patterns."""
        raise NotImplementedError("Workspace listing not implemented")

    async def workspaces(self) -> List[Path]:
        """Return the absolute directories of all workspace members."""
        patterns = await self.workspace_patterns()
        return await asyncio.to_thread(expand_workspace_patterns, self.cwd, patterns)

    @abstractmethod
    async def pack(self, workspace: str, target_dir: Path) -> CommandResult:
        """Pack ``workspace`` (relative to ``cwd``) into ``target_dir``.

        On success ``stdout`` holds the path of the produced archive.
        """
        raise NotImplementedError("Packing not implemented")

    async def run_command(self, args: Sequence[str], cwd: Optional[Path] = None) -> CommandResult:
        """Run a command without blocking the event loop and capture its output."""
        executable = shutil.which(args[0])
        if executable is None:
            return CommandResult(success=False, stderr=f"{args[0]} was not found on PATH")

        cwd = cwd or self.cwd
        logger.debug(f"Running {' '.join(args)} in {cwd}")
        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *args[1:],
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return CommandResult(success=False, stderr=str(e))
        stdout, stderr = await proc.communicate()
        return CommandResult(
            success=proc.returncode == 0,
            stdout=stdout.decode("utf-8", errors="replace").strip(),
            stderr=stderr.decode("utf-8", errors="replace").strip(),
            exit_code=proc.returncode,
        )
