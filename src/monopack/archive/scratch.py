"""
Scratch space management for archive rewrites.

Every rewrite task works in its own directory under a single run-scoped root.
Task directories are removed when the task ends; the root is removed when the
run ends, whichever way it ends.
"""

import asyncio
import logging
import os
import secrets
import shutil
import stat
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import AsyncIterator, Iterator, Union

from monopack.core.settings import SCRATCH_ROOT_PREFIX, SCRATCH_TASK_PREFIX

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _unique_name(prefix: str) -> str:
    return f"{prefix}-{secrets.token_hex(4)}"


def acquire_scratch(base_dir: PathLike, prefix: str = SCRATCH_TASK_PREFIX) -> Path:
    """Create a fresh, empty directory under ``base_dir`` and return its path.

    The directory name carries a random suffix so concurrent tasks never
    collide. A name clash (very unlikely) is retried with a new suffix.
    """
    base = Path(base_dir)
    base.mkdir(parents=True, exist_ok=True)
    while True:
        path = base / _unique_name(prefix)
        try:
            path.mkdir()
        except FileExistsError:
            continue
        logger.debug(f"Acquired scratch directory {path}")
        return path


def _force_remove(func, path, exc):
    # Read-only entries (common in extracted archives) block removal
    mode = stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC
    os.chmod(os.path.dirname(path), mode)
    if os.path.exists(path):
        os.chmod(path, mode)
    func(path)


def release_scratch(path: PathLike) -> None:
    """Recursively remove ``path``. Missing paths are ignored."""
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, onexc=_force_remove)
    else:
        path.unlink()
    logger.debug(f"Released scratch directory {path}")


class ScratchRoot:
    """The run-scoped scratch root and the task directories beneath it."""

    def __init__(self, base_dir: PathLike):
        self.path = Path(base_dir) / _unique_name(SCRATCH_ROOT_PREFIX)

    @asynccontextmanager
    async def task_dir(self) -> AsyncIterator[Path]:
        """Yield a task-owned scratch directory, removed when the block exits."""
        path = await asyncio.to_thread(acquire_scratch, self.path)
        try:
            yield path
        finally:
            await asyncio.to_thread(release_scratch, path)

    def release(self) -> None:
        release_scratch(self.path)


@contextmanager
def scratch_root(base_dir: PathLike) -> Iterator[ScratchRoot]:
    """Own a run-scoped scratch root for the duration of the block.

    The root is released on normal exit and on any exception, including
    KeyboardInterrupt and SystemExit.
    """
    root = ScratchRoot(base_dir)
    try:
        yield root
    finally:
        try:
            root.release()
        except OSError as e:
            logger.warning(f"Could not remove scratch directory {root.path}: {e}")
