# src/monopack/pak/manager.py
"""
Detect which package manager a workspace uses.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Type, Union

from monopack.core.errors import PackageManagerError
from monopack.core.settings import LOCKFILES, MANIFEST_FILENAME
from monopack.pak.base import PackageManager
from monopack.pak.npm import NpmPackageManager
from monopack.pak.pnpm import PnpmPackageManager
from monopack.pak.yarn import YarnPackageManager

logger = logging.getLogger(__name__)

PACKAGE_MANAGERS: Dict[str, Type[PackageManager]] = {
    "npm": NpmPackageManager,
    "yarn": YarnPackageManager,
    "pnpm": PnpmPackageManager,
}


def detect_package_manager(cwd: Union[str, Path]) -> PackageManager:
    """
    Find the package manager for the project containing ``cwd``.

    Walks up from ``cwd`` to the first directory with a known lockfile and
    returns that manager rooted there. Falls back to npm in ``cwd`` when only
    a package.json is present.

    Raises:
        PackageManagerError: No lockfile and no package.json was found
    """
    start = Path(os.path.abspath(cwd))
    for directory in (start, *start.parents):
        for lockfile, manager_name in LOCKFILES:
            if (directory / lockfile).is_file():
                logger.debug(f"Detected {manager_name} from {directory / lockfile}")
                return PACKAGE_MANAGERS[manager_name](directory)

    if (start / MANIFEST_FILENAME).is_file():
        logger.debug(f"No lockfile found, using npm in {start}")
        return NpmPackageManager(start)
    raise PackageManagerError(f"Could not detect a package manager for {start}")
