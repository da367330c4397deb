"""
Archive filename helpers.
"""

import os
from pathlib import Path
from typing import Union

from monopack.core.settings import ARCHIVE_EXTENSION


def archive_filename(name: str, version: str) -> str:
    """Return the filename npm gives the archive of ``name@version``.

    Scoped names drop the leading ``@`` and use ``-`` for the scope separator,
    e.g. ``@scope/pkg`` at ``1.0.0`` becomes ``scope-pkg-1.0.0.tgz``.
    """
    stem = name.lstrip("@").replace("/", "-")
    return f"{stem}-{version}{ARCHIVE_EXTENSION}"


def strip_version(filename: Union[str, Path], version: str) -> str:
    """Drop the ``-<version>`` segment from an archive filename or path.

    Names that do not end in ``-<version>.tgz`` are returned unchanged, so
    stripping twice is the same as stripping once.
    """
    filename = str(filename)
    suffix = f"-{version}{ARCHIVE_EXTENSION}"
    if version and filename.endswith(suffix):
        return filename[: -len(suffix)] + ARCHIVE_EXTENSION
    return filename


def file_reference(archive_path: Union[str, Path], absolute: bool) -> str:
    """Build the ``file:`` specifier a dependent package uses for an archive."""
    archive_path = Path(archive_path)
    if absolute:
        return f"file:{Path(os.path.abspath(archive_path)).as_posix()}"
    return f"file:./{archive_path.name}"
