"""Rewrite the manifest embedded in a package archive.

Two strategies are available:

* ``stream`` reads the archive entry by entry and writes a new archive next to
  it, swapping in the mutated manifest when its entry comes by. Nothing is
  extracted to disk.
* ``extract`` unpacks the archive into a scratch directory, edits the manifest
  on disk and packs the tree again in the original member order.

Either way the new archive is written to a temporary file inside the task's
scratch directory and only replaces the original once it has been completely
written. Entries other than the manifest keep their content byte for byte.
"""

import copy
import gzip
import io
import json
import logging
import os
import tarfile
import zlib
from pathlib import Path
from typing import IO, Any, Callable, Dict, Iterable, Iterator, Optional, Tuple, Union

from monopack.core.config import ArchiveStrategy, settings
from monopack.core.errors import ArchiveTransformError

logger = logging.getLogger(__name__)

Manifest = Dict[str, Any]
ManifestMutation = Callable[[Manifest], Manifest]
Entry = Tuple[tarfile.TarInfo, Optional[IO[bytes]]]

# Errors raised by tarfile/gzip/zlib for unreadable or truncated archives
_ARCHIVE_ERRORS = (tarfile.TarError, OSError, EOFError, zlib.error)


def _norm_name(name: str) -> str:
    name = name.replace("\\", "/")
    while name.startswith("./"):
        name = name[2:]
    return name.lstrip("/")


def load_manifest(data: bytes, source: Union[str, Path]) -> Manifest:
    """Parse manifest bytes, insisting on a JSON object."""
    try:
        manifest = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ArchiveTransformError(f"Invalid manifest in {source}: {e}")
    if not isinstance(manifest, dict):
        raise ArchiveTransformError(f"Manifest in {source} is not a JSON object")
    return manifest


def dump_manifest(manifest: Manifest) -> bytes:
    return (json.dumps(manifest, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def _apply_mutation(data: bytes, mutate: ManifestMutation, source: Union[str, Path]) -> bytes:
    return dump_manifest(mutate(load_manifest(data, source)))


def transform_entries(
    archive: tarfile.TarFile,
    manifest_entry: str,
    mutate: ManifestMutation,
    source: Union[str, Path],
) -> Iterator[Entry]:
    """Yield ``(header, content)`` pairs of ``archive`` with the manifest mutated.

    Entries are produced lazily in archive order. Only the manifest entry is
    read into memory; every other entry is handed on as the open member file.
    Raises ArchiveTransformError once the archive is exhausted if it had no
    manifest entry.
    """
    target = _norm_name(manifest_entry)
    found = False
    for member in archive:
        fileobj = archive.extractfile(member) if member.isfile() else None
        if fileobj is None or _norm_name(member.name) != target:
            yield member, fileobj
            continue

        payload = _apply_mutation(fileobj.read(), mutate, source)
        header = copy.copy(member)
        header.size = len(payload)
        header.pax_headers = {k: v for k, v in member.pax_headers.items() if k != "size"}
        found = True
        yield header, io.BytesIO(payload)

    if not found:
        raise ArchiveTransformError(f"{manifest_entry} not found in {source}")


def _write_archive(entries: Iterable[Entry], destination: Path, compresslevel: int) -> None:
    # Empty gzip filename so the temporary path does not leak into the header
    with open(destination, "wb") as out_f:
        with gzip.GzipFile(filename="", mode="wb", fileobj=out_f, compresslevel=compresslevel) as gz:
            with tarfile.open(fileobj=gz, mode="w|") as tf:
                for header, fileobj in entries:
                    tf.addfile(header, fileobj)


def _temp_archive_path(archive_path: Path, scratch_dir: Path) -> Path:
    return scratch_dir / f"{archive_path.name}.partial"


def _rewrite_streaming(
    archive_path: Path,
    mutate: ManifestMutation,
    scratch_dir: Path,
    manifest_entry: str,
    compresslevel: int,
) -> None:
    temp_path = _temp_archive_path(archive_path, scratch_dir)
    with tarfile.open(archive_path, "r:*") as source:
        entries = transform_entries(source, manifest_entry, mutate, archive_path)
        _write_archive(entries, temp_path, compresslevel)
    os.replace(temp_path, archive_path)


def _rewrite_extracted(
    archive_path: Path,
    mutate: ManifestMutation,
    scratch_dir: Path,
    manifest_entry: str,
    compresslevel: int,
) -> None:
    tree = scratch_dir / "tree"
    with tarfile.open(archive_path, "r:*") as source:
        members = source.getmembers()
        source.extractall(tree, filter="data")

    manifest_path = tree / _norm_name(manifest_entry)
    if not manifest_path.is_file():
        raise ArchiveTransformError(f"{manifest_entry} not found in {archive_path}")
    manifest_path.write_bytes(_apply_mutation(manifest_path.read_bytes(), mutate, archive_path))

    temp_path = _temp_archive_path(archive_path, scratch_dir)
    with open(temp_path, "wb") as out_f:
        with gzip.GzipFile(filename="", mode="wb", fileobj=out_f, compresslevel=compresslevel) as gz:
            with tarfile.open(fileobj=gz, mode="w|") as tf:
                for member in members:
                    tf.add(tree / _norm_name(member.name), arcname=member.name, recursive=False)
    os.replace(temp_path, archive_path)


def rewrite_manifest(
    archive_path: Union[str, Path],
    mutate: ManifestMutation,
    scratch_dir: Union[str, Path],
    *,
    strategy: Optional[ArchiveStrategy] = None,
    manifest_entry: Optional[str] = None,
    compresslevel: Optional[int] = None,
) -> None:
    """Apply ``mutate`` to the manifest inside ``archive_path``, in place.

    Args:
        archive_path: Path to the gzip-compressed tar archive to rewrite
        mutate: Receives the parsed manifest and returns the manifest to store
        scratch_dir: Empty directory owned by the caller for temporary files;
            it must be on the same filesystem as the archive
        strategy: ``stream`` or ``extract``; defaults to the configured one
        manifest_entry: Path of the manifest inside the archive
        compresslevel: gzip level of the rewritten archive

    Raises:
        ArchiveTransformError: The archive cannot be read or written, or its
            manifest is missing or not valid JSON. The original archive is left
            untouched in that case.
    """
    archive_path = Path(archive_path)
    scratch_dir = Path(scratch_dir)
    strategy = ArchiveStrategy(strategy or settings.archive_strategy)
    manifest_entry = manifest_entry or settings.manifest_entry
    if compresslevel is None:
        compresslevel = settings.compression_level

    rewrite = _rewrite_streaming if strategy == ArchiveStrategy.STREAM else _rewrite_extracted
    logger.debug(f"Rewriting {archive_path} ({strategy.value})")
    try:
        rewrite(archive_path, mutate, scratch_dir, manifest_entry, compresslevel)
    except _ARCHIVE_ERRORS as e:
        raise ArchiveTransformError(f"Could not rewrite {archive_path}: {e}") from e


def read_manifest(archive_path: Union[str, Path], manifest_entry: Optional[str] = None) -> Manifest:
    """Return the parsed manifest stored in ``archive_path`` without extracting it."""
    manifest_entry = _norm_name(manifest_entry or settings.manifest_entry)
    try:
        with tarfile.open(archive_path, "r:*") as archive:
            for member in archive:
                if member.isfile() and _norm_name(member.name) == manifest_entry:
                    return load_manifest(archive.extractfile(member).read(), archive_path)
    except _ARCHIVE_ERRORS as e:
        raise ArchiveTransformError(f"Could not read {archive_path}: {e}") from e
    raise ArchiveTransformError(f"{manifest_entry} not found in {archive_path}")
