"""
Shared fixtures: workspaces on disk and a package manager that packs them
with tarfile instead of calling npm.
"""

import asyncio
import io
import json
import tarfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from monopack.archive.naming import archive_filename
from monopack.pak.base import CommandResult, PackageManager, read_package_json_workspaces


def build_package_archive(archive_path: Path, manifest: Dict[str, Any], files: Optional[Dict[str, bytes]] = None) -> Path:
    """Write an npm-style archive: a ``package/`` directory, package.json, then ``files``."""
    archive_path = Path(archive_path)
    with tarfile.open(archive_path, "w:gz") as tf:
        directory = tarfile.TarInfo("package")
        directory.type = tarfile.DIRTYPE
        directory.mode = 0o755
        tf.addfile(directory)

        entries = {"package.json": json.dumps(manifest, indent=2).encode("utf-8")}
        entries.update(files or {})
        for name, data in entries.items():
            info = tarfile.TarInfo(f"package/{name}")
            info.size = len(data)
            info.mode = 0o644
            info.mtime = 1700000000
            tf.addfile(info, io.BytesIO(data))
    return archive_path


def read_entries(archive_path: Path) -> List[tuple]:
    """Return ``(name, content)`` for every entry, in archive order."""
    entries = []
    with tarfile.open(archive_path, "r:gz") as tf:
        for member in tf:
            data = tf.extractfile(member).read() if member.isfile() else None
            entries.append((member.name, data))
    return entries


class FakePackageManager(PackageManager):
    """Packs workspace directories with tarfile and records what it did."""

    def __init__(self, cwd, fail: Optional[set] = None, delay: float = 0):
        super().__init__(cwd)
        self.fail = fail or set()
        self.delay = delay
        self.packed: List[str] = []
        self.active = 0
        self.max_active = 0

    @property
    def name(self) -> str:
        return "fake"

    async def workspace_patterns(self) -> List[str]:
        return read_package_json_workspaces(self.cwd)

    async def pack(self, workspace: str, target_dir: Path) -> CommandResult:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            directory = self.cwd / workspace
            manifest = json.loads((directory / "package.json").read_text())
            if manifest["name"] in self.fail:
                return CommandResult(success=False, stderr=f"npm ERR! could not pack {manifest['name']}", exit_code=1)

            files = {
                p.name: p.read_bytes()
                for p in sorted(directory.iterdir())
                if p.is_file() and p.name != "package.json"
            }
            archive_path = Path(target_dir) / archive_filename(manifest["name"], manifest["version"])
            build_package_archive(archive_path, manifest, files)
            self.packed.append(manifest["name"])
            return CommandResult(success=True, stdout=str(archive_path), exit_code=0)
        finally:
            self.active -= 1


def write_workspace(root: Path, manifests: List[Dict[str, Any]]) -> Path:
    """Create a monorepo with one ``packages/<dir>`` member per manifest."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "package.json").write_text(json.dumps({"name": "root", "private": True, "workspaces": ["packages/*"]}))
    for manifest in manifests:
        directory = root / "packages" / manifest["name"].lstrip("@").replace("/", "-")
        directory.mkdir(parents=True)
        (directory / "package.json").write_text(json.dumps(manifest, indent=2))
        (directory / "index.js").write_text(f"module.exports = {json.dumps(manifest['name'])};\n")
    return root


@pytest.fixture
def workspace(tmp_path):
    """Packages A@1.0.0, B@2.0.0 (depends on A and external C), and a private P."""
    return write_workspace(
        tmp_path / "repo",
        [
            {"name": "A", "version": "1.0.0", "devDependencies": {"jest": "^29.0.0"}},
            {
                "name": "B",
                "version": "2.0.0",
                "dependencies": {"A": "^1.0.0", "C": "^3.1.0"},
                "devDependencies": {"typescript": "^5.0.0"},
            },
            {"name": "P", "version": "0.0.1", "private": True, "dependencies": {"A": "^1.0.0"}},
        ],
    )
