"""
Reading package.json manifests from workspace directories.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

from monopack.core.errors import DiscoveryError
from monopack.core.settings import MANIFEST_FILENAME


def read_manifest_file(directory: Union[str, Path]) -> Dict[str, Any]:
    """Load ``package.json`` from a workspace directory."""
    manifest_path = Path(directory) / MANIFEST_FILENAME
    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            manifest = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DiscoveryError(f"Could not read {manifest_path}: {e}") from e
    if not isinstance(manifest, dict):
        raise DiscoveryError(f"{manifest_path} does not contain a JSON object")
    return manifest
