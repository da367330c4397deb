"""
Project-wide constants or "settings" that are unlikely to change at runtime.
"""

ARCHIVE_EXTENSION = ".tgz"
MANIFEST_FILENAME = "package.json"

# Directory-level lockfiles, checked in this order of precedence.
LOCKFILES = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
)

SCRATCH_ROOT_PREFIX = "tmp"
SCRATCH_TASK_PREFIX = "workspace"
