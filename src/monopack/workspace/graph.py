"""
Resolve which declared dependencies point at packages of the workspace.
"""

import logging

from monopack.workspace.schemas import WorkspaceSet

logger = logging.getLogger(__name__)


def resolve_internal_dependencies(workspace_set: WorkspaceSet) -> None:
    """
    Record, on every package, the dependency names that belong to the set.

    Must run after discovery has added every package: a dependency can name a
    package that was discovered after the one declaring it. Names that are not
    in the set are external and left alone.
    """
    for package in workspace_set:
        internal = []
        for name in package.declared_dependencies:
            if name not in workspace_set:
                continue
            if name not in internal:
                internal.append(name)
        package.dependency_names = internal
        if internal:
            logger.debug(f"{package.name} depends on {', '.join(internal)}")
