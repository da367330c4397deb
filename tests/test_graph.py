"""
Tests for the workspace set and internal dependency resolution.
"""

from pathlib import Path

import pytest

from monopack.core.errors import DiscoveryError
from monopack.workspace.graph import resolve_internal_dependencies
from monopack.workspace.schemas import Package, WorkspaceSet


def make_package(name, dependencies=None, version="1.0.0"):
    manifest = {"name": name, "version": version}
    if dependencies is not None:
        manifest["dependencies"] = dependencies
    return Package(name=name, directory=Path("/repo/packages") / name, version=version, manifest=manifest)


def test_edges_only_point_at_workspace_members():
    workspace_set = WorkspaceSet([
        make_package("A"),
        make_package("B", {"A": "^1.0.0", "C": "^3.0.0"}),
    ])
    resolve_internal_dependencies(workspace_set)

    assert workspace_set.get("A").dependency_names == []
    assert workspace_set.get("B").dependency_names == ["A"]


def test_dependency_on_later_discovered_package_is_found():
    # B is discovered before the package it depends on
    workspace_set = WorkspaceSet([
        make_package("B", {"Z": "*"}),
        make_package("Z"),
    ])
    resolve_internal_dependencies(workspace_set)
    assert workspace_set.get("B").dependency_names == ["Z"]


def test_manifest_order_is_kept():
    workspace_set = WorkspaceSet([
        make_package("A"),
        make_package("B"),
        make_package("C", {"B": "*", "lodash": "^4", "A": "*"}),
    ])
    resolve_internal_dependencies(workspace_set)
    assert workspace_set.get("C").dependency_names == ["B", "A"]


def test_missing_or_malformed_dependencies_produce_no_edges():
    odd = make_package("odd")
    odd.manifest["dependencies"] = ["A"]
    workspace_set = WorkspaceSet([make_package("A"), make_package("none"), odd])
    resolve_internal_dependencies(workspace_set)

    assert workspace_set.get("none").dependency_names == []
    assert workspace_set.get("odd").dependency_names == []


def test_dependency_on_own_name_is_an_edge():
    workspace_set = WorkspaceSet([make_package("A", {"A": "*"})])
    resolve_internal_dependencies(workspace_set)
    assert workspace_set.get("A").dependency_names == ["A"]


def test_duplicate_names_are_rejected():
    workspace_set = WorkspaceSet([make_package("A")])
    with pytest.raises(DiscoveryError, match="Duplicate package name A"):
        workspace_set.add(make_package("A"))


def test_workspace_set_container_behaviour():
    workspace_set = WorkspaceSet([make_package("A"), make_package("B")])
    assert len(workspace_set) == 2
    assert "A" in workspace_set
    assert "C" not in workspace_set
    assert workspace_set.get("C") is None
    assert [p.name for p in workspace_set] == ["A", "B"]
    assert workspace_set.names == ["A", "B"]


def test_package_requires_name_and_version():
    with pytest.raises(ValueError):
        Package(name="", directory=Path("/x"), version="1.0.0")
    with pytest.raises(ValueError):
        Package(name="A", directory=Path("/x"), version=" ")
