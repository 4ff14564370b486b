"""Tests for workspace graph traversal."""

import pytest

from manifest.deno import DenoManifest


def _deno(location, **info):
    return DenoManifest(info, location)


@pytest.fixture
def workspace():
    root = _deno(
        "file:///ws/deno.json",
        imports={"shared": "./shared/mod.ts"},
        workspace=["./a", "./b"],
    )
    a = _deno("file:///ws/a/deno.json", name="@ws/a", version="1.0.0", exports={".": "./mod.ts"})
    b = _deno(
        "file:///ws/b/deno.json",
        name="@ws/b",
        exports={".": "./mod.ts", "./util": "./util.ts"},
    )
    root.add_child(a)
    root.add_child(b)
    return root, a, b


class TestEdges:
    def test_edges_are_recorded_on_both_ends(self, workspace):
        root, a, b = workspace

        assert root.children == [a, b]
        assert a.parents == [root]
        assert b.parents == [root]

    def test_edges_are_deduplicated(self, workspace):
        root, a, _ = workspace
        root.add_child(a)
        a.add_parent(root)

        assert len(root.children) == 2
        assert a.parents == [root]

    def test_self_edge_is_ignored(self, workspace):
        root, _, _ = workspace
        root.add_child(root)

        assert root not in root.children


class TestWorkspaceImports:
    def test_sibling_export_through_parent(self, workspace):
        _, a, b = workspace

        result = a.resolve_workspace_import("@ws/b/util")

        assert result.path == "file:///ws/b/util.ts"
        assert result.manifest is b

    def test_parent_import(self, workspace):
        root, a, _ = workspace

        result = a.resolve_workspace_import("shared")

        assert result.path == "file:///ws/shared/mod.ts"
        assert result.manifest is root

    def test_unknown_alias(self, workspace):
        _, a, _ = workspace

        assert a.resolve_workspace_import("react") is None

    def test_own_exports_are_not_workspace_results(self, workspace):
        _, a, _ = workspace

        # "@ws/a" is reachable from a's own imports, not through the graph.
        assert a.resolve_workspace_import("@ws/a") is None
        assert a.resolve_import("@ws/a") == "file:///ws/a/mod.ts"


class TestWorkspaceExports:
    def test_children_in_declaration_order(self):
        root = _deno("file:///r/deno.json")
        first = _deno("file:///r/one/deno.json", exports={"./shared": "./one.ts"})
        second = _deno("file:///r/two/deno.json", exports={"./shared": "./two.ts"})
        root.add_child(first)
        root.add_child(second)

        result = root.resolve_workspace_export("./shared")

        assert result.manifest is first
        assert result.path == "file:///r/one/one.ts"

    def test_diamond(self):
        top = _deno("file:///d/deno.json")
        left = _deno("file:///d/left/deno.json", name="@d/left")
        right = _deno("file:///d/right/deno.json", name="@d/right")
        bottom = _deno("file:///d/bottom/deno.json", name="@d/bottom", exports="./mod.ts")
        top.add_child(left)
        top.add_child(right)
        left.add_child(bottom)
        right.add_child(bottom)

        result = top.resolve_workspace_export("@d/bottom")

        assert result.manifest is bottom
        assert result.path == "file:///d/bottom/mod.ts"
        assert bottom.parents == [left, right]

    def test_visited_set_is_shared(self, workspace):
        root, a, b = workspace
        visited = set()

        assert root.resolve_workspace_export("missing", visited=visited) is None
        assert visited == {root.location, a.location, b.location}


class TestCycles:
    @pytest.fixture
    def cycle(self):
        x = _deno("file:///c/x/deno.json", name="@c/x")
        y = _deno("file:///c/y/deno.json", name="@c/y", exports={".": "./y.ts"})
        x.add_child(y)
        y.add_child(x)
        return x, y

    def test_export_traversal_terminates(self, cycle):
        x, _ = cycle

        assert x.resolve_workspace_export("missing") is None

    def test_import_traversal_terminates(self, cycle):
        x, _ = cycle

        assert x.resolve_workspace_import("missing") is None

    def test_cycle_still_resolves(self, cycle):
        x, y = cycle

        result = x.resolve_workspace_import("@c/y")

        assert result.manifest is y
        assert result.path == "file:///c/y/y.ts"

    def test_manifest_observed_before_wiring(self):
        lone = _deno("file:///c/lone/deno.json", name="@c/lone")

        assert lone.children == []
        assert lone.resolve_workspace_import("@c/y") is None
