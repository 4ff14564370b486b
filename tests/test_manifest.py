"""Tests for manifest alias tables (deno.json and package.json)."""

import pytest

from errors import InvalidManifestError
from manifest.deno import DenoManifest
from manifest.loader import manifest_class_for
from manifest.node import NodeManifest

JSR_LOCATION = "https://jsr.io/@scope/pkg/1.0.0/deno.json"


@pytest.fixture
def deno_manifest():
    return DenoManifest(
        {
            "name": "@scope/pkg",
            "version": "1.0.0",
            "exports": {
                ".": "./mod.ts",
                "./util": "./src/util.ts",
                "./lib/": "./src/lib/",
            },
            "imports": {
                "@std/path": "jsr:@std/path@^1.0.0",
                "lodash/": "https://cdn.example/lodash/",
            },
        },
        JSR_LOCATION,
    )


class TestDenoExports:
    def test_main_export(self, deno_manifest):
        assert deno_manifest.resolve_export(".") == "https://jsr.io/@scope/pkg/1.0.0/mod.ts"

    def test_versioned_self_reference(self, deno_manifest):
        assert (
            deno_manifest.resolve_export("jsr:@scope/pkg@1.0.0/util")
            == "https://jsr.io/@scope/pkg/1.0.0/src/util.ts"
        )

    def test_bare_name_self_reference_into_directory(self, deno_manifest):
        assert (
            deno_manifest.resolve_export("@scope/pkg/lib/a.ts")
            == "https://jsr.io/@scope/pkg/1.0.0/src/lib/a.ts"
        )

    def test_trailing_slash_names_main_export(self, deno_manifest):
        assert deno_manifest.resolve_export("jsr:@scope/pkg/") == "https://jsr.io/@scope/pkg/1.0.0/mod.ts"

    def test_other_package_is_not_exported(self, deno_manifest):
        assert deno_manifest.resolve_export("@scope/other") is None

    def test_string_exports(self):
        manifest = DenoManifest({"exports": "./mod.ts"}, "file:///p/deno.json")

        assert [tuple(entry) for entry in manifest.export_table] == [(".", "./mod.ts")]

    def test_string_directory_exports(self):
        manifest = DenoManifest({"exports": "./src/"}, "file:///p/deno.json")

        assert [tuple(entry) for entry in manifest.export_table] == [("./", "./src/")]

    def test_invalid_export_key(self):
        with pytest.raises(InvalidManifestError):
            DenoManifest({"exports": {"util": "./util.ts"}}, "file:///p/deno.json")

    def test_export_table_is_sorted(self, deno_manifest):
        lengths = [len(entry.alias) for entry in deno_manifest.export_table]

        assert lengths == sorted(lengths, reverse=True)


class TestDenoImports:
    def test_declared_import(self, deno_manifest):
        assert deno_manifest.resolve_import("@std/path") == "jsr:@std/path@^1.0.0"

    def test_directory_twin(self, deno_manifest):
        assert dict(deno_manifest.import_table)["@std/path/"] == "jsr:@std/path@^1.0.0/"
        assert deno_manifest.resolve_import("@std/path/join") == "jsr:@std/path@^1.0.0/join"

    def test_directory_import(self, deno_manifest):
        assert deno_manifest.resolve_import("lodash/fp.js") == "https://cdn.example/lodash/fp.js"

    def test_imports_reach_own_exports(self, deno_manifest):
        assert deno_manifest.resolve_import("@scope/pkg/util") == "https://jsr.io/@scope/pkg/1.0.0/src/util.ts"

    def test_relative_import_prefers_own_exports(self, deno_manifest):
        assert deno_manifest.resolve_import("./util") == "https://jsr.io/@scope/pkg/1.0.0/src/util.ts"

    def test_unknown_import(self, deno_manifest):
        assert deno_manifest.resolve_import("react") is None

    def test_object_import_value_splices_version(self):
        manifest = DenoManifest(
            {"imports": {"@std/fs": {"path": "jsr:@std/fs", "version": "^1.2.0"}}},
            "file:///p/deno.json",
        )

        assert manifest.resolve_import("@std/fs") == "jsr:@std/fs@^1.2.0"

    def test_object_import_value_without_path(self):
        with pytest.raises(InvalidManifestError):
            DenoManifest({"imports": {"x": {"version": "1"}}}, "file:///p/deno.json")

    def test_defaults_without_name(self):
        manifest = DenoManifest({}, "file:///p/deno.json")

        assert manifest.name == "@no-name/package"
        assert manifest.version == "0.0.0"
        assert manifest.directory == "file:///p/"

    def test_workspace_members(self):
        manifest = DenoManifest({"workspace": ["./a", "./b"]}, "file:///p/deno.json")

        assert manifest.workspace_members() == ["./a", "./b"]


@pytest.fixture
def node_manifest():
    return NodeManifest(
        {
            "name": "pkg",
            "version": "2.0.0",
            "exports": {
                ".": {"import": "./esm/index.js", "require": "./cjs/index.js"},
                "./feature": "./lib/feature.js",
                "./utils/*": "./lib/utils/*",
            },
            "imports": {"#internal": "./src/internal.js"},
            "dependencies": {"preact": "^10.0.0", "local": "file:../local"},
            "workspaces": ["packages/a", "packages/*"],
        },
        "file:///repo/node_modules/pkg/package.json",
    )


class TestNodeManifest:
    def test_conditional_main_export(self, node_manifest):
        assert node_manifest.resolve_export(".") == "file:///repo/node_modules/pkg/esm/index.js"

    def test_subpath_export(self, node_manifest):
        assert node_manifest.resolve_export("./feature") == "file:///repo/node_modules/pkg/lib/feature.js"

    def test_pattern_export(self, node_manifest):
        assert node_manifest.resolve_export("./utils/a.js") == "file:///repo/node_modules/pkg/lib/utils/a.js"

    def test_private_import(self, node_manifest):
        assert node_manifest.resolve_import("#internal") == "file:///repo/node_modules/pkg/src/internal.js"

    def test_dependencies_become_registry_specifiers(self, node_manifest):
        assert node_manifest.resolve_import("preact") == "npm:preact@^10.0.0"
        assert node_manifest.resolve_import("preact/hooks") == "npm:preact@^10.0.0/hooks"

    def test_non_registry_dependency_is_skipped(self, node_manifest):
        assert node_manifest.resolve_import("local") is None

    def test_root_conditions(self):
        manifest = NodeManifest(
            {"exports": {"import": "./a.mjs", "default": "./a.js"}}, "file:///p/package.json"
        )

        assert manifest.resolve_export(".") == "file:///p/a.mjs"

    def test_main_fallback(self):
        manifest = NodeManifest({"main": "lib/index.js"}, "file:///p/package.json")

        assert manifest.resolve_export(".") == "file:///p/lib/index.js"

    def test_glob_workspaces_are_skipped(self, node_manifest):
        assert node_manifest.workspace_members() == ["packages/a"]

    def test_private_import_must_start_with_hash(self):
        with pytest.raises(InvalidManifestError):
            NodeManifest({"imports": {"internal": "./x.js"}}, "file:///p/package.json")


class TestManifestFactory:
    @pytest.mark.parametrize("filename", ["deno.json", "deno.jsonc", "jsr.json", "jsr.jsonc"])
    def test_deno_variants(self, filename):
        assert manifest_class_for(f"https://jsr.io/@a/b/1.0.0/{filename}") is DenoManifest

    def test_package_json(self):
        assert manifest_class_for("file:///p/package.json") is NodeManifest

    def test_unknown_file(self):
        with pytest.raises(InvalidManifestError):
            manifest_class_for("file:///p/Cargo.toml")
