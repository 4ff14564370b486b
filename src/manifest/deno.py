"""Deno and JSR manifests (``deno.json``, ``deno.jsonc``, ``jsr.json``, ``jsr.jsonc``)."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Set

from errors import InvalidManifestError
from importmap.paths import ensure_end_slash, is_certainly_relative_path, replace_prefix
from importmap.resolver import DEFAULT_CONFIG, ResolutionConfig

from .base import WorkspaceManifest, WorkspaceResolution, coerce_alias_value

logger = logging.getLogger(__name__)

EXPORT_KEY_RE = re.compile(r"^\.(/.*)?$")
_LEADING_SLASHES_RE = re.compile(r"^/+")


class DenoManifest(WorkspaceManifest):
    """A ``deno.json``-style manifest.

    Besides its declared ``imports``, the package can import its own exports
    by name (``jsr:@scope/pkg@1.0.0/sub``, ``jsr:@scope/pkg/sub`` or
    ``@scope/pkg/sub``).
    """

    filenames = ("deno.json", "deno.jsonc", "jsr.json", "jsr.jsonc")

    def _export_map(self) -> Dict[str, str]:
        exports = self.manifest_info.get("exports", {})
        if isinstance(exports, str):
            return {"./": exports} if exports.endswith("/") else {".": exports}
        if not isinstance(exports, dict):
            raise InvalidManifestError(self.location, '"exports" must be a string or an object')
        for key, value in exports.items():
            if not EXPORT_KEY_RE.match(key):
                raise InvalidManifestError(
                    self.location, f'export key "{key}" must be "." or start with "./"'
                )
            if not isinstance(value, str):
                raise InvalidManifestError(self.location, f'export "{key}" must map to a string')
        return dict(exports)

    def _import_map(self) -> Dict[str, str]:
        raw = self.manifest_info.get("imports", {})
        if not isinstance(raw, dict):
            raise InvalidManifestError(self.location, '"imports" must be an object')
        imports = {alias: coerce_alias_value(self.location, alias, value) for alias, value in raw.items()}
        # "@std/path" also covers "@std/path/..." unless declared separately.
        for alias, path in list(imports.items()):
            directory_alias = ensure_end_slash(alias)
            if directory_alias not in imports:
                imports[directory_alias] = ensure_end_slash(path)
        return imports

    def workspace_members(self) -> List[str]:
        members = self.manifest_info.get("workspace", [])
        if isinstance(members, dict):
            members = members.get("members", [])
        if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
            raise InvalidManifestError(self.location, '"workspace" must be a list of paths')
        return members

    def self_reference_prefixes(self) -> List[str]:
        """Alias prefixes under which this package's exports are reachable."""
        if not self.manifest_info.get("name"):
            return [""]
        return [f"jsr:{self.name}@{self.version}", f"jsr:{self.name}", self.name]

    def resolve_export(self, path_alias: str, config: Optional[ResolutionConfig] = None) -> Optional[str]:
        config = config or DEFAULT_CONFIG
        base_path_dir = self.directory if config.base_path_dir is None else config.base_path_dir
        if config.base_alias_dir is None:
            prefixes = self.self_reference_prefixes()
        else:
            prefixes = [config.base_alias_dir]

        for prefix in prefixes:
            probe = path_alias
            residual = replace_prefix(path_alias, prefix) if prefix else None
            if residual is not None:
                residual = _LEADING_SLASHES_RE.sub("/", residual)
                # "jsr:@scope/pkg/" names the main export, not the "./" directory.
                probe = prefix + ("" if residual == "/" else residual)
            resolved = super().resolve_export(
                probe, config.with_overrides(base_alias_dir=prefix, base_path_dir=base_path_dir)
            )
            if resolved is not None:
                return resolved
        return None

    def resolve_import(self, path_alias: str, config: Optional[ResolutionConfig] = None) -> Optional[str]:
        config = config or DEFAULT_CONFIG
        own_prefix = "" if is_certainly_relative_path(path_alias) else None
        resolved = self.resolve_export(path_alias, config.with_overrides(base_alias_dir=own_prefix))
        if resolved is not None:
            return resolved
        return super().resolve_import(path_alias, config.with_overrides(base_path_dir=self.directory))

    def resolve_workspace_import(
        self,
        path_alias: str,
        config: Optional[ResolutionConfig] = None,
        visited: Optional[Set[str]] = None,
        export_visited: Optional[Set[str]] = None,
    ) -> Optional[WorkspaceResolution]:
        """Try the exports of workspace members first, then the ancestors' imports."""
        if export_visited is None:
            export_visited = set()
        result = self.resolve_workspace_export(path_alias, config, export_visited)
        if result is not None:
            return result
        return super().resolve_workspace_import(path_alias, config, visited, export_visited)
