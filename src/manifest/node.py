"""Node-style ``package.json`` manifests."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from errors import InvalidManifestError
from importmap.paths import ensure_start_dot_slash
from importmap.resolver import DEFAULT_CONFIG, ResolutionConfig

from .base import WorkspaceManifest
from .deno import EXPORT_KEY_RE

logger = logging.getLogger(__name__)

# Dependency ranges that name a registry version (not "file:", "git+", urls, "workspace:").
_RANGE_RE = re.compile(r"^[\w\s.^~<>=|*xX+\-]*$")


class NodeManifest(WorkspaceManifest):
    """A ``package.json`` manifest.

    Export and import targets may be condition objects; the first condition
    in :attr:`conditions` that yields a string target wins. Dependencies
    become ``npm:`` import aliases.
    """

    filenames = ("package.json",)
    conditions = ("import", "module", "browser", "default", "require")
    dependency_fields = ("dependencies", "peerDependencies", "optionalDependencies")

    def _pick_target(self, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, list):
            for item in value:
                target = self._pick_target(item)
                if target is not None:
                    return target
            return None
        if isinstance(value, dict):
            for condition in self.conditions:
                if condition in value:
                    target = self._pick_target(value[condition])
                    if target is not None:
                        return target
            return None
        raise InvalidManifestError(self.location, f"unsupported export target: {value!r}")

    def _add_entry(self, mapping: Dict[str, str], key: str, value: Any) -> None:
        target = self._pick_target(value)
        if target is None:
            return
        # "./features/*" -> "./src/features/*" is expressible as a directory alias.
        if "*" in key or "*" in target:
            if key.endswith("/*") and target.endswith("/*"):
                mapping[key[:-1]] = target[:-1]
            else:
                logger.debug("Skipping unsupported pattern %s -> %s in %s", key, target, self.location)
            return
        mapping[key] = target

    def _export_map(self) -> Dict[str, str]:
        exports = self.manifest_info.get("exports")
        if exports is None:
            main = self.manifest_info.get("module") or self.manifest_info.get("main")
            return {".": ensure_start_dot_slash(main)} if isinstance(main, str) else {}
        if isinstance(exports, (str, list)):
            target = self._pick_target(exports)
            return {".": target} if target else {}
        if not isinstance(exports, dict):
            raise InvalidManifestError(self.location, '"exports" must be a string or an object')
        if exports and not any(key.startswith(".") for key in exports):
            # Conditions for the main entry point only.
            target = self._pick_target(exports)
            return {".": target} if target else {}
        result: Dict[str, str] = {}
        for key, value in exports.items():
            if not EXPORT_KEY_RE.match(key):
                raise InvalidManifestError(
                    self.location, f'export key "{key}" must be "." or start with "./"'
                )
            self._add_entry(result, key, value)
        return result

    def _import_map(self) -> Dict[str, str]:
        imports: Dict[str, str] = {}
        private = self.manifest_info.get("imports", {})
        if not isinstance(private, dict):
            raise InvalidManifestError(self.location, '"imports" must be an object')
        for key, value in private.items():
            if not key.startswith("#"):
                raise InvalidManifestError(self.location, f'import key "{key}" must start with "#"')
            self._add_entry(imports, key, value)

        for field in self.dependency_fields:
            dependencies = self.manifest_info.get(field) or {}
            if not isinstance(dependencies, dict):
                raise InvalidManifestError(self.location, f'"{field}" must be an object')
            for name, version_range in dependencies.items():
                if name in imports:
                    continue
                target = self._dependency_target(name, str(version_range))
                if target is None:
                    logger.debug("Skipping non-registry dependency %s@%s", name, version_range)
                    continue
                imports[name] = target
                imports.setdefault(f"{name}/", f"{target}/")
        return imports

    @staticmethod
    def _dependency_target(name: str, version_range: str) -> Optional[str]:
        if version_range.startswith("npm:"):
            return version_range
        if _RANGE_RE.match(version_range):
            version_range = version_range.strip()
            return f"npm:{name}@{version_range}" if version_range else f"npm:{name}"
        return None

    def _anchored(self, config: Optional[ResolutionConfig]) -> ResolutionConfig:
        config = config or DEFAULT_CONFIG
        if config.base_path_dir is None:
            config = config.with_overrides(base_path_dir=self.directory)
        return config

    def resolve_export(self, path_alias: str, config: Optional[ResolutionConfig] = None) -> Optional[str]:
        return super().resolve_export(path_alias, self._anchored(config))

    def resolve_import(self, path_alias: str, config: Optional[ResolutionConfig] = None) -> Optional[str]:
        return super().resolve_import(path_alias, self._anchored(config))

    def workspace_members(self) -> List[str]:
        members = self.manifest_info.get("workspaces", [])
        if isinstance(members, dict):
            members = members.get("packages", [])
        if not isinstance(members, list):
            raise InvalidManifestError(self.location, '"workspaces" must be a list of paths')
        plain = []
        for member in members:
            if not isinstance(member, str):
                raise InvalidManifestError(self.location, '"workspaces" must be a list of paths')
            if any(char in member for char in "*?[!"):
                logger.debug("Skipping glob workspace entry %s in %s", member, self.location)
                continue
            plain.append(member)
        return plain
