"""Base classes for package manifests.

:class:`PackageManifest` wraps one parsed manifest document and exposes its
import and export alias tables. :class:`WorkspaceManifest` adds the
parent/child workspace graph on top, which may contain cycles and shared
nodes; traversal is bounded by ``visited`` sets keyed on manifest location.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Mapping, NamedTuple, Optional, Set, Tuple

from errors import InvalidManifestError, MalformedSpecifierError
from importmap.paths import parent_directory
from importmap.resolver import (
    DEFAULT_CONFIG,
    AliasTable,
    ResolutionConfig,
    build_alias_table,
    resolve_path_from_entries,
)
from registry.specifier import parse_specifier

logger = logging.getLogger(__name__)


def coerce_alias_value(location: str, alias: str, value: Any) -> str:
    """Return the path of an import-map value.

    Values are either plain strings or objects carrying a separate version,
    e.g. ``{"path": "jsr:@std/path", "version": "^1.0.0"}``, which becomes
    ``"jsr:@std/path@^1.0.0"``.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        path = value.get("path", value.get("specifier"))
        if not isinstance(path, str):
            raise InvalidManifestError(location, f'import "{alias}" has no "path"')
        version = value.get("version")
        if not version:
            return path
        try:
            return str(parse_specifier(path).with_version(str(version)))
        except MalformedSpecifierError:
            raise InvalidManifestError(
                location, f'import "{alias}" carries a version but "{path}" is not a registry specifier'
            ) from None
    raise InvalidManifestError(location, f'import "{alias}" must be a string or an object')


class WorkspaceResolution(NamedTuple):
    """A path resolved through the workspace graph and the manifest that owns it."""

    path: str
    manifest: "WorkspaceManifest"


class PackageManifest(ABC):
    """A parsed package manifest and its alias tables.

    The tables are derived once in ``__init__`` and never change afterwards.
    Subclasses provide the raw alias mappings for their schema; normalization
    and sorting are shared so that every schema matches identically.
    """

    # Manifest file names handled by the subclass, in scan preference order.
    filenames: ClassVar[Tuple[str, ...]] = ()

    def __init__(self, manifest_info: Dict[str, Any], location: str):
        if not isinstance(manifest_info, dict):
            raise InvalidManifestError(location, "top-level value must be an object")
        self.location = location
        self.manifest_info = manifest_info
        self.export_table: AliasTable = build_alias_table(self._export_map())
        self.import_table: AliasTable = build_alias_table(self._import_map())

    @property
    def name(self) -> str:
        return self.manifest_info.get("name") or "@no-name/package"

    @property
    def version(self) -> str:
        return self.manifest_info.get("version") or "0.0.0"

    @property
    def directory(self) -> str:
        """URL of the directory holding the manifest file, with trailing slash."""
        return parent_directory(self.location)

    @abstractmethod
    def _export_map(self) -> Dict[str, str]:
        """Raw ``alias -> path`` mapping of exported entry points."""

    @abstractmethod
    def _import_map(self) -> Dict[str, str]:
        """Raw ``alias -> path`` mapping of consumed dependencies."""

    def workspace_members(self) -> List[str]:
        """Relative locations of child workspace packages."""
        return []

    def resolve_export(self, path_alias: str, config: Optional[ResolutionConfig] = None) -> Optional[str]:
        """Resolve ``path_alias`` against this manifest's export table only."""
        config = (config or DEFAULT_CONFIG).with_overrides(sort=False)
        return resolve_path_from_entries(path_alias, self.export_table, config)

    def resolve_import(self, path_alias: str, config: Optional[ResolutionConfig] = None) -> Optional[str]:
        """Resolve ``path_alias`` against this manifest's import table only."""
        config = (config or DEFAULT_CONFIG).with_overrides(sort=False)
        return resolve_path_from_entries(path_alias, self.import_table, config)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name}@{self.version}, {self.location!r})"


class WorkspaceManifest(PackageManifest):
    """A manifest that participates in a workspace graph.

    Edges are attached after construction by the loader, so a freshly built
    instance has no children or parents yet.
    """

    def __init__(self, manifest_info: Dict[str, Any], location: str):
        super().__init__(manifest_info, location)
        self.children: List[WorkspaceManifest] = []
        self.parents: List[WorkspaceManifest] = []

    def add_child(self, child: "WorkspaceManifest") -> None:
        """Link ``child`` below this manifest; each edge is stored once."""
        if child is self:
            return
        if all(existing.location != child.location for existing in self.children):
            self.children.append(child)
        if all(existing.location != self.location for existing in child.parents):
            child.parents.append(self)

    def add_parent(self, parent: "WorkspaceManifest") -> None:
        parent.add_child(self)

    def resolve_workspace_export(
        self,
        path_alias: str,
        config: Optional[ResolutionConfig] = None,
        visited: Optional[Set[str]] = None,
    ) -> Optional[WorkspaceResolution]:
        """Resolve ``path_alias`` as an export of some workspace descendant.

        Children are tried in declaration order, depth first. ``visited`` is
        shared by reference across the whole traversal.
        """
        if visited is None:
            visited = set()
        if self.location in visited:
            return None
        visited.add(self.location)
        for child in self.children:
            if child.location in visited:
                continue
            resolved = child.resolve_export(path_alias, config)
            if resolved is not None:
                return WorkspaceResolution(resolved, child)
            result = child.resolve_workspace_export(path_alias, config, visited)
            if result is not None:
                return result
        return None

    def resolve_workspace_import(
        self,
        path_alias: str,
        config: Optional[ResolutionConfig] = None,
        visited: Optional[Set[str]] = None,
        export_visited: Optional[Set[str]] = None,
    ) -> Optional[WorkspaceResolution]:
        """Resolve ``path_alias`` through the imports of workspace ancestors.

        ``export_visited`` is only threaded through for subclasses that also
        consult sibling exports; it is never merged with ``visited``.
        """
        if visited is None:
            visited = set()
        if self.location in visited:
            return None
        visited.add(self.location)
        for parent in self.parents:
            if parent.location in visited:
                continue
            resolved = parent.resolve_import(path_alias, config)
            if resolved is not None:
                return WorkspaceResolution(resolved, parent)
            result = parent.resolve_workspace_import(path_alias, config, visited, export_visited)
            if result is not None:
                return result
        return None
