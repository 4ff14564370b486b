"""Top-level specifier resolution.

:class:`ResolutionEngine` ties the pieces together for one bundling session:
the importer's own manifest, its workspace, remote registries and finally
plain relative/absolute paths, in that order.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

from common.logging_utils import extra_context, is_debug_enabled
from common.transport import AiohttpTransport, Transport
from constants import Constants
from errors import ResolutionError, TransportError, UnresolvedAliasError
from importmap.paths import (
    is_absolute_path,
    is_certainly_relative_path,
    parent_directory,
    resolve_as_url,
)
from importmap.resolver import ResolutionConfig
from manifest.base import PackageManifest, WorkspaceManifest
from manifest.cache import ManifestCache, SingleFlightCache
from manifest.loader import ManifestLoader
from registry.config import RegistryConfig
from registry.resolver import RegistryResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSpecifier:
    """Outcome of a successful resolution.

    ``source`` is one of ``"import"``, ``"workspace"``, ``"registry"``,
    ``"relative"`` or ``"absolute"``: the step that produced ``path``.
    """

    path: str
    manifest: Optional[PackageManifest]
    source: str


def _parent_of_directory(directory: str) -> Optional[str]:
    """Directory URL one level up, or None at the root."""
    parent = parent_directory(directory.rstrip("/"))
    if parent == directory or not parent.endswith("/") or parent.endswith("//"):
        return None
    return parent


class ResolutionEngine:
    """Resolves module aliases for importers within one session.

    All manifests, version listings and owner lookups are cached for the
    lifetime of the engine. Use as an async context manager, or call
    :meth:`close` when done.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        registries: Optional[Dict[str, RegistryConfig]] = None,
        cache: Optional[ManifestCache] = None,
        error_check: Optional[bool] = None,
        max_hops: Optional[int] = None,
        search_depth: Optional[int] = None,
    ):
        self._owns_transport = transport is None
        self.transport = transport if transport is not None else AiohttpTransport()
        self.loader = ManifestLoader(self.transport, cache)
        self.registry = RegistryResolver(self.loader, registries)
        self.config = ResolutionConfig(
            error_check=Constants.ERROR_CHECK if error_check is None else error_check
        )
        self._max_hops = Constants.MAX_ALIAS_HOPS if max_hops is None else max_hops
        self._search_depth = Constants.WORKSPACE_SEARCH_DEPTH if search_depth is None else search_depth
        self._owners: SingleFlightCache[Tuple[Optional[WorkspaceManifest]]] = SingleFlightCache(
            name="owner_lookup"
        )
        self._enclosing: SingleFlightCache[int] = SingleFlightCache(name="enclosing_workspaces")

    async def __aenter__(self) -> "ResolutionEngine":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_transport:
            await self.transport.close()

    async def find_owner(self, importer: str) -> Optional[WorkspaceManifest]:
        """Return the manifest of the package that contains ``importer``.

        The importer's directory and its ancestors are scanned for manifest
        files. For local files, enclosing workspace roots that list the owner
        as a member are then loaded and linked as its parents.
        """
        directory = parent_directory(resolve_as_url(importer))
        found = await self._owners.get_or_load(directory, lambda: self._discover_owner(directory))
        return found[0]

    async def _discover_owner(self, directory: str) -> Tuple[Optional[WorkspaceManifest]]:
        current: Optional[str] = directory
        for _ in range(self._search_depth):
            if current is None:
                break
            location = await self.loader.locate(current)
            if location is not None:
                owner = await self.loader.load(location)
                logger.debug("Owner of %s is %s", directory, location)
                if owner.location.startswith("file:"):
                    await self.link_enclosing(owner)
                return (owner,)
            current = _parent_of_directory(current)
        # Wrapped so "no owner" is cached like any other result.
        return (None,)

    async def link_enclosing(self, manifest: WorkspaceManifest) -> int:
        """Load the workspace roots enclosing ``manifest`` so it gets its parents.

        Returns the number of enclosing manifests linked above ``manifest``.
        """
        return await self._enclosing.get_or_load(
            manifest.location, lambda: self._climb_workspaces(manifest)
        )

    async def _climb_workspaces(self, manifest: WorkspaceManifest) -> int:
        # Best effort: stop at the first manifest that fails to load or does
        # not list the package below it as a workspace member.
        inner = manifest
        linked = 0
        current = _parent_of_directory(manifest.directory)
        for _ in range(self._search_depth):
            if current is None:
                break
            try:
                location = await self.loader.locate(current)
                enclosing = await self.loader.load(location) if location is not None else None
            except (ResolutionError, TransportError) as exc:
                logger.debug("Ignoring enclosing manifest in %s: %s", current, exc)
                break
            if enclosing is not None:
                if all(child.location != inner.location for child in enclosing.children):
                    logger.debug("%s does not list %s as a workspace member", enclosing.location, inner.location)
                    break
                logger.debug("Linked enclosing workspace %s", enclosing.location)
                inner = enclosing
                linked += 1
            current = _parent_of_directory(current)
        return linked

    async def _owner_for(
        self,
        importer: Optional[str],
        manifest: Union[str, WorkspaceManifest, None],
    ) -> Optional[WorkspaceManifest]:
        if isinstance(manifest, WorkspaceManifest):
            return manifest
        if manifest is not None:
            loaded = await self.loader.load(manifest)
            if loaded.location.startswith("file:"):
                await self.link_enclosing(loaded)
            return loaded
        if importer is not None:
            return await self.find_owner(importer)
        return None

    async def resolve(
        self,
        alias: str,
        importer: Optional[str] = None,
        manifest: Union[str, WorkspaceManifest, None] = None,
    ) -> ResolvedSpecifier:
        """Resolve ``alias`` as imported from ``importer``.

        Args:
            alias: The module reference as written in the importing module.
            importer: Location of the importing module, if any.
            manifest: The owning manifest (object or location); discovered
                from ``importer`` when omitted.

        Raises:
            UnresolvedAliasError: No step produced a location.
            ResolutionError: Any fatal problem found on the way (invalid
                manifest, unsatisfiable range, ...).
            TransportError: A fetch failed.
        """
        owner = await self._owner_for(importer, manifest)
        result = await self._resolve(alias, importer, owner)
        if result is None:
            raise UnresolvedAliasError(alias, importer, owner.location if owner else None)
        if is_debug_enabled(logger):
            logger.debug(
                "Resolved alias",
                extra=extra_context(
                    event="alias_resolved",
                    component="engine",
                    alias=alias,
                    importer=importer,
                    resolved=result.path,
                    source=result.source,
                ),
            )
        return result

    async def _resolve(
        self, alias: str, importer: Optional[str], owner: Optional[WorkspaceManifest]
    ) -> Optional[ResolvedSpecifier]:
        if owner is not None and not is_certainly_relative_path(alias):
            path = owner.resolve_import(alias, self.config)
            if path is not None:
                return await self._follow(path, owner, "import", 0)
            workspace = owner.resolve_workspace_import(alias, self.config)
            if workspace is not None:
                return await self._follow(workspace.path, workspace.manifest, "workspace", 0)

        if self.registry.handles(alias):
            return await self._follow(alias, owner, "registry", 0)

        if is_certainly_relative_path(alias) or alias.startswith("/"):
            if importer is None:
                return None
            return ResolvedSpecifier(resolve_as_url(alias, importer), owner, "relative")
        if is_absolute_path(alias):
            return ResolvedSpecifier(alias, owner, "absolute")
        return None

    async def _follow(
        self, path: str, manifest: Optional[PackageManifest], source: str, hops: int
    ) -> Optional[ResolvedSpecifier]:
        """Chase registry specifiers until a concrete location comes out."""
        while self.registry.handles(path):
            if hops >= self._max_hops:
                logger.warning("Giving up on %s after %d registry hops", path, hops)
                return None
            hops += 1
            resolution = await self.registry.resolve(path, self.config)
            if resolution is None:
                return None
            path, manifest, source = resolution.path, resolution.manifest, "registry"
        return ResolvedSpecifier(path, manifest, source)

    async def resolve_many(
        self,
        requests: Iterable[Tuple[str, Optional[str]]],
        return_exceptions: bool = False,
    ) -> List[Union[ResolvedSpecifier, BaseException]]:
        """Resolve ``(alias, importer)`` pairs concurrently, preserving order."""
        return await asyncio.gather(
            *(self.resolve(alias, importer) for alias, importer in requests),
            return_exceptions=return_exceptions,
        )
