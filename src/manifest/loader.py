"""Locate, fetch, parse and wire manifests."""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from typing import Iterable, List, Optional, Type

from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from common.transport import Transport
from constants import Constants
from errors import InvalidManifestError, ManifestNotFoundError
from importmap.paths import ensure_end_slash, normalize_location, resolve_as_url

from . import jsonc
from .base import WorkspaceManifest
from .cache import ManifestCache, SingleFlightCache
from .deno import DenoManifest
from .node import NodeManifest

logger = logging.getLogger(__name__)

MANIFEST_CLASSES = (DenoManifest, NodeManifest)


def _basename(location: str) -> str:
    return location.rstrip("/").rsplit("/", 1)[-1].lower()


def manifest_class_for(location: str) -> Type[WorkspaceManifest]:
    """Pick the manifest variant from the file name at the end of ``location``.

    Raises:
        InvalidManifestError: The file name is not a recognized manifest.
    """
    filename = _basename(location)
    for cls in MANIFEST_CLASSES:
        if filename in cls.filenames:
            return cls
    raise InvalidManifestError(location, f'unrecognized manifest file name "{filename}"')


def is_manifest_file(location: str) -> bool:
    filename = _basename(location)
    return any(filename in cls.filenames for cls in MANIFEST_CLASSES)


class ManifestLoader:
    """Loads manifests through a :class:`ManifestCache` and wires workspaces.

    ``load`` returns only once every workspace member reachable downwards
    from the manifest has been loaded and linked. Wiring a manifest only
    waits on manifest loads, never on another manifest's wiring, so cyclic
    workspaces cannot deadlock.
    """

    def __init__(
        self,
        transport: Transport,
        cache: Optional[ManifestCache] = None,
        scan_order: Optional[Iterable[str]] = None,
    ):
        self.transport = transport
        self.cache = cache if cache is not None else ManifestCache()
        self._scan_order = list(scan_order or Constants.MANIFEST_SCAN_ORDER)
        self._wiring: SingleFlightCache[List[WorkspaceManifest]] = SingleFlightCache(
            name="workspace_wiring", key_func=normalize_location
        )

    async def locate(self, directory: str) -> Optional[str]:
        """Return the URL of the first manifest file present in ``directory``."""
        directory = ensure_end_slash(resolve_as_url(directory))
        for filename in self._scan_order:
            candidate = directory + filename
            if await self.transport.exists(candidate):
                return candidate
        return None

    async def load(self, location: str, base: Optional[str] = None, wire: bool = True) -> WorkspaceManifest:
        """Load the manifest at ``location`` (a manifest file or a package directory).

        Raises:
            ManifestNotFoundError: ``location`` is a directory without a manifest.
            InvalidManifestError: The manifest cannot be parsed or violates its schema.
            TransportError: The fetch failed.
        """
        url = resolve_as_url(location, base)
        if not is_manifest_file(url):
            directory = ensure_end_slash(url)
            found = await self.locate(directory)
            if found is None:
                raise ManifestNotFoundError(directory, [directory + name for name in self._scan_order])
            url = found
        manifest = await self.cache.get_or_load(url, lambda: self._fetch_manifest(url))
        if wire:
            await self.wire_workspace(manifest)
        return manifest

    async def _fetch_manifest(self, url: str) -> WorkspaceManifest:
        cls = manifest_class_for(url)
        with Timer() as t:
            text = await self.transport.fetch_text(url)
        try:
            info = jsonc.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidManifestError(url, f"invalid JSON: {exc}") from exc
        manifest = cls(info, url)
        if is_debug_enabled(logger):
            logger.debug(
                "Loaded manifest",
                extra=extra_context(
                    event="manifest_loaded",
                    component="manifest_loader",
                    target=safe_url(url),
                    package=manifest.name,
                    duration_ms=t.duration_ms(),
                ),
            )
        return manifest

    async def wire_workspace(self, root: WorkspaceManifest) -> None:
        """Attach workspace children breadth-first below ``root``."""
        queue = deque([root])
        seen = {root.location}
        while queue:
            manifest = queue.popleft()
            children = await self._wiring.get_or_load(
                manifest.location, lambda m=manifest: self._attach_children(m)
            )
            for child in children:
                if child.location not in seen:
                    seen.add(child.location)
                    queue.append(child)

    async def _attach_children(self, manifest: WorkspaceManifest) -> List[WorkspaceManifest]:
        members = manifest.workspace_members()
        if not members:
            return []
        locations = [ensure_end_slash(resolve_as_url(member, manifest.location)) for member in members]
        children = await asyncio.gather(*(self.load(location, wire=False) for location in locations))
        for child in children:
            manifest.add_child(child)
        logger.debug("Wired %d workspace member(s) under %s", len(children), manifest.location)
        return list(children)
