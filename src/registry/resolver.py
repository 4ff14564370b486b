"""Resolve registry specifiers (``jsr:@scope/pkg@^1/sub``) to resource locations."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from common.logging_utils import extra_context, is_debug_enabled
from errors import InvalidManifestError, MalformedSpecifierError, ManifestNotFoundError
from importmap.paths import get_uri_scheme
from importmap.resolver import DEFAULT_CONFIG, ResolutionConfig
from manifest.base import WorkspaceManifest, WorkspaceResolution
from manifest.cache import SingleFlightCache
from manifest.loader import ManifestLoader
from versioning.models import ResolvedVersion
from versioning.parser import parse_version_query
from versioning.semver import SemverSelector

from .config import RegistryConfig, load_registries
from .specifier import PackageSpecifier, parse_specifier

logger = logging.getLogger(__name__)

VersionListing = Tuple[List[str], Optional[str]]


def parse_version_listing(url: str, document: Any) -> VersionListing:
    """Extract ``(versions, latest)`` from a registry listing document.

    Accepts a bare list of versions, ``{"versions": [...]}`` or
    ``{"versions": {version: metadata}}``; versions whose metadata is marked
    ``yanked`` are dropped. ``latest`` comes from ``latest`` or
    ``dist-tags.latest`` when present.
    """
    if isinstance(document, list):
        return [str(v) for v in document], None
    if not isinstance(document, Mapping):
        raise InvalidManifestError(url, "unrecognized version listing")

    versions = document.get("versions", [])
    if isinstance(versions, Mapping):
        available = [
            str(version)
            for version, metadata in versions.items()
            if not (isinstance(metadata, Mapping) and metadata.get("yanked"))
        ]
    elif isinstance(versions, list):
        available = [str(v) for v in versions]
    else:
        raise InvalidManifestError(url, '"versions" must be a list or an object')

    latest = document.get("latest")
    if latest is None:
        latest = (document.get("dist-tags") or {}).get("latest")
    return available, (str(latest) if latest else None)


class RegistryResolver:
    """Picks a version, locates its manifest and resolves the subpath inside it.

    Version listings and manifest locations are memoized per session with
    single-flight semantics, so concurrent lookups of one package share the
    same fetches.
    """

    def __init__(
        self,
        loader: ManifestLoader,
        registries: Optional[Dict[str, RegistryConfig]] = None,
        selector: Optional[SemverSelector] = None,
    ):
        self._loader = loader
        self._transport = loader.transport
        self.registries = registries if registries is not None else load_registries()
        self._selector = selector or SemverSelector()
        self._listings: SingleFlightCache[VersionListing] = SingleFlightCache(name="version_listing")
        self._manifest_urls: SingleFlightCache[str] = SingleFlightCache(name="manifest_location")

    def handles(self, specifier: str) -> bool:
        """True if ``specifier`` carries the scheme of a configured registry."""
        return get_uri_scheme(specifier) in self.registries

    def parse(self, specifier: str) -> PackageSpecifier:
        scheme = get_uri_scheme(specifier)
        registry = self.registries.get(scheme) if scheme else None
        return parse_specifier(specifier, registry.name_segments if registry else None)

    def registry_for(self, spec: PackageSpecifier) -> RegistryConfig:
        registry = self.registries.get(spec.scheme)
        if registry is None:
            raise MalformedSpecifierError(str(spec), f'no registry configured for scheme "{spec.scheme}"')
        return registry

    async def fetch_versions(self, registry: RegistryConfig, name: str) -> VersionListing:
        url = registry.listing_url(name)
        return await self._listings.get_or_load(url, lambda: self._load_listing(url))

    async def _load_listing(self, url: str) -> VersionListing:
        document = await self._transport.fetch_json(url)
        return parse_version_listing(url, document)

    async def select_version(self, spec: PackageSpecifier) -> ResolvedVersion:
        """Select the version of ``spec.name`` that satisfies ``spec.version_range``.

        Raises:
            VersionRangeUnsatisfiableError: No listed version satisfies the range.
        """
        registry = self.registry_for(spec)
        versions, latest = await self.fetch_versions(registry, spec.name)
        query = parse_version_query(spec.name, spec.version_range)
        return self._selector.select(query, versions, latest)

    async def locate_manifest(self, registry: RegistryConfig, name: str, version: str) -> str:
        """Return the first candidate manifest URL that exists."""
        key = (registry.scheme, name, version)
        return await self._manifest_urls.get_or_load(
            key, lambda: self._probe_manifest(registry, name, version)
        )

    async def _probe_manifest(self, registry: RegistryConfig, name: str, version: str) -> str:
        candidates = registry.manifest_urls(name, version)
        for url in candidates:
            if await self._transport.exists(url):
                return url
        raise ManifestNotFoundError(f"{registry.scheme}:{name}@{version}", candidates)

    async def load_package(self, specifier: str) -> Tuple[PackageSpecifier, WorkspaceManifest]:
        """Load the manifest of the version ``specifier`` selects."""
        spec = self.parse(specifier)
        registry = self.registry_for(spec)
        resolved = await self.select_version(spec)
        url = await self.locate_manifest(registry, spec.name, resolved.version)
        manifest = await self._loader.load(url)
        if is_debug_enabled(logger):
            logger.debug(
                "Registry package loaded",
                extra=extra_context(
                    event="registry_package",
                    component="registry_resolver",
                    specifier=specifier,
                    package=spec.name,
                    resolved=resolved.version,
                    manifest=url,
                ),
            )
        return spec, manifest

    async def resolve(
        self, specifier: str, config: Optional[ResolutionConfig] = None
    ) -> Optional[WorkspaceResolution]:
        """Resolve ``specifier`` to a location inside the selected package.

        Returns None when neither the package nor its workspace members
        export the requested subpath.
        """
        spec, manifest = await self.load_package(specifier)
        export_config = (config or DEFAULT_CONFIG).with_overrides(base_alias_dir="")
        alias = spec.export_alias
        path = manifest.resolve_export(alias, export_config)
        if path is not None:
            return WorkspaceResolution(path, manifest)
        return manifest.resolve_workspace_export(alias, export_config)
