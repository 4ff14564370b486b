"""Package manifests, their workspace graph and the caches they are loaded through."""

from .base import PackageManifest, WorkspaceManifest, WorkspaceResolution
from .cache import ManifestCache, SingleFlightCache
from .deno import DenoManifest
from .loader import ManifestLoader, manifest_class_for
from .node import NodeManifest

__all__ = [
    "PackageManifest",
    "WorkspaceManifest",
    "WorkspaceResolution",
    "ManifestCache",
    "SingleFlightCache",
    "DenoManifest",
    "NodeManifest",
    "ManifestLoader",
    "manifest_class_for",
]
