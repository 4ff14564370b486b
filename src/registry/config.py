"""Per-scheme registry settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from constants import Constants


@dataclass(frozen=True)
class RegistryConfig:
    """Where a registry publishes version listings and manifests.

    ``listing`` and ``manifest`` are URL templates with ``{host}``, ``{name}``
    and (manifest only) ``{version}`` / ``{filename}`` placeholders.
    """

    scheme: str
    host: str
    listing: str
    manifest: str
    manifest_files: Tuple[str, ...]
    name_segments: int = 2

    @classmethod
    def from_mapping(cls, scheme: str, mapping: Mapping[str, Any]) -> "RegistryConfig":
        missing = [key for key in ("host", "listing", "manifest", "manifest_files") if not mapping.get(key)]
        if missing:
            raise ValueError(f"registry '{scheme}' is missing: {', '.join(missing)}")
        return cls(
            scheme=scheme.lower(),
            host=str(mapping["host"]),
            listing=str(mapping["listing"]),
            manifest=str(mapping["manifest"]),
            manifest_files=tuple(str(name) for name in mapping["manifest_files"]),
            name_segments=int(mapping.get("name_segments", 2)),
        )

    def listing_url(self, name: str) -> str:
        return self.listing.format(host=self.host, name=name)

    def manifest_urls(self, name: str, version: str) -> List[str]:
        """Candidate manifest URLs for one package version, in preference order."""
        return [
            self.manifest.format(host=self.host, name=name, version=version, filename=filename)
            for filename in self.manifest_files
        ]


def load_registries(registries: Optional[Mapping[str, Mapping[str, Any]]] = None) -> Dict[str, RegistryConfig]:
    """Build RegistryConfig objects keyed by scheme (defaults from Constants)."""
    source = Constants.REGISTRIES if registries is None else registries
    return {scheme.lower(): RegistryConfig.from_mapping(scheme, mapping) for scheme, mapping in source.items()}
