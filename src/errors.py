"""Exceptions raised by the resolution engine."""

from typing import Optional, Sequence


class ResolutionError(Exception):
    """Base class for fatal resolution problems."""


class TrailingSlashMismatchError(ResolutionError, ValueError):
    """A directory alias (``.../``) maps to a path without a trailing slash."""

    def __init__(self, alias: str, path: str, path_alias: str):
        self.alias = alias
        self.path = path
        self.path_alias = path_alias
        super().__init__(
            f'the value ("{path}") of the matched import-map key ("{alias}") for the '
            f'path alias "{path_alias}" must end with a trailing slash ("/")'
        )


class MalformedSpecifierError(ResolutionError, ValueError):
    """A registry specifier could not be split into scheme/name/range/subpath."""

    def __init__(self, specifier: str, reason: str):
        self.specifier = specifier
        self.reason = reason
        super().__init__(f'malformed specifier "{specifier}": {reason}')


class VersionRangeUnsatisfiableError(ResolutionError, LookupError):
    """No published version satisfies the requested range."""

    def __init__(self, name: str, version_range: Optional[str], available: Sequence[str]):
        self.name = name
        self.version_range = version_range
        self.available = list(available)
        super().__init__(
            f'no version of "{name}" satisfies "{version_range}"; '
            f"available versions: {', '.join(self.available) or '(none)'}"
        )


class InvalidManifestError(ResolutionError, ValueError):
    """A manifest document violates its schema."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"invalid manifest {location}: {reason}")


class ManifestNotFoundError(ResolutionError, LookupError):
    """None of the candidate manifest locations exist."""

    def __init__(self, package: str, searched: Sequence[str]):
        self.package = package
        self.searched = list(searched)
        super().__init__(
            f'could not locate a manifest for "{package}"; searched: {", ".join(self.searched)}'
        )


class UnresolvedAliasError(ResolutionError, LookupError):
    """Raised by the top-level integration when no resolver step matched."""

    def __init__(self, alias: str, importer: Optional[str] = None, manifest: Optional[str] = None):
        self.alias = alias
        self.importer = importer
        self.manifest = manifest
        where = f" imported from {importer}" if importer else ""
        owner = f" (package manifest: {manifest})" if manifest else ""
        super().__init__(f'failed to resolve "{alias}"{where}{owner}')


class TransportError(Exception):
    """A fetch performed by a transport failed."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"{url}: {reason}")


class ResourceNotFoundError(TransportError):
    """The transport reached the source but the resource does not exist."""
