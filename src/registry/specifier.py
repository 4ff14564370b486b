"""Registry specifier grammar.

``scheme ":" ["/"] name ["@" versionRange] ["/" subpath]``, for example
``jsr:@std/path@^1.0.0/join`` or ``npm:/preact@10``.
"""
from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from typing import Optional

from errors import MalformedSpecifierError

_SPECIFIER_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):/?(.*)$", re.DOTALL)


@dataclass(frozen=True)
class PackageSpecifier:
    """A parsed registry specifier."""

    scheme: str
    name: str
    version_range: Optional[str] = None
    subpath: Optional[str] = None

    @property
    def export_alias(self) -> str:
        """The export alias the subpath selects: ``./sub`` or ``.``."""
        return f"./{self.subpath}" if self.subpath else "."

    def with_version(self, version_range: Optional[str]) -> "PackageSpecifier":
        return dataclasses.replace(self, version_range=version_range)

    def __str__(self) -> str:
        text = f"{self.scheme}:{self.name}"
        if self.version_range:
            text += f"@{self.version_range}"
        if self.subpath:
            text += f"/{self.subpath}"
        return text


def _validate_name(specifier: str, name: str) -> None:
    segments = name.split("/")
    if not name or any(not segment for segment in segments):
        raise MalformedSpecifierError(specifier, "missing package name")
    if name.startswith("@") and (len(segments) != 2 or segments[0] == "@"):
        raise MalformedSpecifierError(specifier, 'scoped names must look like "@scope/name"')


def parse_specifier(specifier: str, name_segments: Optional[int] = None) -> PackageSpecifier:
    """Split ``specifier`` into scheme, name, version range and subpath.

    With a version range, the name is everything before the version ``@``.
    Without one, the name spans ``name_segments`` path segments (1 when not
    given); scoped ``@scope/name`` names always span two.

    Raises:
        MalformedSpecifierError: No scheme, no name, or an empty version range.
    """
    match = _SPECIFIER_RE.match(specifier.strip())
    if not match or len(match.group(1)) < 2:
        raise MalformedSpecifierError(specifier, "missing scheme")
    scheme, rest = match.group(1).lower(), match.group(2)
    if not rest:
        raise MalformedSpecifierError(specifier, "missing package name")

    scoped = rest.startswith("@")
    at = rest.find("@", 1 if scoped else 0)
    if at != -1:
        name = rest[:at]
        version_range, _, subpath = rest[at + 1:].partition("/")
        if not version_range.strip():
            raise MalformedSpecifierError(specifier, "empty version range")
        version_range = version_range.strip()
    else:
        segments = rest.split("/")
        count = 2 if scoped else max(1, name_segments or 1)
        name = "/".join(segments[:count])
        subpath = "/".join(segments[count:])
        version_range = None

    _validate_name(specifier, name)
    return PackageSpecifier(
        scheme=scheme,
        name=name,
        version_range=version_range,
        subpath=subpath or None,
    )
