"""Data models for version selection."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResolutionMode(Enum):
    """Selection strategy derived from the requested range."""
    EXACT = "exact"
    RANGE = "range"
    LATEST = "latest"


@dataclass(frozen=True)
class VersionQuery:
    """A version range requested for a package name."""
    name: str
    version_range: Optional[str]
    mode: ResolutionMode
    include_prerelease: bool = False


@dataclass(frozen=True)
class ResolvedVersion:
    """Concrete version chosen for a query."""
    name: str
    version: str
    version_range: Optional[str]
    mode: ResolutionMode
    candidate_count: int
