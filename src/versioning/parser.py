"""Classify requested version ranges."""

import re
from typing import Optional

from .models import ResolutionMode, VersionQuery

_RANGE_OPS = ['^', '~', '*', 'x', 'X', ' - ', '<', '>', '=', '|', ' ']
_PRERELEASE_RE = re.compile(r'\d+\.\d+\.\d+-[0-9A-Za-z]')


def _determine_resolution_mode(spec: Optional[str]) -> ResolutionMode:
    """Determine resolution mode from a range string."""
    if spec is None or spec.strip() in ('', 'latest'):
        return ResolutionMode.LATEST
    spec = spec.strip()
    if any(op in spec for op in _RANGE_OPS):
        return ResolutionMode.RANGE
    # Partial versions ("2", "2.1") behave like x-ranges.
    if spec.count('.') < 2:
        return ResolutionMode.RANGE
    return ResolutionMode.EXACT


def _determine_include_prerelease(spec: Optional[str]) -> bool:
    """Pre-releases are only candidates when the range names one."""
    return bool(spec) and bool(_PRERELEASE_RE.search(spec))


def parse_version_query(name: str, version_range: Optional[str]) -> VersionQuery:
    """Build a VersionQuery for ``name`` from a raw range (None for latest)."""
    raw = version_range.strip() if version_range else None
    mode = _determine_resolution_mode(raw)
    return VersionQuery(
        name=name,
        version_range=None if mode == ResolutionMode.LATEST else raw,
        mode=mode,
        include_prerelease=_determine_include_prerelease(raw),
    )
