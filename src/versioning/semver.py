"""Version selection using npm-style semantic version ranges."""

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

import semantic_version

from common.logging_utils import extra_context, is_debug_enabled
from errors import VersionRangeUnsatisfiableError

from .models import ResolutionMode, ResolvedVersion, VersionQuery

logger = logging.getLogger(__name__)


def _parse_candidates(candidates: Iterable[str]) -> Dict[semantic_version.Version, str]:
    """Map parsed versions back to their listing strings, skipping invalid ones."""
    parsed = {}
    for raw in candidates:
        try:
            parsed[semantic_version.Version(raw)] = raw
        except ValueError:
            continue  # Skip invalid versions
    return parsed


class SemverSelector:
    """Selects the maximal listed version satisfying a range.

    Understands ``^``, ``~``, comparison operators, hyphen ranges,
    x-ranges and ``||`` unions.
    """

    def select(
        self, query: VersionQuery, candidates: List[str], latest: Optional[str] = None
    ) -> ResolvedVersion:
        """Pick a version for ``query`` or raise.

        Args:
            query: Requested name and range.
            candidates: Published (non-yanked) version strings.
            latest: The listing's "latest" tag, used when no range was given.

        Raises:
            VersionRangeUnsatisfiableError: Nothing in ``candidates`` satisfies the range.
        """
        version, count, error = self.pick(query, candidates, latest)
        if version is None:
            logger.debug("Version selection failed for %s: %s", query.name, error)
            raise VersionRangeUnsatisfiableError(query.name, query.version_range, candidates)
        if is_debug_enabled(logger):
            logger.debug(
                "Selected version",
                extra=extra_context(
                    event="version_selected",
                    component="semver",
                    package=query.name,
                    requested=query.version_range,
                    resolved=version,
                    candidate_count=count,
                ),
            )
        return ResolvedVersion(
            name=query.name,
            version=version,
            version_range=query.version_range,
            mode=query.mode,
            candidate_count=count,
        )

    def pick(
        self, query: VersionQuery, candidates: List[str], latest: Optional[str] = None
    ) -> Tuple[Optional[str], int, Optional[str]]:
        """Apply semver rules to select a version.

        Returns:
            Tuple of (resolved_version, candidate_count, error_message)
        """
        if query.mode == ResolutionMode.LATEST:
            if latest and latest in candidates:
                return latest, len(candidates), None
            return self._pick_latest(candidates)
        if query.mode == ResolutionMode.EXACT:
            return self._pick_exact(query.version_range, candidates)
        return self._pick_range(query.version_range, candidates, query.include_prerelease)

    def _pick_latest(self, candidates: List[str]) -> Tuple[Optional[str], int, Optional[str]]:
        """Pick the highest stable version, or the highest pre-release if that is all there is."""
        if not candidates:
            return None, 0, "No versions available"
        parsed = _parse_candidates(candidates)
        if not parsed:
            return None, len(candidates), "No valid semantic versions found"
        stable = [v for v in parsed if not v.prerelease]
        best = max(stable or parsed)
        return parsed[best], len(candidates), None

    def _pick_exact(self, version: str, candidates: List[str]) -> Tuple[Optional[str], int, Optional[str]]:
        """Check if exact version exists in candidates."""
        if version in candidates:
            return version, len(candidates), None
        # "v1.2.3" and "=1.2.3" name the same version.
        stripped = version.lstrip("v=")
        if stripped in candidates:
            return stripped, len(candidates), None
        return None, len(candidates), f"Version {version} not found"

    def _normalize_spec(self, spec_str: str) -> str:
        """Normalize npm range syntax (hyphen, x-ranges) into SimpleSpec-compatible form."""
        s = spec_str.strip()

        # Hyphen ranges: "1.2.3 - 1.4.5" => ">=1.2.3,<=1.4.5"
        m = re.match(r'^\s*([0-9A-Za-z\.\-\+]+)\s+-\s+([0-9A-Za-z\.\-\+]+)\s*$', s)
        if m:
            return f">={m.group(1)},<={m.group(2)}"

        # x-ranges: 1.2.x or 1.x or 1.* -> comparator pairs
        s2 = s.replace('*', 'x').lower()
        m = re.match(r'^\s*(\d+)\.(\d+)\.x\s*$', s2)
        if m:
            major, minor = int(m.group(1)), int(m.group(2))
            return f">={major}.{minor}.0,<{major}.{minor + 1}.0"

        m = re.match(r'^\s*(\d+)(\.x)?\s*$', s2)
        if m:
            major = int(m.group(1))
            return f">={major}.0.0,<{major + 1}.0.0"

        return spec_str

    def _build_spec(self, spec_str: str):
        # NpmSpec understands ^, ~, hyphen ranges and x-ranges natively.
        try:
            return semantic_version.NpmSpec(spec_str)
        except ValueError:
            return semantic_version.SimpleSpec(self._normalize_spec(spec_str))

    def _pick_range(
        self, spec_str: str, candidates: List[str], include_prerelease: bool
    ) -> Tuple[Optional[str], int, Optional[str]]:
        """Apply semver range and pick highest matching version."""
        try:
            spec = self._build_spec(spec_str)
        except ValueError as e:
            return None, len(candidates), f"Invalid semver spec: {str(e)}"

        parsed = _parse_candidates(candidates)
        matching_versions = [
            ver for ver in parsed
            # Skip pre-releases unless explicitly allowed
            if (include_prerelease or not ver.prerelease) and spec.match(ver)
        ]
        if not matching_versions:
            return None, len(candidates), f"No versions match spec '{spec_str}'"
        return parsed[max(matching_versions)], len(candidates), None
