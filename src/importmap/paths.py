"""Path and URL string helpers used for alias matching.

All helpers operate on POSIX-style strings. A "root" is a URI scheme plus an
optional authority (``https://host``, ``jsr:``, ``file://``); it is never
touched by normalization.
"""
from __future__ import annotations

import os
import re
import urllib.parse
from pathlib import Path
from typing import Optional, Tuple

_ROOT_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*:)(//[^/?#]*)?")
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


def _split_root(path: str) -> Tuple[str, str]:
    match = _ROOT_RE.match(path)
    if not match:
        return "", path
    return match.group(0), path[match.end():]


def get_uri_scheme(path: str) -> Optional[str]:
    """Return the lower-cased scheme of ``path`` (without the colon), if any."""
    match = _SCHEME_RE.match(path)
    # Single letters are Windows drive letters, not schemes.
    if not match or len(match.group(0)) <= 2:
        return None
    return match.group(0)[:-1].lower()


def is_absolute_path(path: str) -> bool:
    """True for ``/``-rooted paths and anything carrying a URI scheme."""
    return path.startswith("/") or get_uri_scheme(path) is not None


def is_certainly_relative_path(path: str) -> bool:
    """True for paths starting with ``./`` or ``../`` (or equal to ``.``/``..``)."""
    return path in (".", "..") or path.startswith("./") or path.startswith("../")


def normalize_path(path: str) -> str:
    """Collapse ``.`` and ``..`` segments and repeated slashes.

    A leading ``./`` and a trailing ``/`` are preserved, as is the root of a
    URL. ``..`` segments that climb above a relative path are kept.

    >>> normalize_path("./a/../b/")
    './b/'
    >>> normalize_path("http://shape.com/lib/../square.js")
    'http://shape.com/square.js'
    """
    root, body = _split_root(path)
    if body == "":
        return path
    absolute = body.startswith("/")
    leading_dot = body == "." or body.startswith("./")
    trailing = body.endswith("/") or body.endswith("/.")

    segments = []
    for segment in body.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if segments and segments[-1] != "..":
                segments.pop()
            elif not absolute:
                segments.append("..")
            continue
        segments.append(segment)

    joined = "/".join(segments)
    if absolute:
        result = "/" + joined
    elif joined == ".." or joined.startswith("../"):
        result = joined
    elif leading_dot:
        result = "./" + joined if joined else "."
    else:
        result = joined
    if trailing and not result.endswith("/"):
        result += "/"
    return root + result


def join_paths(base: str, *segments: str) -> str:
    """Join ``segments`` onto ``base`` with ``/`` and normalize the result."""
    result = base
    for segment in segments:
        if not segment:
            continue
        if result and not result.endswith("/"):
            result += "/"
        result += segment
    return normalize_path(result)


def ensure_end_slash(path: str) -> str:
    return path if path.endswith("/") else path + "/"


def ensure_start_dot_slash(path: str) -> str:
    """Turn ``x/y`` or ``/x/y`` into ``./x/y``; relative paths are left alone."""
    if is_certainly_relative_path(path):
        return path
    return "./" + path.lstrip("/")


def replace_prefix(value: str, prefix: str, replacement: str = "") -> Optional[str]:
    """Swap ``prefix`` for ``replacement``; None if ``value`` lacks the prefix."""
    if not value.startswith(prefix):
        return None
    return replacement + value[len(prefix):]


def replace_suffix(value: str, suffix: str, replacement: str = "") -> Optional[str]:
    """Swap ``suffix`` for ``replacement``; None if ``value`` lacks the suffix."""
    if not suffix:
        return value + replacement
    if not value.endswith(suffix):
        return None
    return value[: -len(suffix)] + replacement


def parent_directory(location: str) -> str:
    """Return the directory URL (with trailing slash) containing ``location``.

    A location that already ends in ``/`` is returned unchanged.
    """
    if location.endswith("/"):
        return location
    root, body = _split_root(location)
    head, sep, _ = body.rpartition("/")
    if not sep:
        return root
    return root + head + "/"


def resolve_as_url(location: str, base: Optional[str] = None) -> str:
    """Resolve ``location`` to an absolute URL string.

    Local filesystem paths become ``file://`` URLs (relative ones are taken
    against ``base`` when given, else the current directory); URLs pass
    through untouched apart from dot-segment normalization.
    """
    if get_uri_scheme(location) is not None:
        return normalize_path(location)
    if base is not None:
        if get_uri_scheme(base) is None:
            base = resolve_as_url(base)
        if not location.startswith("/"):
            return join_paths(parent_directory(base), location)
        root, _ = _split_root(base)
        if root and not root.startswith("file:"):
            return normalize_path(root + location)
    trailing = location.endswith(("/", os.sep))
    url = Path(os.path.abspath(location)).as_uri()
    return ensure_end_slash(url) if trailing else url


def normalize_location(location: str) -> str:
    """Canonical identity key for a manifest location.

    Scheme and host are lower-cased, dot segments collapsed and any trailing
    slash stripped; local paths are first turned into ``file://`` URLs.
    Every cache consumer must key through this function.
    """
    url = resolve_as_url(location)
    parts = urllib.parse.urlsplit(url)
    netloc = parts.netloc.lower()
    path = parts.path
    if path.endswith("/") and path != "/":
        path = path.rstrip("/")
    if parts.scheme in ("http", "https", "file"):
        return urllib.parse.urlunsplit((parts.scheme.lower(), netloc, path, parts.query, ""))
    return url.rstrip("/") if url.endswith("/") else url
