"""Alias resolution against import-map style alias tables.

An alias table is a sequence of :class:`AliasEntry` pairs. Aliases ending in
``/`` are directory aliases and match any alias they prefix; all other aliases
only match exactly. Matching is longest-alias-first, so tables are kept sorted
by decreasing alias length.

Example::

    table = build_alias_table({".": "./src/mod.ts", "./util/": "./src/util/"})
    resolve_path_from_entries("./util/helpers.ts", table)  # "./src/util/helpers.ts"
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Iterable, Mapping, NamedTuple, Optional, Sequence, Tuple

from errors import TrailingSlashMismatchError

from .paths import (
    ensure_start_dot_slash,
    is_absolute_path,
    join_paths,
    normalize_path,
    replace_prefix,
    replace_suffix,
)


class AliasEntry(NamedTuple):
    """A single ``alias -> path`` mapping."""

    alias: str
    path: str


AliasTable = Tuple[AliasEntry, ...]


@dataclass(frozen=True)
class ResolutionConfig:
    """Options for :func:`resolve_path_from_entries`.

    Attributes:
        base_alias_dir: Prefix that relative (``./``) table aliases live under.
            A probe starting with it is matched as a relative alias; other
            probes are matched as-is. ``None`` means unset.
        base_path_dir: Prefix applied to relative resolved paths. Absolute
            paths (``/``-rooted or with a URI scheme) are returned untouched.
        sort: Set False only if the entries are already sorted longest-alias-first.
        error_check: Raise when a directory alias maps to a non-directory path.
    """

    base_alias_dir: Optional[str] = None
    base_path_dir: Optional[str] = None
    sort: bool = True
    error_check: bool = True

    def with_overrides(self, **changes) -> "ResolutionConfig":
        return dataclasses.replace(self, **changes)


DEFAULT_CONFIG = ResolutionConfig()


def sort_entries(entries: Iterable[Tuple[str, str]]) -> AliasTable:
    """Sort entries by decreasing alias length.

    The sort is stable: aliases of equal length keep their input order.
    """
    return tuple(
        AliasEntry(alias, path)
        for alias, path in sorted(entries, key=lambda entry: len(entry[0]), reverse=True)
    )


def build_alias_table(mapping: Mapping[str, str]) -> AliasTable:
    """Normalize the aliases of ``mapping`` and return them as a sorted table.

    When two aliases normalize to the same string, the first one wins.
    """
    normalized = {}
    for alias, path in mapping.items():
        key = normalize_path(alias)
        if key not in normalized:
            normalized[key] = path
    return sort_entries(normalized.items())


def _strip_end_slash(value: Optional[str]) -> str:
    if not value:
        return ""
    stripped = replace_suffix(value, "/")
    return value if stripped is None else stripped


def resolve_path_from_entries(
    path_alias: str,
    entries: Sequence[Tuple[str, str]],
    config: Optional[ResolutionConfig] = None,
) -> Optional[str]:
    """Resolve ``path_alias`` against an alias table.

    The probe is normalized before matching, the table aliases are not:
    callers must pass normalized aliases (see :func:`build_alias_table`),
    otherwise entries such as ``"./a/../b"`` can never match.

    Returns:
        The resolved path, or None when no entry matches.

    Raises:
        TrailingSlashMismatchError: A directory alias matched but its path
            does not end in ``/`` (only with ``config.error_check``).
    """
    config = config or DEFAULT_CONFIG
    base_alias_dir = _strip_end_slash(config.base_alias_dir)
    base_path_dir = _strip_end_slash(config.base_path_dir)

    unprefixed = replace_prefix(normalize_path(path_alias), base_alias_dir)
    if unprefixed is None:
        # Not under the base alias dir: try it as a non-relative alias.
        return resolve_path_from_entries(
            path_alias, entries, config.with_overrides(base_alias_dir="")
        )
    if unprefixed == "" or (base_alias_dir and unprefixed.startswith("/")):
        probe = "." + unprefixed
    else:
        probe = unprefixed

    table = sort_entries(entries) if config.sort else entries
    for alias, path in table:
        residual = replace_prefix(probe, alias)
        if residual is None:
            continue
        is_directory_alias = alias.endswith("/")
        if residual and not is_directory_alias:
            continue
        if config.error_check and is_directory_alias and not path.endswith("/"):
            raise TrailingSlashMismatchError(alias, path, path_alias)
        base_path = (
            path
            if not base_path_dir or is_absolute_path(path)
            else join_paths(base_path_dir + "/", path)
        )
        if residual == "":
            return base_path
        if base_path.endswith("/"):
            return join_paths(base_path, ensure_start_dot_slash(residual))
        # Only reachable with error_check off: splice the remainder verbatim.
        return base_path + residual
    return None


def resolve_path_from_import_map(path_alias: str, import_map: Mapping[str, str]) -> Optional[str]:
    """Resolve ``path_alias`` against a plain ``{alias: path}`` import map.

    An exact key match wins; otherwise the longest directory key that prefixes
    the normalized alias is used. Directory keys with non-directory values
    always raise.
    """
    path_alias = normalize_path(path_alias)
    exact = import_map.get(path_alias)
    if exact is not None:
        return exact
    directory_keys = sorted((key for key in import_map if key.endswith("/")), key=len, reverse=True)
    for key in directory_keys:
        if path_alias.startswith(key):
            value = import_map[key]
            if not value.endswith("/"):
                raise TrailingSlashMismatchError(key, value, path_alias)
            return value + path_alias[len(key):]
    return None
