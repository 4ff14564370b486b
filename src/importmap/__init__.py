"""Import-map alias tables and the path helpers they are matched with."""

from .paths import (
    ensure_end_slash,
    ensure_start_dot_slash,
    get_uri_scheme,
    is_absolute_path,
    is_certainly_relative_path,
    join_paths,
    normalize_location,
    normalize_path,
    parent_directory,
    resolve_as_url,
)
from .resolver import (
    AliasEntry,
    AliasTable,
    DEFAULT_CONFIG,
    ResolutionConfig,
    build_alias_table,
    resolve_path_from_entries,
    resolve_path_from_import_map,
    sort_entries,
)

__all__ = [
    "AliasEntry",
    "AliasTable",
    "DEFAULT_CONFIG",
    "ResolutionConfig",
    "build_alias_table",
    "resolve_path_from_entries",
    "resolve_path_from_import_map",
    "sort_entries",
    "ensure_end_slash",
    "ensure_start_dot_slash",
    "get_uri_scheme",
    "is_absolute_path",
    "is_certainly_relative_path",
    "join_paths",
    "normalize_location",
    "normalize_path",
    "parent_directory",
    "resolve_as_url",
]
