"""Single-flight caches for manifests and other per-session lookups."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, Hashable, Optional, TypeVar, Union

from common.logging_utils import extra_context, is_debug_enabled
from importmap.paths import normalize_location

from .base import PackageManifest

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlightCache(Generic[T]):
    """Async memo table where each key is loaded at most once at a time.

    An entry is either the loaded value or the future of an in-flight load.
    The future is stored before the loader is awaited, so concurrent callers
    for the same key share one load. A failed or cancelled load evicts its
    key so the next caller starts over. Entries are never expired.
    """

    def __init__(self, name: str = "cache", key_func: Optional[Callable[[Hashable], Hashable]] = None):
        self._name = name
        self._key_func = key_func
        self._entries: Dict[Hashable, Union[T, asyncio.Future]] = {}
        self.hits = 0
        self.misses = 0

    def _make_key(self, key: Hashable) -> Hashable:
        return self._key_func(key) if self._key_func else key

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self._make_key(key) in self._entries

    def peek(self, key: Hashable) -> Optional[T]:
        """Return the loaded value for ``key`` without waiting, or None."""
        entry = self._entries.get(self._make_key(key))
        if entry is None or isinstance(entry, asyncio.Future):
            return None
        return entry

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(self._make_key(key), None)

    def _evict(self, cache_key: Hashable, future: asyncio.Future) -> None:
        if self._entries.get(cache_key) is future:
            del self._entries[cache_key]

    async def get_or_load(self, key: Hashable, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the value for ``key``, running ``loader`` only if nobody else is.

        Exceptions raised by ``loader`` propagate to the caller that ran it and
        to every caller waiting on the same load.
        """
        cache_key = self._make_key(key)
        while True:
            entry = self._entries.get(cache_key)
            if entry is None:
                break
            if not isinstance(entry, asyncio.Future):
                self.hits += 1
                if is_debug_enabled(logger):
                    logger.debug(
                        "Cache hit",
                        extra=extra_context(event="cache_hit", component=self._name, key=cache_key),
                    )
                return entry
            try:
                return await asyncio.shield(entry)
            except asyncio.CancelledError:
                # The loading caller was cancelled, not us: load it ourselves.
                if entry.cancelled():
                    continue
                raise

        self.misses += 1
        if is_debug_enabled(logger):
            logger.debug(
                "Cache miss",
                extra=extra_context(event="cache_miss", component=self._name, key=cache_key),
            )
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._entries[cache_key] = future
        try:
            value = await loader()
        except Exception as exc:
            self._evict(cache_key, future)
            future.set_exception(exc)
            # Mark retrieved so an unobserved failure is not reported at GC.
            future.exception()
            raise
        except BaseException:
            self._evict(cache_key, future)
            future.cancel()
            raise
        self._entries[cache_key] = value
        future.set_result(value)
        return value


class ManifestCache(SingleFlightCache[PackageManifest]):
    """Manifests keyed by normalized location.

    Every caller observes the same :class:`PackageManifest` object for
    locations that normalize to the same key.
    """

    def __init__(self):
        super().__init__(name="manifest_cache", key_func=normalize_location)

    def get(self, location: str) -> Optional[PackageManifest]:
        return self.peek(location)
