"""Per-run memoization of registry lookups with one in-flight fetch per key."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


class ResolutionCache:
    """Keyed cache guarded by lazily created per-key asyncio locks.

    The first caller for a key performs the fetch while concurrent callers
    for the same key wait on its lock and then read the stored result.
    Results are stored even when they are None; exceptions are not stored,
    so a later caller retries the fetch.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Any] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.hits = 0
        self.misses = 0

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for key, fetching it once if missing."""
        async with self._lock_for(key):
            if key in self._entries:
                self.hits += 1
                if is_debug_enabled(logger):
                    logger.debug(
                        "Resolution cache hit",
                        extra=extra_context(event="cache_hit", component="resolution_cache", target=key),
                    )
                return self._entries[key]
            self.misses += 1
            value = await fetch()
            self._entries[key] = value
            return value

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Return a stored value without fetching."""
        return self._entries.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Drop all entries and locks."""
        self._entries.clear()
        self._locks.clear()
