"""Best-effort in-process read-through cache with per-entry TTL."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def cache_key(owner_id: str, *parts: str) -> str:
    """Build an owner-scoped key such as ``user:<id>:categories``."""

    return ":".join(["user", owner_id, *parts])


class TTLCache:
    """Small key/value cache; a miss or a disabled cache only costs latency."""

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = max(0.0, float(ttl_seconds))
        self._enabled = enabled and self._ttl > 0
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def get(self, key: str) -> Any | None:
        if not self._enabled:
            return None
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                self._entries.pop(key, None)
                return None
            return value

    async def set(self, key: str, value: Any) -> None:
        if not self._enabled:
            return
        async with self._lock:
            self._entries[key] = (self._clock() + self._ttl, value)

    async def invalidate(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``."""

        async with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Invalidated %d cache entries for %s", len(stale), prefix)
        return len(stale)

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await loader()
        await self.set(key, value)
        return value

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()


__all__ = ["TTLCache", "cache_key"]
