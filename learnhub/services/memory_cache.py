# services/memory_cache.py
"""
Async-friendly in-process cache with TTL (layer 1).

Sits in front of Redis (layer 2). Values are the decoded JSON payloads, so a
hit never needs deserialising.
"""

import asyncio
import time
from typing import Any, Optional, Dict, Tuple

class AsyncInMemoryCache:
    def __init__(self, max_entries: int = 10000):
        self._store: Dict[str, Tuple[float, Any]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._global_lock = asyncio.Lock()
        self.max_entries = max_entries

    def _now(self) -> float:
        return time.monotonic()

    def size(self) -> int:
        return len(self._store)

    async def get(self, key: str) -> Optional[Any]:
        item = self._store.get(key)
        if not item:
            return None
        expires_at, value = item
        if expires_at != 0 and self._now() > expires_at:
            self._store.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl: int = 0) -> None:
        if len(self._store) >= self.max_entries and key not in self._store:
            self.purge_expired()
            if len(self._store) >= self.max_entries:
                # drop the oldest insertion
                self._store.pop(next(iter(self._store)), None)
        expires_at = self._now() + ttl if ttl and ttl > 0 else 0
        self._store[key] = (expires_at, value)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def pattern_delete(self, prefix: str) -> int:
        keys = [k for k in self._store if k.startswith(prefix)]
        for k in keys:
            self._store.pop(k, None)
        return len(keys)

    def purge_expired(self) -> None:
        now = self._now()
        for k in [k for k, (exp, _) in self._store.items() if exp != 0 and now > exp]:
            self._store.pop(k, None)

    async def clear(self) -> None:
        self._store.clear()
        self._locks.clear()

    async def get_lock(self, key: str) -> asyncio.Lock:
        # per-key lock for dogpile protection
        async with self._global_lock:
            if key not in self._locks:
                self._locks[key] = asyncio.Lock()
            return self._locks[key]

# Singleton instance
memory_cache = AsyncInMemoryCache()
