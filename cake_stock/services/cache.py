"""
In-memory read-through cache for the derived views.

Entries are stored as serialized JSON snapshots and expire after a short TTL or
when a mutating operation invalidates their key. There is no locking and no
stampede protection: concurrent misses on one key may all recompute, which is
tolerable given how rarely the views are written compared to read.
"""

import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple, Union

from cake_stock.core.enums import CacheKey

logger = logging.getLogger(__name__)

KeyLike = Union[CacheKey, str]

DEFAULT_TTL_SECONDS = 10


def _key(key: KeyLike) -> str:
    return key.value if isinstance(key, CacheKey) else str(key)


class TTLCache:
    """
    Process-wide key/value store with per-entry expiry.

    A single instance is created at application start and handed to every
    service that reads or invalidates a view.
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    def get(self, key: KeyLike) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        name = _key(key)
        entry = self._entries.get(name)
        if entry is None:
            return None

        payload, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(name, None)
            logger.debug(f"Cache entry expired: {name}")
            return None
        return json.loads(payload)

    def put(self, key: KeyLike, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[_key(key)] = (json.dumps(value), self._clock() + ttl)

    def invalidate(self, keys: Iterable[KeyLike]) -> None:
        names = [_key(k) for k in keys]
        for name in names:
            self._entries.pop(name, None)
        logger.debug(f"Cache invalidated: {', '.join(names)}")

    def clear(self) -> None:
        self._entries.clear()

    async def with_cache(self, key: KeyLike, compute: Callable[[], Awaitable[Any]]) -> Any:
        """
        Read-through access: serve a live entry, otherwise compute, store and return.

        Errors raised by compute propagate and nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = await compute()
        self.put(key, value)
        return json.loads(json.dumps(value))
