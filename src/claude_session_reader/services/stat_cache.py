"""In-memory TTL cache used to share file stats across metadata requests."""

import functools
import time
from typing import Callable, Hashable, TypeVar

T = TypeVar("T")

STAT_CACHE_TTL_SECONDS = 30.0


class TTLCache:
    """Overwrite-on-expiry map from key to (value, stored_at).

    Last writer wins; concurrent readers may see a value up to ``ttl`` old.
    """

    def __init__(self, ttl: float = STAT_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[object, float]] = {}

    def get(self, key: Hashable) -> tuple[bool, object]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        value, stored_at = entry
        if self._clock() - stored_at >= self._ttl:
            return False, None
        return True, value

    def put(self, key: Hashable, value: object):
        self._entries[key] = (value, self._clock())

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def ttl_cached(ttl: float = STAT_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
    """Decorate a single-argument function with a TTL cache keyed by that argument.

    The wrapper exposes ``cache`` and ``cache_clear()``.
    """

    def decorator(func: Callable[[Hashable], T]) -> Callable[[Hashable], T]:
        cache = TTLCache(ttl, clock)

        @functools.wraps(func)
        def wrapper(key):
            hit, value = cache.get(key)
            if hit:
                return value
            value = func(key)
            cache.put(key, value)
            return value

        wrapper.cache = cache
        wrapper.cache_clear = cache.clear
        return wrapper

    return decorator
