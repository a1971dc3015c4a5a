"""Tests for claude_session_reader.services.stat_cache."""

from claude_session_reader.services.stat_cache import TTLCache, ttl_cached


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    def test_miss_then_hit(self):
        clock = FakeClock()
        cache = TTLCache(ttl=30, clock=clock)
        assert cache.get("a") == (False, None)
        cache.put("a", 1)
        assert cache.get("a") == (True, 1)

    def test_cached_none_is_a_hit(self):
        cache = TTLCache(ttl=30, clock=FakeClock())
        cache.put("a", None)
        assert cache.get("a") == (True, None)

    def test_expiry(self):
        clock = FakeClock()
        cache = TTLCache(ttl=30, clock=clock)
        cache.put("a", 1)
        clock.now = 29.9
        assert cache.get("a") == (True, 1)
        clock.now = 30.0
        assert cache.get("a") == (False, None)

    def test_overwrite_refreshes(self):
        clock = FakeClock()
        cache = TTLCache(ttl=30, clock=clock)
        cache.put("a", 1)
        clock.now = 20
        cache.put("a", 2)
        clock.now = 45
        assert cache.get("a") == (True, 2)

    def test_clear(self):
        cache = TTLCache(ttl=30, clock=FakeClock())
        cache.put("a", 1)
        cache.put("b", 2)
        assert len(cache) == 2
        cache.clear()
        assert len(cache) == 0


class TestTTLCachedDecorator:
    def test_calls_once_within_ttl(self):
        clock = FakeClock()
        calls = []

        @ttl_cached(ttl=30, clock=clock)
        def lookup(key):
            calls.append(key)
            return key.upper()

        assert lookup("x") == "X"
        assert lookup("x") == "X"
        assert calls == ["x"]

        clock.now = 31
        assert lookup("x") == "X"
        assert calls == ["x", "x"]

    def test_cache_clear(self):
        calls = []

        @ttl_cached(ttl=30, clock=FakeClock())
        def lookup(key):
            calls.append(key)
            return len(calls)

        assert lookup("k") == 1
        lookup.cache_clear()
        assert lookup("k") == 2
        assert len(lookup.cache) == 1
