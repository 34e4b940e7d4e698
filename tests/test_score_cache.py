"""
test_score_cache.py — Fresh / stale snapshot handling of the risk score
cache on its in-memory backend, plus the Redis-down fallback.
"""

import asyncio

from meridian.backend.score_cache import InMemoryScoreCache, ScoreCache

PAYLOAD = {"cii": [{"code": "IR", "score": 62}], "computed_at": "2026-01-01T00:00:00+00:00"}


def _run(coro):
    return asyncio.run(coro)


class TestInMemoryScoreCache:

    def test_get_set(self):
        cache = InMemoryScoreCache()
        _run(cache.set("k", "v", ex=60))
        assert _run(cache.get("k")) == "v"
        assert _run(cache.get("missing")) is None

    def test_expired_entries_are_dropped(self):
        cache = InMemoryScoreCache()
        _run(cache.set("k", "v", ex=0))
        assert _run(cache.get("k")) is None


class TestScoreCache:

    def test_empty_cache(self):
        cache = ScoreCache()
        _run(cache.connect())
        assert _run(cache.get_cached_scores()) is None

    def test_fresh_snapshot(self):
        cache = ScoreCache()
        _run(cache.connect())
        _run(cache.store_scores(PAYLOAD))
        cached = _run(cache.get_cached_scores())
        assert cached["cii"] == PAYLOAD["cii"]
        assert cached["cached"] is True
        assert cached["stale"] is False

    def test_stale_snapshot(self):
        cache = ScoreCache(ttl=0, stale_ttl=3600)
        _run(cache.connect())
        _run(cache.store_scores(PAYLOAD))
        assert _run(cache.get_cached_scores(allow_stale=False)) is None
        stale = _run(cache.get_cached_scores())
        assert stale["stale"] is True
        assert stale["computed_at"] == PAYLOAD["computed_at"]

    def test_unreachable_redis_falls_back_to_memory(self):
        cache = ScoreCache(redis_url="redis://127.0.0.1:1", use_redis=True)
        _run(cache.connect())
        assert isinstance(cache.backend, InMemoryScoreCache)
        _run(cache.store_scores(PAYLOAD))
        assert _run(cache.get_cached_scores())["cached"] is True
        _run(cache.close())
