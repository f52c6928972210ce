from models.match import MatchFilters
from services.errors import BackendUnavailable
from services.result_cache import (
    MemoryCacheBackend,
    ResultCache,
    insights_key,
    recommendations_key,
)


def test_get_before_expiry_returns_value(clock):
    cache = ResultCache(clock=clock)
    cache.put("k", {"a": 1}, ttl_seconds=60)
    clock.advance(seconds=59)
    assert cache.get("k") == {"a": 1}


def test_expired_entry_is_missing_and_evicted(clock):
    backend = MemoryCacheBackend()
    cache = ResultCache(backend, clock=clock)
    cache.put("k", "v", ttl_seconds=60)
    clock.advance(seconds=60)
    assert cache.get("k") is None
    assert backend.keys() == []


def test_missing_key_is_none(clock):
    assert ResultCache(clock=clock).get("nope") is None


def test_put_overwrites_and_resets_ttl(clock):
    cache = ResultCache(clock=clock)
    cache.put("k", 1, ttl_seconds=10)
    clock.advance(seconds=8)
    cache.put("k", 2, ttl_seconds=10)
    clock.advance(seconds=8)
    assert cache.get("k") == 2


def test_purge_expired(clock):
    backend = MemoryCacheBackend()
    cache = ResultCache(backend, clock=clock)
    cache.put("short", 1, ttl_seconds=5)
    cache.put("long", 2, ttl_seconds=500)
    clock.advance(seconds=10)
    assert cache.purge_expired() == 1
    assert backend.keys() == ["long"]


def test_unavailable_cache_is_noop(clock):
    cache = ResultCache(clock=clock, available=False)
    assert cache.put("k", 1, ttl_seconds=60) is None
    assert cache.get("k") is None
    assert cache.purge_expired() == 0


def test_backend_failure_degrades_to_miss(clock, caplog):
    class DownBackend(MemoryCacheBackend):
        def read(self, key):
            raise BackendUnavailable("connection refused")

        def write(self, entry):
            raise BackendUnavailable("connection refused")

    cache = ResultCache(DownBackend(), clock=clock)
    assert cache.put("k", 1, ttl_seconds=60) is None
    assert cache.get("k") is None
    warnings = [r for r in caplog.records if r.levelname == "WARNING"]
    assert len(warnings) == 1


def test_recommendations_key_canonical_filters():
    a = recommendations_key("p1", "catalog", {"remote_only": True, "location": "Austin"})
    b = recommendations_key("p1", "catalog", {"location": "Austin", "remote_only": True, "limit": None})
    assert a == b == "recommendations:p1:catalog:location=Austin&remote_only=true"


def test_recommendations_key_distinguishes_filters():
    keys = {
        recommendations_key("p1", "catalog", None),
        recommendations_key("p1", "catalog", MatchFilters()),
        recommendations_key("p1", "catalog", MatchFilters(limit=5)),
        recommendations_key("p1", "catalog", MatchFilters(location="Austin")),
        recommendations_key("p2", "catalog", MatchFilters(location="Austin")),
        recommendations_key("p1", "other", MatchFilters(location="Austin")),
    }
    # no filters and empty filters share a key; every other combination is distinct
    assert len(keys) == 5
    assert recommendations_key("p1", "catalog", MatchFilters()) == "recommendations:p1:catalog:all"


def test_insights_key():
    assert insights_key(["Python", "aws", "python"], None) == "market-insights:aws-python:global"
    assert insights_key(["aws"], "Austin") == "market-insights:aws:austin"
