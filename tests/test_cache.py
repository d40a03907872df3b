from unittest.mock import MagicMock

import pytest
import redis

from cache import CacheBackend, CacheBackendError, MemoryCache, QueryCache, RedisCache, create_backend
from cache import backends, keys
from cache.backends import build_redis_url


class FailingBackend(CacheBackend):
    def get(self, key):
        raise CacheBackendError("down")

    def set(self, key, value, ttl):
        raise CacheBackendError("down")

    def delete(self, *keys):
        raise CacheBackendError("down")

    def delete_pattern(self, pattern):
        raise CacheBackendError("down")


class CountingLoader:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


@pytest.fixture
def backend():
    return MemoryCache()


@pytest.fixture
def cache(backend):
    return QueryCache(backend, ttl=60, prefix="qc", bypass_models=["user_tokens"])


def test_key_is_independent_of_argument_order():
    a = keys.make_key("qc", "users", "find_first", {"email": "a@example.com", "disabled": False})
    b = keys.make_key("qc", "users", "find_first", {"disabled": False, "email": "a@example.com"})
    assert a == b


def test_key_layout_separates_point_lookups():
    assert keys.make_key("qc", "users", "find_unique", {"id": 7}).startswith("qc:users:id:")
    assert keys.make_key("qc", "users", "find_unique", {"email": "x"}).startswith("qc:users:q:")
    assert keys.make_key("qc", "users", "count", {}).startswith("qc:users:q:")
    assert keys.point_key("qc", "users", 7) == keys.make_key("qc", "users", "find_unique", {"id": 7})


def test_read_miss_then_hit(cache):
    loader = CountingLoader({"id": 1, "name": "Alice"})
    first = cache.read("users", "find_unique", {"id": 1}, loader)
    second = cache.read("users", "find_unique", {"id": 1}, loader)
    assert first == second == {"id": 1, "name": "Alice"}
    assert loader.calls == 1


def test_missing_records_are_cached_too(cache):
    loader = CountingLoader(None)
    assert cache.read("users", "find_unique", {"id": 99}, loader) is None
    assert cache.read("users", "find_unique", {"id": 99}, loader) is None
    assert loader.calls == 1


def test_bypassed_model_always_hits_the_loader(cache, backend):
    loader = CountingLoader({"id": "abc"})
    cache.read("user_tokens", "find_unique", {"id": "abc"}, loader)
    cache.read("user_tokens", "find_unique", {"id": "abc"}, loader)
    assert loader.calls == 2
    assert backend.keys() == []


def test_single_record_write_keeps_other_point_lookups(cache, backend):
    cache.read("users", "find_unique", {"id": 1}, lambda: {"id": 1})
    cache.read("users", "find_unique", {"id": 2}, lambda: {"id": 2})
    cache.read("users", "find_many", {"offset": 0}, lambda: [{"id": 1}, {"id": 2}])
    cache.read("roles", "find_many", {}, lambda: [])

    assert cache.write("users", "update", lambda: "done", record_id=1) == "done"

    remaining = set(backend.keys())
    assert keys.point_key("qc", "users", 1) not in remaining
    assert keys.point_key("qc", "users", 2) in remaining
    assert not any(k.startswith("qc:users:q:") for k in remaining)
    assert any(k.startswith("qc:roles:") for k in remaining)


def test_bulk_write_sweeps_whole_model(cache, backend):
    cache.read("users", "find_unique", {"id": 1}, lambda: {"id": 1})
    cache.read("users", "count", {}, lambda: 1)
    cache.read("roles", "count", {}, lambda: 3)

    cache.write("users", "update_many", lambda: 2)

    assert [k for k in backend.keys() if k.startswith("qc:users:")] == []
    assert any(k.startswith("qc:roles:") for k in backend.keys())


def test_failed_write_leaves_cache_untouched(cache, backend):
    cache.read("users", "find_unique", {"id": 1}, lambda: {"id": 1})

    def boom():
        raise RuntimeError("constraint violated")

    with pytest.raises(RuntimeError):
        cache.write("users", "update", boom, record_id=1)
    assert keys.point_key("qc", "users", 1) in backend.keys()


def test_operation_kind_is_enforced(cache):
    with pytest.raises(ValueError):
        cache.read("users", "update", {}, lambda: None)
    with pytest.raises(ValueError):
        cache.write("users", "find_many", lambda: None)


def test_unavailable_backend_falls_back_to_loader():
    cache = QueryCache(FailingBackend(), ttl=60)
    loader = CountingLoader([{"id": 1}])

    assert cache.read("users", "find_many", {}, loader) == [{"id": 1}]
    assert cache.read("users", "find_many", {}, loader) == [{"id": 1}]
    assert loader.calls == 2
    assert cache.write("users", "update", lambda: "ok", record_id=1) == "ok"


def test_undecodable_entry_is_treated_as_miss(cache, backend):
    key = cache.key_for("users", "count", {})
    backend.set(key, "not json", 60)
    assert cache.read("users", "count", {}, lambda: 5) == 5


def test_memory_cache_expiry(monkeypatch, backend):
    now = [1000.0]
    monkeypatch.setattr(backends.time, "monotonic", lambda: now[0])

    backend.set("k", "v", 10)
    assert backend.get("k") == "v"
    now[0] += 11
    assert backend.get("k") is None


def test_memory_cache_pattern_delete(backend):
    backend.set("qc:users:id:1", "a", 60)
    backend.set("qc:users:q:2", "b", 60)
    backend.set("qc:roles:q:3", "c", 60)
    assert backend.delete_pattern("qc:users:*") == 2
    assert backend.keys() == ["qc:roles:q:3"]


def test_redis_errors_become_backend_errors():
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("refused")
    client.setex.side_effect = redis.TimeoutError("slow")
    cache = RedisCache("redis://localhost:6379", client=client)

    with pytest.raises(CacheBackendError):
        cache.get("k")
    with pytest.raises(CacheBackendError):
        cache.set("k", "v", 10)


def test_redis_pattern_delete_uses_scan():
    client = MagicMock()
    client.scan_iter.return_value = iter(["qc:users:q:1", "qc:users:q:2"])
    client.delete.return_value = 2
    cache = RedisCache("redis://localhost:6379", client=client)

    assert cache.delete_pattern("qc:users:q:*") == 2
    client.scan_iter.assert_called_once_with(match="qc:users:q:*", count=500)
    client.delete.assert_called_once_with("qc:users:q:1", "qc:users:q:2")
    client.keys.assert_not_called()


def test_create_backend():
    assert isinstance(create_backend({"CACHE_DRIVER": "memory"}), MemoryCache)
    with pytest.raises(ValueError):
        create_backend({"CACHE_DRIVER": "memcached"})


def test_build_redis_url():
    assert build_redis_url({"REDIS_URL": "redis://cache:6380/1"}) == "redis://cache:6380/1"
    assert build_redis_url({
        "REDIS_HOST": "cache",
        "REDIS_PORT": 6379,
        "REDIS_USERNAME": "app",
        "REDIS_PASSWORD": "pw",
        "CACHE_SECURE": True,
    }) == "rediss://app:pw@cache:6379"
