"""Cache storage drivers.

Both drivers store already-serialized strings; encoding and decoding is the
query cache's job. Drivers signal trouble with ``CacheBackendError`` so the
caller can fall back to the database.
"""
import fnmatch
import threading
import time
from typing import Optional

import redis

from utils.logger import get_logger

logger = get_logger(__name__)


class CacheBackendError(Exception):
    """The cache backend could not complete an operation."""


class CacheBackend:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl: int) -> None:
        raise NotImplementedError

    def delete(self, *keys: str) -> int:
        raise NotImplementedError

    def delete_pattern(self, pattern: str) -> int:
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryCache(CacheBackend):
    """In-process cache for development, tests and single-worker deployments."""

    def __init__(self):
        self._items = {}
        self._lock = threading.Lock()

    def _expired(self, expires_at: float) -> bool:
        return expires_at < time.monotonic()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if self._expired(expires_at):
                del self._items[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._items[key] = (value, time.monotonic() + ttl)

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._items.pop(key, None) is not None:
                    removed += 1
        return removed

    def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            matched = [k for k in self._items if fnmatch.fnmatchcase(k, pattern)]
            for key in matched:
                del self._items[key]
        return len(matched)

    def keys(self) -> list:
        with self._lock:
            return [k for k, (_, exp) in self._items.items() if not self._expired(exp)]


class RedisCache(CacheBackend):
    """Redis (or Valkey, same protocol) driver built on redis-py."""

    def __init__(self, url: str, socket_timeout: float = 2.0, client: redis.Redis = None):
        self.url = url
        self.client = client or redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except redis.RedisError as exc:
            raise CacheBackendError(f"get {key}: {exc}") from exc

    def set(self, key: str, value: str, ttl: int) -> None:
        try:
            self.client.setex(key, ttl, value)
        except redis.RedisError as exc:
            raise CacheBackendError(f"set {key}: {exc}") from exc

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return self.client.delete(*keys)
        except redis.RedisError as exc:
            raise CacheBackendError(f"delete: {exc}") from exc

    def delete_pattern(self, pattern: str) -> int:
        # SCAN instead of KEYS so a sweep never blocks the server
        try:
            batch = []
            removed = 0
            for key in self.client.scan_iter(match=pattern, count=500):
                batch.append(key)
                if len(batch) >= 500:
                    removed += self.client.delete(*batch)
                    batch = []
            if batch:
                removed += self.client.delete(*batch)
            return removed
        except redis.RedisError as exc:
            raise CacheBackendError(f"sweep {pattern}: {exc}") from exc

    def close(self) -> None:
        try:
            self.client.close()
            logger.info("Cache connection closed")
        except redis.RedisError as exc:
            logger.warning("Error closing cache connection: %s", exc)


def build_redis_url(config) -> str:
    if config.get("REDIS_URL"):
        return config["REDIS_URL"]
    scheme = "rediss" if config.get("CACHE_SECURE") else "redis"
    auth = ""
    if config.get("REDIS_USERNAME"):
        auth = f"{config['REDIS_USERNAME']}:{config.get('REDIS_PASSWORD') or ''}@"
    elif config.get("REDIS_PASSWORD"):
        auth = f":{config['REDIS_PASSWORD']}@"
    return f"{scheme}://{auth}{config.get('REDIS_HOST', 'localhost')}:{config.get('REDIS_PORT', 6379)}"


def create_backend(config) -> CacheBackend:
    driver = (config.get("CACHE_DRIVER") or "memory").lower()
    if driver == "memory":
        return MemoryCache()
    if driver in ("redis", "valkey"):
        return RedisCache(build_redis_url(config), socket_timeout=config.get("CACHE_SOCKET_TIMEOUT", 2.0))
    raise ValueError(f"Cache driver not supported: {driver}")
