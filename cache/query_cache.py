"""Cache-aside wrapper around data access.

Reads go through ``read``: a hit is served from the backend, a miss runs the
loader against the database and stores the result. Writes go through
``write``: the executor runs (and commits) first, then the affected keys are
invalidated. Any backend failure is logged and the call falls through to the
database.
"""
import json

from cache import keys
from cache.backends import CacheBackend, CacheBackendError
from utils.logger import get_logger

logger = get_logger(__name__)

READ_OPERATIONS = frozenset({"find_unique", "find_first", "find_many", "count", "aggregate"})
WRITE_OPERATIONS = frozenset({
    "create", "update", "upsert", "delete",
    "create_many", "update_many", "delete_many",
})


class QueryCache:
    def __init__(self, backend: CacheBackend, ttl: int = 300, prefix: str = "qc", bypass_models=None):
        self.backend = backend
        self.ttl = ttl
        self.prefix = prefix
        self.bypass_models = frozenset(bypass_models or ())

    def is_cacheable(self, model: str) -> bool:
        return model not in self.bypass_models

    def key_for(self, model: str, operation: str, args) -> str:
        return keys.make_key(self.prefix, model, operation, args)

    def read(self, model: str, operation: str, args, loader):
        """Return the result of ``loader()``, from cache when possible.

        ``loader`` must return JSON-serializable data. The value handed back is
        always the decoded form, so a hit and a miss return identical content.
        """
        if operation not in READ_OPERATIONS:
            raise ValueError(f"{operation} is not a read operation")
        if not self.is_cacheable(model):
            return loader()

        key = self.key_for(model, operation, args)
        cached = self._get(key)
        if cached is not None:
            logger.debug("cache hit %s.%s %s", model, operation, key)
            return cached["v"]

        logger.debug("cache miss %s.%s %s", model, operation, key)
        payload = json.dumps({"v": loader()}, default=str)
        self._set(key, payload)
        return json.loads(payload)["v"]

    def write(self, model: str, operation: str, executor, record_id=None):
        """Run ``executor()`` against the store, then invalidate ``model``."""
        if operation not in WRITE_OPERATIONS:
            raise ValueError(f"{operation} is not a write operation")
        result = executor()
        if self.is_cacheable(model):
            self.invalidate(model, record_id)
        return result

    def invalidate(self, model: str, record_id=None):
        try:
            if record_id is not None:
                self.backend.delete(keys.point_key(self.prefix, model, record_id))
                swept = self.backend.delete_pattern(keys.query_pattern(self.prefix, model))
            else:
                swept = self.backend.delete_pattern(keys.model_pattern(self.prefix, model))
            logger.debug("invalidated %s (record=%s, swept=%s)", model, record_id, swept)
        except CacheBackendError as exc:
            logger.warning("cache invalidation failed for %s: %s", model, exc)

    def _get(self, key: str):
        try:
            raw = self.backend.get(key)
        except CacheBackendError as exc:
            logger.warning("cache read failed, using database: %s", exc)
            return None
        if raw is None:
            return None
        try:
            envelope = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("discarding undecodable cache entry %s", key)
            return None
        if not isinstance(envelope, dict) or "v" not in envelope:
            return None
        return envelope

    def _set(self, key: str, payload: str):
        try:
            self.backend.set(key, payload, self.ttl)
        except CacheBackendError as exc:
            logger.warning("cache write failed for %s: %s", key, exc)
