from .backends import CacheBackend, CacheBackendError, MemoryCache, RedisCache, create_backend
from .query_cache import QueryCache, READ_OPERATIONS, WRITE_OPERATIONS
