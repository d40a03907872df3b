from cache.query_cache import QueryCache


class Repository:
    """Base for entity repositories; every store access goes through the query cache."""

    model_name = None

    def __init__(self, cache: QueryCache):
        self.cache = cache

    def _read(self, operation: str, args, loader):
        return self.cache.read(self.model_name, operation, args, loader)

    def _write(self, operation: str, executor, record_id=None):
        return self.cache.write(self.model_name, operation, executor, record_id=record_id)
