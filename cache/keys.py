import hashlib
import json

# Point lookups live under their own scope so a single-record write can drop
# them by key while sweeping every other query for the model by pattern.
SCOPE_ID = "id"
SCOPE_QUERY = "q"


def canonicalize(args) -> str:
    """Stable serialization: equal arguments always produce the same string."""
    return json.dumps(args, sort_keys=True, separators=(",", ":"), default=str)


def _digest(data: str) -> str:
    # md5 as a fast fingerprint, not for security
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def is_point_lookup(operation: str, args) -> bool:
    return operation == "find_unique" and isinstance(args, dict) and set(args) == {"id"}


def make_key(prefix: str, model: str, operation: str, args) -> str:
    scope = SCOPE_ID if is_point_lookup(operation, args) else SCOPE_QUERY
    digest = _digest(f"{model}|{operation}|{canonicalize(args)}")
    return f"{prefix}:{model}:{scope}:{digest}"


def point_key(prefix: str, model: str, record_id) -> str:
    return make_key(prefix, model, "find_unique", {"id": record_id})


def query_pattern(prefix: str, model: str) -> str:
    return f"{prefix}:{model}:{SCOPE_QUERY}:*"


def model_pattern(prefix: str, model: str) -> str:
    return f"{prefix}:{model}:*"
