from functools import wraps

from utils.auth_context import require_user
from utils.errors import Forbidden


def require_roles(*role_names: str):
    """
    Usage: @require_roles("Admin", "Moderator")

    Case-insensitive; a user without a role never passes.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = require_user()
            if not user.has_role(*role_names):
                raise Forbidden()
            return fn(*args, **kwargs)
        return wrapper
    return decorator
