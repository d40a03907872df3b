from flask import Blueprint, jsonify, g, request

from repositories import get_repositories
from security.ownership import require_ownership
from security.rbac import require_roles
from security.tokens import get_token_store
from utils.audit import log_event
from utils.auth_context import login_required
from utils.errors import ApiException, NotFound

users_bp = Blueprint("users", __name__, url_prefix="/users")

MAX_PAGE_SIZE = 100


def _int_arg(name: str, default: int, minimum: int, maximum: int = None) -> int:
    raw = request.args.get(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ApiException(f"'{name}' must be an integer", 400)
    if value < minimum or (maximum is not None and value > maximum):
        raise ApiException(f"'{name}' is out of range", 400)
    return value


@users_bp.get("")
@require_roles("Admin", "Moderator")
def list_users():
    page = _int_arg("page", 1, 1)
    limit = _int_arg("limit", 20, 1, MAX_PAGE_SIZE)

    repos = get_repositories()
    users = repos.users.paginate(offset=(page - 1) * limit, limit=limit)
    return jsonify(
        success=True,
        data=[u.public() for u in users],
        meta={"page": page, "limit": limit, "total": repos.users.count()},
    ), 200


@users_bp.get("/me")
@login_required
def current_user():
    return jsonify(success=True, data=g.user.public()), 200


@users_bp.get("/me/tokens")
@login_required
def current_user_sessions():
    sessions = get_token_store().active_sessions(g.user)
    return jsonify(
        success=True,
        data=[{**s.public(), "current": s.id == g.session.id} for s in sessions],
    ), 200


@users_bp.get("/<int:user_id>")
@require_ownership("User", "user_id")
def get_user(user_id):
    return jsonify(success=True, data=g.resource.public()), 200


@users_bp.post("/<int:user_id>/disable")
@require_roles("Admin")
def disable_user(user_id):
    repos = get_repositories()
    user = repos.users.update(user_id, disabled=True)
    if user is None:
        raise NotFound("User not found")

    log_event("USER_DISABLED", user_id=g.user.id, entity="user", entity_id=user_id)
    return jsonify(success=True, message="User disabled", data=user.public()), 200
