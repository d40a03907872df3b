"""Resource-scope gate.

``require_ownership("User", "user_id")`` lets the request through when the
caller is an Admin or controls the resource named by the ``user_id`` view
argument. The resolved resource is left on ``g.resource``.
"""
from functools import wraps
from flask import g, request

from models.organization import MEMBER_ADMIN, MEMBER_OWNER, VERIFICATION_VERIFIED
from repositories import get_repositories
from utils.auth_context import require_user
from utils.errors import Forbidden, InternalError, NotFound
from utils.logger import get_logger

logger = get_logger(__name__)

PRIVILEGED_MEMBER_ROLES = {MEMBER_ADMIN, MEMBER_OWNER}


def _parse_id(raw):
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise NotFound("Resource not found")


def _user_scope(user, resource_id):
    if not user.is_admin and user.id != resource_id:
        raise Forbidden()
    target = get_repositories().users.get(resource_id)
    if target is None:
        raise NotFound("User not found")
    return target


def _organization_scope(user, resource_id):
    repos = get_repositories()
    organization = repos.organizations.get(resource_id)
    if user.is_admin:
        if organization is None:
            raise NotFound("Organization not found")
        return organization

    if organization is None or organization.verification_status != VERIFICATION_VERIFIED:
        raise Forbidden()
    if organization.owner_id != user.id and repos.members.find_membership(resource_id, user.id) is None:
        raise Forbidden()
    return organization


def _organization_member_scope(user, resource_id):
    repos = get_repositories()
    organization = repos.organizations.get(resource_id)
    if user.is_admin:
        if organization is None:
            raise NotFound("Organization not found")
        return organization

    membership = repos.members.find_membership(resource_id, user.id)
    if membership is None or membership.role not in PRIVILEGED_MEMBER_ROLES or organization is None:
        raise Forbidden()
    if organization.verification_status != VERIFICATION_VERIFIED:
        raise Forbidden("Organization verification is pending")
    return organization


SCOPES = {
    "User": _user_scope,
    "Organization": _organization_scope,
    "OrganizationMember": _organization_member_scope,
}


def require_ownership(entity: str, param: str = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = require_user()

            scope = SCOPES.get(entity)
            if scope is None or not param:
                logger.error("ownership gate misconfigured on %s: entity=%s param=%s", request.endpoint, entity, param)
                raise InternalError("Ownership check is misconfigured")

            view_args = request.view_args or {}
            if param not in view_args:
                logger.error("ownership gate on %s: route has no '%s' argument", request.endpoint, param)
                raise InternalError("Ownership check is misconfigured")

            g.resource = scope(user, _parse_id(view_args[param]))
            return fn(*args, **kwargs)
        return wrapper
    return decorator
