from flask import Blueprint, jsonify, g

from repositories import get_repositories
from security.ownership import require_ownership

organizations_bp = Blueprint("organizations", __name__, url_prefix="/organizations")


@organizations_bp.get("/<int:organization_id>")
@require_ownership("Organization", "organization_id")
def get_organization(organization_id):
    return jsonify(success=True, data=g.resource.public()), 200


@organizations_bp.get("/<int:organization_id>/members")
@require_ownership("OrganizationMember", "organization_id")
def list_members(organization_id):
    members = get_repositories().members.list_members(organization_id)
    return jsonify(success=True, data=[m.public() for m in members]), 200
