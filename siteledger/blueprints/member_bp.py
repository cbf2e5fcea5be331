"""
Member Blueprint — team listing and provisioning.

  GET    /api/v1/members                      profiles in accessible orgs
  POST   /api/v1/members                      create-team-member (owner)
  DELETE /api/v1/members/<org_id>/<user_id>   remove a role (roles:manage)

POST keeps the ``{success, error}`` envelope its clients already parse.
"""

import logging

from flask import Blueprint, g, jsonify, request

from siteledger.middleware.permission_required import login_required
from siteledger.models import db
from siteledger.services import member_service
from siteledger.services.permission_service import Permission
from siteledger.services.user_service import UserServiceError
from siteledger.utils.errors import register_domain_error_handlers
from siteledger.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

member_bp = Blueprint("members", __name__, url_prefix="/api/v1/members")
register_domain_error_handlers(member_bp)


@member_bp.route("", methods=["GET"])
@login_required
def list_members():
    org_ids = list(g.access.accessible_organization_ids)
    org_id = request.args.get("organization_id", type=int)
    if org_id is not None:
        org_ids = [org_id] if g.access.can_access(org_id) else []
    # Temporary passwords are only shown to people who can hand them out
    items = member_service.list_members(
        org_ids, include_temp_password=g.access.can(Permission.ROLES_MANAGE),
    )
    return jsonify({"items": items, "total": len(items)})


@member_bp.route("", methods=["POST"])
@login_required
def create_member():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    try:
        result = member_service.create_team_member(
            caller_id=g.access.user_id,
            email=data.get("email"),
            full_name=data.get("full_name"),
            role=data.get("role"),
            organization_id=data.get("organization_id"),
            phone=data.get("phone"),
        )
    except UserServiceError as e:
        db.session.rollback()
        return jsonify({"success": False, "error": e.message}), e.status_code

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result), 200


@member_bp.route("/<int:org_id>/<int:user_id>", methods=["DELETE"])
@login_required
def remove_member(org_id, user_id):
    member_service.remove_member(g.access, org_id, user_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Member removed"}), 200
