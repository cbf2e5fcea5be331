"""
Organization Blueprint — accessible organizations and sub-organizations.

  GET    /api/v1/organizations/accessible
  GET    /api/v1/organizations/sub-organizations
  POST   /api/v1/organizations/sub-organizations
  DELETE /api/v1/organizations/sub-organizations/<id>
"""

from flask import Blueprint, g, jsonify

from siteledger.blueprints import json_body
from siteledger.middleware.permission_required import login_required
from siteledger.services import organization_service
from siteledger.utils.errors import register_domain_error_handlers
from siteledger.utils.helpers import db_commit_or_error

organization_bp = Blueprint("organizations", __name__, url_prefix="/api/v1/organizations")
register_domain_error_handlers(organization_bp)


@organization_bp.route("/accessible", methods=["GET"])
@login_required
def list_accessible():
    return jsonify({"items": organization_service.list_accessible_organizations(g.access)})


@organization_bp.route("/sub-organizations", methods=["GET"])
@login_required
def list_sub_organizations():
    """Children of the caller's home organization (empty for sub-org members)."""
    items = organization_service.list_child_organizations(g.access.home_organization_id)
    return jsonify({
        "items": items,
        "total": len(items),
        "can_manage": g.access.can_manage_sub_organizations,
    })


@organization_bp.route("/sub-organizations", methods=["POST"])
@login_required
def create_sub_organization():
    data = json_body()
    org = organization_service.create_sub_organization(g.access, data.get("name"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(org.to_dict()), 201


@organization_bp.route("/sub-organizations/<int:org_id>", methods=["DELETE"])
@login_required
def delete_sub_organization(org_id):
    organization_service.delete_sub_organization(g.access, org_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Sub-organization deleted", "id": org_id}), 200
