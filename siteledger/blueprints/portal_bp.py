"""
Client Portal Blueprint — public, token-authenticated project view.

  POST /api/v1/portal/resolve        {"token": "..."} → project slice
  POST /api/v1/projects/<id>/portal-tokens   issue a token (projects:edit)

The resolve endpoint keeps the ``{success, data | error}`` envelope.
"""

import logging
from datetime import datetime

from flask import Blueprint, jsonify, request

from siteledger.blueprints import get_scoped_or_404, json_body
from siteledger.core.exceptions import ValidationError
from siteledger.middleware.permission_required import require_permission
from siteledger.models.project import Project
from siteledger.services.client_portal_service import (
    PortalError,
    issue_portal_token,
    resolve_portal_token,
)
from siteledger.services.permission_service import Permission
from siteledger.utils.errors import register_domain_error_handlers
from siteledger.utils.helpers import clean_text, db_commit_or_error

logger = logging.getLogger(__name__)

portal_bp = Blueprint("portal", __name__, url_prefix="/api/v1")
register_domain_error_handlers(portal_bp)


@portal_bp.route("/portal/resolve", methods=["POST"])
def resolve():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    try:
        result = resolve_portal_token(data.get("token"))
    except PortalError as e:
        return jsonify({"success": False, "error": e.message}), e.status_code
    return jsonify(result), 200


@portal_bp.route("/projects/<int:project_id>/portal-tokens", methods=["POST"])
@require_permission(Permission.PROJECTS_EDIT)
def create_portal_token(project_id):
    project = get_scoped_or_404(Project, project_id)
    data = json_body()
    client_name = clean_text(data.get("client_name"), "client_name") or (project.client_name or "").strip()
    if not client_name:
        raise ValidationError("client_name is required", details={"client_name": "required"})

    expires_at = None
    if data.get("expires_at"):
        try:
            expires_at = datetime.fromisoformat(data["expires_at"])
        except (TypeError, ValueError):
            raise ValidationError("expires_at must be an ISO datetime") from None

    permissions = data.get("permissions") or ["progress"]
    if not isinstance(permissions, list):
        raise ValidationError("permissions must be a list", details={"permissions": "invalid"})

    row = issue_portal_token(
        project.organization_id, project.id, client_name,
        permissions, expires_at=expires_at,
    )
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Portal token issued for project %s", project.id)
    return jsonify({
        "token": row.token,
        "client_name": row.client_name,
        "permissions": row.permissions,
        "expires_at": row.expires_at.isoformat() if row.expires_at else None,
    }), 201
