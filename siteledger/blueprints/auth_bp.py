"""
Auth Blueprint — JWT authentication endpoints.

  POST /api/v1/auth/login  — Email + password → access token
  GET  /api/v1/auth/me     — Current user, profile and access context
"""

from flask import Blueprint, g, jsonify

from siteledger.blueprints import json_body
from siteledger.middleware.permission_required import login_required
from siteledger.services.jwt_service import token_response
from siteledger.services.permission_service import resolve_home_organization, resolve_role
from siteledger.services.user_service import UserServiceError, authenticate_user, get_user_by_id
from siteledger.utils.errors import E, api_error, register_domain_error_handlers
from siteledger.utils.helpers import clean_text

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")
register_domain_error_handlers(auth_bp)


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate with email + password, return an access token.

    Body: { "email": "...", "password": "..." }
    """
    data = json_body()
    email = clean_text(data.get("email"), "email").lower()
    password = data.get("password") or ""

    if not email or not password or not isinstance(password, str):
        return api_error(E.VALIDATION_REQUIRED, "Email and password are required")

    try:
        user = authenticate_user(email, password)
    except UserServiceError as e:
        return jsonify({"error": e.message}), e.status_code

    org_id = resolve_home_organization(user.id)
    role = resolve_role(user.id, org_id)
    body = token_response(user.id, org_id, role.value if role else None)
    body["user"] = user.to_dict()
    return jsonify(body), 200


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    """Current user plus the resolved access context (permissions, UI flags)."""
    user = get_user_by_id(g.access.user_id)
    if user is None:
        return api_error(E.UNAUTHORIZED, "User no longer exists")
    return jsonify({
        "user": user.to_dict(),
        "profile": user.profile.to_dict() if user.profile else None,
        "access": g.access.to_dict(),
    }), 200
