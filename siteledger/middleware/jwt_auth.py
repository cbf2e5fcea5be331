"""
JWT Auth Middleware — parses the Bearer token and sets g.jwt_*.

Never rejects on its own: an absent, expired or invalid token just leaves
g.jwt_user_id as None (with g.jwt_error set). Guarded endpoints turn that
into a 401 through the decorators in permission_required.

Chain order:
  jwt_auth.py  →  org_context.py  →  route handler
"""

import jwt as pyjwt
from flask import g, request

from siteledger.services.jwt_service import decode_access_token, user_id_from_payload
from siteledger.utils.errors import E

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
    "/api/v1/portal/",
    "/static/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_error = None
        g.jwt_error_code = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "
        try:
            payload = decode_access_token(token)
            g.jwt_user_id = user_id_from_payload(payload)
        except pyjwt.ExpiredSignatureError:
            g.jwt_error = "Token expired"
            g.jwt_error_code = E.TOKEN_EXPIRED
        except pyjwt.InvalidTokenError:
            g.jwt_error = "Invalid token"
