"""
Permission Decorators — route guards over g.access.

Usage:
    @bp.route("/projects", methods=["POST"])
    @require_permission(Permission.PROJECTS_CREATE)
    def create_project():
        ...

    @bp.route("/members", methods=["GET"])
    @login_required
    def list_members():
        ...

No JWT user → 401. User without the permission in their home
organization → 403. These checks are the server-side twin of the
client's button hiding; services re-check where the rule depends on the
target record.
"""

import functools
import logging

from flask import g

from siteledger.services.permission_service import Permission
from siteledger.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def _unauthenticated():
    message = getattr(g, "jwt_error", None) or "Authentication required"
    return api_error(getattr(g, "jwt_error_code", None) or E.UNAUTHORIZED, message)


def login_required(f):
    """Decorator: require a JWT-authenticated user with a home organization."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "jwt_user_id", None) is None:
            return _unauthenticated()
        access = g.access
        if access.home_organization_id is None:
            return api_error(E.FORBIDDEN, "No organization membership")
        return f(*args, **kwargs)
    return decorated


def require_permission(permission):
    """
    Decorator: require the JWT user's role to hold *permission*.

    Args:
        permission: Permission member or its tag string, e.g. "projects:create"
    """
    permission = Permission(permission)

    def decorator(f):
        @functools.wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            access = g.access
            if not access.can(permission):
                logger.warning(
                    "User %s denied: missing permission '%s' on %s",
                    access.user_id, permission.value, f.__name__,
                )
                return api_error(
                    E.FORBIDDEN, "Permission denied",
                    details={"permission": permission.value},
                )
            return f(*args, **kwargs)
        return decorated
    return decorator
