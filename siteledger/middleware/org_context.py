"""
Organization Context Middleware — builds the per-request AccessContext.

For JWT-authenticated requests the user's home organization, accessible
organization ids and role are resolved once and stored on ``g.access``.
Blueprints and services receive that object explicitly; nothing below
the blueprint reads ``g``.

Unauthenticated requests get the empty ANONYMOUS context.
"""

import logging

from flask import g

from siteledger.services.permission_service import ANONYMOUS, build_access_context

logger = logging.getLogger(__name__)


def init_org_context(app):
    """Register org-context middleware as a before_request hook."""

    @app.before_request
    def _org_context():
        user_id = getattr(g, "jwt_user_id", None)
        if user_id is None:
            g.access = ANONYMOUS
            return None
        g.access = build_access_context(user_id)
        if g.access.home_organization_id is None:
            logger.warning("Authenticated user %s has no home organization", user_id)
        return None
