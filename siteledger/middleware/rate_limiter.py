"""
Rate limiting configuration.

Applies per-blueprint limits using Flask-Limiter. The Limiter instance is
created in siteledger/__init__.py with the RATELIMIT_DEFAULT default; this
module applies the tighter per-route categories.

Usage:
    from siteledger.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

AUTH_LIMIT = "20/minute"
PORTAL_LIMIT = "30/minute"
WRITE_LIMIT = "60/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Auth:                20/minute (credential stuffing)
        - Client portal:       30/minute (public token lookups)
        - Procurement/labour:  60/minute
        - Health check:        exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("auth")
    if bp:
        limiter.limit(AUTH_LIMIT)(bp)

    bp = app.blueprints.get("portal")
    if bp:
        limiter.limit(PORTAL_LIMIT)(bp)

    for bp_name in ("materials", "labour"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — auth: %s, portal: %s, write: %s",
        AUTH_LIMIT, PORTAL_LIMIT, WRITE_LIMIT,
    )
