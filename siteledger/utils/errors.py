"""Standardised API error responses.

Usage
-----
    from siteledger.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Project not found")
    return api_error(E.VALIDATION_REQUIRED, "name is required")
    return api_error(E.FORBIDDEN, "Permission denied", details={"permission": "projects:delete"})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Auth – HTTP 401 / 403
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    TOKEN_EXPIRED = "ERR_TOKEN_EXPIRED"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.TOKEN_EXPIRED: 401,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, missing permission, ...).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """
    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_domain_error_handlers(bp):
    """Attach the domain-exception → JSON handlers to a blueprint.

    Every blueprint calls this once, right after it is created.
    """
    from siteledger.core.exceptions import (
        ConflictError,
        NotFoundError,
        PermissionDeniedError,
        ValidationError,
    )

    @bp.errorhandler(NotFoundError)
    def _not_found(exc):
        return api_error(E.NOT_FOUND, f"{exc.resource} not found")

    @bp.errorhandler(ValidationError)
    def _invalid(exc):
        return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details)

    @bp.errorhandler(ConflictError)
    def _conflict(exc):
        return api_error(E.CONFLICT_DUPLICATE, str(exc))

    @bp.errorhandler(PermissionDeniedError)
    def _forbidden(exc):
        details = {"permission": exc.permission} if exc.permission else None
        return api_error(E.FORBIDDEN, str(exc), details=details)

    return bp
