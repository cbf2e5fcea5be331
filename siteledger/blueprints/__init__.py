"""
SiteLedger
Blueprint registry and shared request helpers.
"""

from flask import g, request

from siteledger.core.exceptions import NotFoundError, ValidationError
from siteledger.models import db


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def get_scoped_or_404(model, pk, label=None):
    """Load *model* by id, hiding rows outside the caller's accessible orgs."""
    label = label or model.__name__
    try:
        pk = int(pk)
    except (TypeError, ValueError):
        raise NotFoundError(resource=label, resource_id=pk) from None
    obj = db.session.get(model, pk)
    if obj is None or not g.access.can_access(obj.organization_id):
        raise NotFoundError(resource=label, resource_id=pk)
    return obj


def target_organization_id(data):
    """Organization a new record is written to.

    Defaults to the caller's home organization. An explicit
    ``organization_id`` must be one the caller can access.
    """
    raw = data.get("organization_id")
    if raw in (None, ""):
        return g.access.home_organization_id
    try:
        org_id = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("organization_id must be an integer") from None
    if not g.access.can_access(org_id):
        raise NotFoundError(resource="Organization", resource_id=org_id)
    return org_id


def json_body():
    """Request JSON as a dict; no body gives ``{}``, any other JSON type is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def optional_int(data, key):
    """``data[key]`` as an int, or None when blank."""
    raw = data.get(key)
    if raw in (None, ""):
        return None
    if isinstance(raw, bool):
        raise ValidationError(f"{key} must be an integer", details={key: "invalid"})
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer", details={key: "invalid"}) from None
