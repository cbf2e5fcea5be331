"""
Organization Service — sub-organization lifecycle.

Rules:
  - only the owner of a top-level organization (no parent) may create or
    delete sub-organizations
  - sub-organizations cannot have children (hierarchy is one level deep)
  - members of a sub-organization can never delete it, whatever their role
  - deleting a sub-organization cascades to everything it owns

Services only flush(); the blueprint owns the commit.
"""

import logging
import re
import time

from sqlalchemy import func

from siteledger.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from siteledger.models import db
from siteledger.models.auth import Organization, Profile
from siteledger.models.project import Project
from siteledger.utils.helpers import clean_text

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return _SLUG_RE.sub("-", (name or "").lower())


def generate_slug(name: str, now: float | None = None) -> str:
    """``slugify(name)-<unix seconds>``, suffixed until unique."""
    seconds = int(now if now is not None else time.time())
    base = f"{slugify(name)}-{seconds}"
    slug, n = base, 1
    while Organization.query.filter_by(slug=slug).first() is not None:
        n += 1
        slug = f"{base}-{n}"
    return slug


def get_organization(org_id: int) -> Organization:
    org = db.session.get(Organization, org_id)
    if org is None:
        raise NotFoundError(resource="Organization", resource_id=org_id)
    return org


def list_accessible_organizations(ctx) -> list[dict]:
    """Organizations in the caller's accessible set, home first."""
    if not ctx.accessible_organization_ids:
        return []
    orgs = Organization.query.filter(
        Organization.id.in_(ctx.accessible_organization_ids)
    ).all()
    by_id = {o.id: o for o in orgs}
    return [by_id[i].to_dict() for i in ctx.accessible_organization_ids if i in by_id]


def list_child_organizations(org_id: int) -> list[dict]:
    """Direct children of *org_id* with member and project counts."""
    children = (
        Organization.query
        .filter_by(parent_organization_id=org_id)
        .order_by(Organization.created_at.desc(), Organization.id.desc())
        .all()
    )
    if not children:
        return []
    ids = [c.id for c in children]

    member_counts = dict(
        db.session.query(Profile.organization_id, func.count(Profile.id))
        .filter(Profile.organization_id.in_(ids))
        .group_by(Profile.organization_id)
        .all()
    )
    project_counts = dict(
        db.session.query(Project.organization_id, func.count(Project.id))
        .filter(Project.organization_id.in_(ids))
        .group_by(Project.organization_id)
        .all()
    )

    result = []
    for child in children:
        d = child.to_dict()
        d["member_count"] = member_counts.get(child.id, 0)
        d["project_count"] = project_counts.get(child.id, 0)
        result.append(d)
    return result


def _require_top_level_owner(ctx):
    if not ctx.can_manage_sub_organizations:
        raise PermissionDeniedError(
            "Only the owner of a top-level organization can manage sub-organizations"
        )


def create_sub_organization(ctx, name: str) -> Organization:
    """Create a child of the caller's home organization."""
    _require_top_level_owner(ctx)
    name = clean_text(name, "name")
    if not name:
        raise ValidationError("Name is required", details={"name": "required"})

    org = Organization(
        name=name,
        slug=generate_slug(name),
        parent_organization_id=ctx.home_organization_id,
    )
    db.session.add(org)
    db.session.flush()
    logger.info(
        "Sub-organization %s created under %s by user %s",
        org.id, ctx.home_organization_id, ctx.user_id,
    )
    return org


def delete_sub_organization(ctx, sub_org_id: int) -> None:
    """Delete a sub-organization and, through FK cascades, all its data.

    Invisible organizations are reported as missing. Visible ones that the
    caller may not delete (their own home org, top-level orgs) are 403/400.
    """
    org = db.session.get(Organization, sub_org_id)
    if org is None or not ctx.can_access(org.id):
        raise NotFoundError(resource="Organization", resource_id=sub_org_id)
    if org.id == ctx.home_organization_id and org.parent_organization_id is not None:
        raise PermissionDeniedError("Members of a sub-organization cannot delete it")
    _require_top_level_owner(ctx)
    if org.parent_organization_id is None:
        raise ValidationError("Only sub-organizations can be deleted")
    if org.parent_organization_id != ctx.home_organization_id:
        raise NotFoundError(resource="Organization", resource_id=sub_org_id)

    db.session.delete(org)
    db.session.flush()
    logger.warning(
        "Sub-organization %s deleted by user %s (cascade)", sub_org_id, ctx.user_id,
    )
