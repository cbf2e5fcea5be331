"""
Permission Service — static role table plus organization-scope resolution.

Two questions are answered here:
  1. Which organizations may this user's queries be scoped to?
       owner of a top-level organization → home org + its direct children
       anyone else                       → home org only
  2. May this role perform this action?
       pure lookup in ROLE_PERMISSIONS; no inheritance, no wildcard,
       no per-resource override

Permission sets are never persisted; they are recomputed from the role on
every check. Resolvers never raise for "no access": they return None or [].

Usage:
    ctx = build_access_context(user_id)
    if not ctx.can(Permission.PROJECTS_DELETE):
        raise PermissionDeniedError(permission=Permission.PROJECTS_DELETE.value)
    Project.query_for_orgs(ctx.accessible_organization_ids)
"""

import enum
import logging
from dataclasses import dataclass, field

from siteledger.models import db
from siteledger.models.auth import Organization, Profile, Role, UserRole

logger = logging.getLogger(__name__)


class Permission(str, enum.Enum):
    PROJECTS_CREATE = "projects:create"
    PROJECTS_EDIT = "projects:edit"
    PROJECTS_DELETE = "projects:delete"
    TASKS_CREATE = "tasks:create"
    TASKS_EDIT = "tasks:edit"
    TASKS_DELETE = "tasks:delete"
    ISSUES_CREATE = "issues:create"
    ISSUES_EDIT = "issues:edit"
    ISSUES_DELETE = "issues:delete"
    MATERIALS_MANAGE = "materials:manage"
    MATERIALS_REQUEST = "materials:request"
    MATERIALS_APPROVE = "materials:approve"
    VENDORS_MANAGE = "vendors:manage"
    WORKERS_MANAGE = "workers:manage"
    ATTENDANCE_MARK = "attendance:mark"
    ATTENDANCE_MANAGE = "attendance:manage"
    BILLING_MANAGE = "billing:manage"
    BILLING_APPROVE = "billing:approve"
    PETTY_CASH_CREATE = "petty_cash:create"
    PETTY_CASH_DELETE = "petty_cash:delete"
    SCHEDULING_MANAGE = "scheduling:manage"
    DRAWINGS_MANAGE = "drawings:manage"
    DOCUMENTS_MANAGE = "documents:manage"
    CHECKLISTS_MANAGE = "checklists:manage"
    REPORTS_VIEW = "reports:view"
    REPORTS_MANAGE = "reports:manage"
    ROLES_MANAGE = "roles:manage"
    SETTINGS_MANAGE = "settings:manage"


P = Permission

# ═══════════════════════════════════════════════════════════════
# Role → permission table
# ═══════════════════════════════════════════════════════════════
ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.OWNER: frozenset(Permission),
    Role.PROJECT_MANAGER: frozenset({
        P.PROJECTS_CREATE, P.PROJECTS_EDIT,
        P.TASKS_CREATE, P.TASKS_EDIT, P.TASKS_DELETE,
        P.ISSUES_CREATE, P.ISSUES_EDIT, P.ISSUES_DELETE,
        P.MATERIALS_MANAGE, P.MATERIALS_REQUEST, P.MATERIALS_APPROVE,
        P.VENDORS_MANAGE, P.WORKERS_MANAGE,
        P.ATTENDANCE_MARK, P.ATTENDANCE_MANAGE,
        P.BILLING_MANAGE,
        P.PETTY_CASH_CREATE, P.PETTY_CASH_DELETE,
        P.SCHEDULING_MANAGE, P.DRAWINGS_MANAGE, P.DOCUMENTS_MANAGE, P.CHECKLISTS_MANAGE,
        P.REPORTS_VIEW, P.REPORTS_MANAGE,
    }),
    Role.SITE_ENGINEER: frozenset({
        P.TASKS_CREATE, P.TASKS_EDIT,
        P.ISSUES_CREATE, P.ISSUES_EDIT,
        P.MATERIALS_REQUEST,
        P.ATTENDANCE_MARK,
        P.PETTY_CASH_CREATE,
        P.DRAWINGS_MANAGE, P.DOCUMENTS_MANAGE, P.CHECKLISTS_MANAGE,
        P.REPORTS_VIEW,
    }),
}

# Roles allowed to manage projects/people in the UI sense.
MANAGER_ROLES = frozenset({Role.OWNER, Role.PROJECT_MANAGER})


def permissions_for(role) -> frozenset:
    """Return the permission row for *role* (empty for None)."""
    if role is None:
        return frozenset()
    return ROLE_PERMISSIONS[Role.parse(role)]


def can(role, permission) -> bool:
    """Pure lookup: does *role* hold *permission*?

    Unknown role strings raise ValueError rather than silently resolving
    to "no permissions"; ``role=None`` (no membership) is simply False.
    Unknown permission strings raise ValueError as well.
    """
    if role is None:
        return False
    return Permission(permission) in permissions_for(role)


# ═══════════════════════════════════════════════════════════════
# Organization / role resolution
# ═══════════════════════════════════════════════════════════════
def resolve_home_organization(user_id: int) -> int | None:
    """Home organization from the user's profile; None if not provisioned yet."""
    if user_id is None:
        return None
    profile = Profile.query.filter_by(user_id=user_id).first()
    return profile.organization_id if profile else None


def resolve_role(user_id: int, organization_id: int) -> Role | None:
    """Single-row role lookup; None means no membership."""
    if user_id is None or organization_id is None:
        return None
    row = UserRole.query.filter_by(user_id=user_id, organization_id=organization_id).first()
    return row.role if row else None


def resolve_accessible_organizations(user_id: int, home_org_id: int | None) -> list[int]:
    """Candidate organization ids a user's queries may be scoped to.

    Only direct children are discovered; sub-organizations cannot have
    children of their own, so the hierarchy is one level deep.
    """
    if home_org_id is None:
        return []
    home = db.session.get(Organization, home_org_id)
    if home is None:
        return []
    ids = [home.id]
    if home.parent_organization_id is not None:
        return ids
    if resolve_role(user_id, home.id) != Role.OWNER:
        return ids
    children = (
        db.session.query(Organization.id)
        .filter(Organization.parent_organization_id == home.id)
        .order_by(Organization.id)
        .all()
    )
    ids.extend(child_id for (child_id,) in children)
    return ids


# ═══════════════════════════════════════════════════════════════
# Access context (explicit per-request input to every access decision)
# ═══════════════════════════════════════════════════════════════
@dataclass(frozen=True)
class AccessContext:
    user_id: int | None
    home_organization_id: int | None
    accessible_organization_ids: tuple = field(default_factory=tuple)
    role: Role | None = None
    home_is_top_level: bool = False

    def can(self, permission) -> bool:
        return can(self.role, permission)

    @property
    def permissions(self) -> frozenset:
        return permissions_for(self.role)

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER

    @property
    def can_manage(self) -> bool:
        return self.role in MANAGER_ROLES

    @property
    def can_manage_sub_organizations(self) -> bool:
        return self.is_owner and self.home_is_top_level

    def can_access(self, organization_id) -> bool:
        return organization_id is not None and organization_id in self.accessible_organization_ids

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "home_organization_id": self.home_organization_id,
            "accessible_organization_ids": list(self.accessible_organization_ids),
            "role": self.role.value if self.role else None,
            "permissions": sorted(p.value for p in self.permissions),
            "is_owner": self.is_owner,
            "can_manage": self.can_manage,
            "can_manage_sub_organizations": self.can_manage_sub_organizations,
        }


ANONYMOUS = AccessContext(user_id=None, home_organization_id=None)


def build_access_context(user_id: int | None) -> AccessContext:
    """Resolve home org, accessible orgs and role for *user_id*."""
    if user_id is None:
        return ANONYMOUS
    home_id = resolve_home_organization(user_id)
    if home_id is None:
        logger.info("User %s has no profile; empty access context", user_id)
        return AccessContext(user_id=user_id, home_organization_id=None)
    home = db.session.get(Organization, home_id)
    return AccessContext(
        user_id=user_id,
        home_organization_id=home_id,
        accessible_organization_ids=tuple(resolve_accessible_organizations(user_id, home_id)),
        role=resolve_role(user_id, home_id),
        home_is_top_level=bool(home and home.parent_organization_id is None),
    )
