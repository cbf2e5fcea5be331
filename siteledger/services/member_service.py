"""
Member Service — team provisioning and membership management.

create_team_member() provisions a project manager or site engineer into an
organization the caller owns:

  1. email, full_name, role and organization_id are required       → 400
  2. role must be project_manager or site_engineer (owner is never
     grantable here)                                                → 400
  3. caller must hold role=owner in that organization              → 403
  4. an existing user already holding a role there                 → 400
  5. existing user elsewhere: password reset to a new temporary
     password, role row inserted, profile upserted
  6. new user: user + profile + role created

All writes are flushed into the caller's transaction; the blueprint
commits once.
"""

import logging

from sqlalchemy import func

from siteledger.core.exceptions import NotFoundError, PermissionDeniedError
from siteledger.models import db
from siteledger.models.auth import PROVISIONABLE_ROLES, Organization, Profile, Role, User, UserRole
from siteledger.services.permission_service import Permission, resolve_role
from siteledger.services.user_service import UserServiceError, get_user_by_email, normalize_email
from siteledger.utils.crypto import generate_temp_password, hash_password

logger = logging.getLogger(__name__)


def _text(value) -> str:
    return str(value).strip() if isinstance(value, (str, int, float)) else ""


def _organization_id(value) -> int:
    if isinstance(value, bool):
        value = None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise UserServiceError("organization_id must be an integer", 400) from None


def _parse_provisionable_role(value) -> Role:
    try:
        role = Role.parse(value)
    except ValueError:
        role = None
    if role not in PROVISIONABLE_ROLES:
        raise UserServiceError("Invalid role. Must be project_manager or site_engineer", 400)
    return role


def create_team_member(caller_id, email, full_name, role, organization_id, phone=None) -> dict:
    """Provision or attach a user. Returns ``{success, user_id, default_password}``."""
    email = normalize_email(_text(email))
    full_name = _text(full_name)
    if not email or not full_name or not role or organization_id in (None, ""):
        raise UserServiceError(
            "Missing required fields: email, full_name, role, organization_id", 400,
        )
    organization_id = _organization_id(organization_id)
    role = _parse_provisionable_role(role)

    if resolve_role(caller_id, organization_id) != Role.OWNER:
        raise UserServiceError("Only owners can create team members", 403)
    if db.session.get(Organization, organization_id) is None:
        raise UserServiceError("Organization not found", 404)

    temp_password = generate_temp_password()
    phone = _text(phone) or None
    user = get_user_by_email(email)

    if user is not None:
        existing = UserRole.query.filter_by(
            user_id=user.id, organization_id=organization_id
        ).first()
        if existing is not None:
            raise UserServiceError("User is already a member of this organization", 400)

        # Reset so the owner can share new credentials
        user.password_hash = hash_password(temp_password)
        db.session.add(UserRole(user_id=user.id, organization_id=organization_id, role=role))

        profile = user.profile or Profile(user_id=user.id)
        profile.organization_id = organization_id
        profile.full_name = full_name
        profile.phone = phone
        profile.email = email
        profile.temp_password = temp_password
        db.session.add(profile)
        db.session.flush()
        logger.info("Existing user %s attached to org %s as %s", user.id, organization_id, role.value)
    else:
        user = User(email=email, password_hash=hash_password(temp_password), status="active")
        db.session.add(user)
        db.session.flush()
        db.session.add(Profile(
            user_id=user.id,
            organization_id=organization_id,
            full_name=full_name,
            phone=phone,
            email=email,
            temp_password=temp_password,
        ))
        db.session.add(UserRole(user_id=user.id, organization_id=organization_id, role=role))
        db.session.flush()
        logger.info("User %s created in org %s as %s", user.id, organization_id, role.value)

    return {
        "success": True,
        "user_id": user.id,
        "default_password": temp_password,
    }


def list_members(org_ids, include_temp_password=False) -> list[dict]:
    """Profiles homed in *org_ids*, each joined with its role there."""
    ids = list(org_ids or [])
    if not ids:
        return []
    rows = (
        db.session.query(Profile, UserRole.role)
        .outerjoin(
            UserRole,
            (UserRole.user_id == Profile.user_id)
            & (UserRole.organization_id == Profile.organization_id),
        )
        .filter(Profile.organization_id.in_(ids))
        .order_by(func.lower(Profile.full_name))
        .all()
    )
    result = []
    for profile, role in rows:
        d = profile.to_dict(include_temp_password=include_temp_password)
        d["role"] = role.value if role else None
        result.append(d)
    return result


def remove_member(ctx, org_id: int, user_id: int) -> None:
    """Delete the (user, org) role row. The profile is kept."""
    if not ctx.can_access(org_id):
        raise NotFoundError(resource="Organization", resource_id=org_id)
    if not ctx.can(Permission.ROLES_MANAGE):
        raise PermissionDeniedError(permission=Permission.ROLES_MANAGE.value)
    if user_id == ctx.user_id:
        raise PermissionDeniedError("You cannot remove yourself from the organization")

    row = UserRole.query.filter_by(user_id=user_id, organization_id=org_id).first()
    if row is None:
        raise NotFoundError(resource="Member", resource_id=user_id)
    db.session.delete(row)
    db.session.flush()
    logger.info("User %s removed from org %s by %s", user_id, org_id, ctx.user_id)
