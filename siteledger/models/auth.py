"""
Auth Models — organizations, users, profiles, user_roles.

Organization hierarchy is a single self-referential FK: an organization
with a non-null parent_organization_id is a sub-organization. Roles are a
closed enum; permission sets are derived from the role at check time and
never persisted (see services/permission_service.py).
"""

import enum
from datetime import datetime, timezone

from siteledger.models import db


class Role(str, enum.Enum):
    """Organization role. Exactly one per (user, organization)."""

    OWNER = "owner"
    PROJECT_MANAGER = "project_manager"
    SITE_ENGINEER = "site_engineer"

    @classmethod
    def parse(cls, value):
        """Return the Role for *value*; raise ValueError for unknown strings."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None


# Roles that may be granted through team-member provisioning.
PROVISIONABLE_ROLES = frozenset({Role.PROJECT_MANAGER, Role.SITE_ENGINEER})


# ═══════════════════════════════════════════════════════════════
# 1. ORGANIZATIONS
# ═══════════════════════════════════════════════════════════════
class Organization(db.Model):
    __tablename__ = "organizations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(150), unique=True, nullable=False)
    parent_organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    @property
    def is_sub_organization(self):
        return self.parent_organization_id is not None

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "parent_organization_id": self.parent_organization_id,
            "is_sub_organization": self.is_sub_organization,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ═══════════════════════════════════════════════════════════════
# 2. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    password_hash = db.Column(db.String(256))
    status = db.Column(db.String(20), default="active")  # active, inactive
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    profile = db.relationship(
        "Profile", back_populates="user", uselist=False, cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "status": self.status,
            "full_name": self.profile.full_name if self.profile else None,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ═══════════════════════════════════════════════════════════════
# 3. PROFILES (one per user, pinned to a home organization)
# ═══════════════════════════════════════════════════════════════
class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    full_name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(30))
    email = db.Column(db.String(200))
    avatar_url = db.Column(db.String(500))
    temp_password = db.Column(db.String(64))  # shown to the owner until first login
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    user = db.relationship("User", back_populates="profile")

    def to_dict(self, include_temp_password=False):
        d = {
            "user_id": self.user_id,
            "organization_id": self.organization_id,
            "full_name": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "avatar_url": self.avatar_url,
        }
        if include_temp_password:
            d["temp_password"] = self.temp_password
        return d


# ═══════════════════════════════════════════════════════════════
# 4. USER_ROLES
# ═══════════════════════════════════════════════════════════════
class UserRole(db.Model):
    __tablename__ = "user_roles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    role = db.Column(
        db.Enum(
            Role,
            name="app_role",
            native_enum=False,
            validate_strings=True,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("user_id", "organization_id", name="uq_user_role_org"),
        db.Index("ix_user_roles_org", "organization_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "organization_id": self.organization_id,
            "role": self.role.value if self.role else None,
        }
