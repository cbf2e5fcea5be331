"""
Client Portal Service — resolve a shareable read-only token.

    empty token                 → 400 "Token is required"
    unknown or inactive token   → 404 "Invalid or expired token"
    expires_at in the past      → 403 "Token has expired"
    otherwise                   → permission-scoped slice of one project

Rejections never include project data.
"""

import logging
import secrets
from datetime import datetime, timezone

from siteledger.models import db
from siteledger.models.portal import PORTAL_PERMISSIONS, ClientPortalToken, PhotoProgress, RABill
from siteledger.models.project import Project, Task

logger = logging.getLogger(__name__)

TASK_LIMIT = 50
PHOTO_LIMIT = 20
BILL_LIMIT = 20


class PortalError(Exception):
    """Token resolution failure carrying the HTTP status."""
    def __init__(self, message, status_code=400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _is_expired(token: ClientPortalToken, now: datetime) -> bool:
    if token.expires_at is None:
        return False
    expires_at = token.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < now


def resolve_portal_token(token: str, *, now: datetime | None = None) -> dict:
    """Return ``{success: True, data: {...}}`` or raise PortalError."""
    token = token.strip() if isinstance(token, str) else ""
    if not token:
        raise PortalError("Token is required", 400)

    row = ClientPortalToken.query.filter_by(token=token, is_active=True).first()
    if row is None:
        raise PortalError("Invalid or expired token", 404)
    if _is_expired(row, now or datetime.now(timezone.utc)):
        raise PortalError("Token has expired", 403)

    permissions = list(row.permissions or [])
    project = db.session.get(Project, row.project_id)

    tasks, photos, bills = [], [], []
    if "progress" in permissions or "schedule" in permissions:
        tasks = [
            t.to_portal_dict()
            for t in Task.query.filter_by(project_id=row.project_id)
            .order_by(Task.created_at.desc(), Task.id.desc())
            .limit(TASK_LIMIT)
        ]
    if "photos" in permissions:
        photos = [
            p.to_dict()
            for p in PhotoProgress.query.filter_by(project_id=row.project_id)
            .order_by(PhotoProgress.taken_at.desc(), PhotoProgress.id.desc())
            .limit(PHOTO_LIMIT)
        ]
    if "billing" in permissions:
        bills = [
            b.to_dict()
            for b in RABill.query.filter_by(project_id=row.project_id)
            .order_by(RABill.bill_date.desc(), RABill.id.desc())
            .limit(BILL_LIMIT)
        ]

    logger.info("Portal token resolved for project %s", row.project_id)
    return {
        "success": True,
        "data": {
            "client_name": row.client_name,
            "permissions": permissions,
            "project": project.to_portal_dict() if project else None,
            "tasks": tasks,
            "photos": photos,
            "bills": bills,
        },
    }


def issue_portal_token(org_id, project_id, client_name, permissions, expires_at=None) -> ClientPortalToken:
    """Create an active token for *project_id*. Unknown permissions are dropped."""
    row = ClientPortalToken(
        organization_id=org_id,
        project_id=project_id,
        token=secrets.token_urlsafe(32),
        client_name=client_name,
        permissions=[p for p in permissions if isinstance(p, str) and p in PORTAL_PERMISSIONS],
        expires_at=expires_at,
    )
    db.session.add(row)
    db.session.flush()
    return row
