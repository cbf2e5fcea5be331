"""
Client portal models — shareable read-only tokens and the records they expose.

A token grants a named client a permission-scoped view of one project:
    progress / schedule → tasks
    photos              → photo progress
    billing             → RA bills
"""

from datetime import datetime, timezone

from siteledger.models import db
from siteledger.models.base import OrgModel

PORTAL_PERMISSIONS = {"progress", "schedule", "photos", "billing"}


def _iso(value):
    return value.isoformat() if value else None


class ClientPortalToken(OrgModel):
    __tablename__ = "client_portal_tokens"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    token = db.Column(db.String(128), unique=True, nullable=False)
    client_name = db.Column(db.String(200), nullable=False)
    permissions = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    expires_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))


class PhotoProgress(OrgModel):
    __tablename__ = "photo_progress"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    photo_url = db.Column(db.String(500), nullable=False)
    location = db.Column(db.String(200))
    description = db.Column(db.Text)
    taken_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "photo_url": self.photo_url,
            "location": self.location,
            "description": self.description,
            "taken_at": _iso(self.taken_at),
        }


class RABill(OrgModel):
    """Running-account bill raised against a project."""
    __tablename__ = "ra_bills"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bill_number = db.Column(db.String(40), nullable=False)
    bill_date = db.Column(db.Date)
    total_amount = db.Column(db.Float, default=0)
    net_amount = db.Column(db.Float, default=0)
    status = db.Column(db.String(20), default="draft")

    def to_dict(self):
        return {
            "id": self.id,
            "bill_number": self.bill_number,
            "bill_date": _iso(self.bill_date),
            "total_amount": self.total_amount or 0,
            "net_amount": self.net_amount or 0,
            "status": self.status,
        }
