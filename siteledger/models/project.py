"""
Project domain models — projects, tasks, issues, safety incidents, inspections.

Architecture chain: Organization → Project → Task / Issue / SafetyIncident / Inspection
"""

from datetime import datetime, timezone

from siteledger.models import db
from siteledger.models.base import OrgModel


# ── Constants ────────────────────────────────────────────────────────────────

PROJECT_STATUSES = {"planning", "active", "on_hold", "completed", "cancelled"}
TASK_STATUSES = {"not_started", "in_progress", "blocked", "completed"}
TASK_PRIORITIES = {"low", "medium", "high", "critical"}
ISSUE_SEVERITIES = {"low", "medium", "high", "critical"}
ISSUE_STATUSES = {"open", "in_progress", "resolved", "closed"}
SAFETY_STATUSES = {"open", "investigating", "resolved", "closed"}
INSPECTION_STATUSES = {"pending", "in_progress", "completed"}


def _iso(value):
    return value.isoformat() if value else None


class Project(OrgModel):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(20), default="planning")
    budget = db.Column(db.Float, default=0)
    spent = db.Column(db.Float, default=0)
    progress = db.Column(db.Integer, default=0)
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    client_name = db.Column(db.String(200))
    location = db.Column(db.String(300))
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "budget": self.budget or 0,
            "spent": self.spent or 0,
            "progress": self.progress or 0,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "client_name": self.client_name,
            "location": self.location,
            "created_at": _iso(self.created_at),
        }

    def to_portal_dict(self):
        """Subset exposed through client-portal tokens."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "progress": self.progress or 0,
            "budget": self.budget or 0,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "client_name": self.client_name,
            "location": self.location,
        }


class Task(OrgModel):
    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(20), default="not_started")
    priority = db.Column(db.String(20), default="medium")
    progress = db.Column(db.Integer, default=0)
    start_date = db.Column(db.Date)
    due_date = db.Column(db.Date)
    assigned_to = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    project = db.relationship("Project", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "progress": self.progress or 0,
            "start_date": _iso(self.start_date),
            "due_date": _iso(self.due_date),
            "assigned_to": self.assigned_to,
            "updated_at": _iso(self.updated_at),
        }

    def to_portal_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "progress": self.progress or 0,
            "start_date": _iso(self.start_date),
            "due_date": _iso(self.due_date),
            "priority": self.priority,
        }


class Issue(OrgModel):
    __tablename__ = "issues"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    severity = db.Column(db.String(20), default="medium")
    status = db.Column(db.String(20), default="open")
    reported_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    project = db.relationship("Project", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }


class SafetyIncident(OrgModel):
    __tablename__ = "safety_incidents"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = db.Column(db.String(300), nullable=False)
    severity = db.Column(db.String(20), default="medium")
    status = db.Column(db.String(20), default="open")
    incident_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "severity": self.severity,
            "status": self.status,
            "incident_date": _iso(self.incident_date),
        }


class Inspection(OrgModel):
    """Quality / safety checklist run against a project."""
    __tablename__ = "inspections"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = db.Column(db.String(300), nullable=False)
    status = db.Column(db.String(20), default="pending")
    inspection_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "status": self.status,
            "inspection_date": _iso(self.inspection_date),
        }
