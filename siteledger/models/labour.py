"""
Labour models — workers and daily attendance.

Attendance is unique per (worker, date); re-marking a day updates the row.
"""

from datetime import datetime, timezone

from siteledger.models import db
from siteledger.models.base import OrgModel

ATTENDANCE_STATUSES = {"present", "absent", "half_day", "overtime"}


class Worker(OrgModel):
    __tablename__ = "workers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    trade = db.Column(db.String(100))
    daily_rate = db.Column(db.Float, default=0)
    contractor = db.Column(db.String(200))
    phone = db.Column(db.String(30))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "trade": self.trade,
            "daily_rate": self.daily_rate or 0,
            "contractor": self.contractor,
            "phone": self.phone,
            "is_active": self.is_active,
        }


class Attendance(OrgModel):
    __tablename__ = "attendance"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    worker_id = db.Column(
        db.Integer, db.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False
    )
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="present")
    overtime_hours = db.Column(db.Float, default=0)
    deduction = db.Column(db.Float, default=0)
    recorded_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    worker = db.relationship("Worker", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("worker_id", "date", name="uq_attendance_worker_date"),
    )

    @property
    def daily_rate(self):
        return self.worker.daily_rate if self.worker else 0

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "worker_id": self.worker_id,
            "worker_name": self.worker.name if self.worker else None,
            "date": self.date.isoformat() if self.date else None,
            "status": self.status,
            "overtime_hours": self.overtime_hours or 0,
            "deduction": self.deduction or 0,
        }
