"""
Daily Progress Service — one-day digest of site activity.

Independent of the compliance engine. For a report date (and optional
project filter):
    active_tasks     status == in_progress
    completed_today  status == completed and updated_at falls on the date
    blocked_tasks    status == blocked
    open_issues      status in {open, in_progress}
    present / absent attendance counts (overtime counts as present)
    payroll_total    Σ attendance_pay over the day's attendance
    materials        stock entries recorded on the date
"""

import logging
from dataclasses import dataclass, field as dc_field
from datetime import date, datetime, timedelta

from siteledger.services.payroll_service import attendance_pay, attendance_rate
from siteledger.utils.helpers import field, parse_date

logger = logging.getLogger(__name__)

OPEN_ISSUE_STATUSES = {"open", "in_progress"}
PRESENT_STATUSES = {"present", "overtime"}


def _as_dict(record):
    if isinstance(record, dict):
        return record
    return record.to_dict()


def _on_date(value, report_date: date) -> bool:
    return parse_date(value) == report_date


def _matches_project(record, project_id) -> bool:
    return project_id is None or field(record, "project_id") == project_id


@dataclass
class DailyProgressDigest:
    report_date: date
    project_id: int | None
    active_tasks: list = dc_field(default_factory=list)
    completed_today: list = dc_field(default_factory=list)
    blocked_tasks: list = dc_field(default_factory=list)
    open_issues: list = dc_field(default_factory=list)
    attendance: list = dc_field(default_factory=list)
    material_movements: list = dc_field(default_factory=list)
    present_count: int = 0
    absent_count: int = 0
    payroll_total: float = 0.0

    def to_dict(self) -> dict:
        return {
            "report_date": self.report_date.isoformat(),
            "project_id": self.project_id,
            "summary": {
                "active_tasks": len(self.active_tasks),
                "completed_today": len(self.completed_today),
                "blocked_tasks": len(self.blocked_tasks),
                "open_issues": len(self.open_issues),
                "present": self.present_count,
                "absent": self.absent_count,
                "payroll_total": self.payroll_total,
                "material_movements": len(self.material_movements),
            },
            "active_tasks": [_as_dict(t) for t in self.active_tasks],
            "completed_today": [_as_dict(t) for t in self.completed_today],
            "blocked_tasks": [_as_dict(t) for t in self.blocked_tasks],
            "open_issues": [_as_dict(i) for i in self.open_issues],
            "attendance": [_as_dict(a) for a in self.attendance],
            "material_movements": [_as_dict(s) for s in self.material_movements],
        }


def build_daily_progress(
    report_date, tasks, issues, attendance, stock_entries, *, project_id=None,
) -> DailyProgressDigest:
    """Reduce already-scoped record sets into the digest for *report_date*.

    Attendance and stock entries are filtered to the date here, so callers
    may pass wider sets.
    """
    report_date = parse_date(report_date)
    if report_date is None:
        raise ValueError("report_date is required")

    tasks = [t for t in tasks or [] if _matches_project(t, project_id)]
    issues = [i for i in issues or [] if _matches_project(i, project_id)]
    attendance = [
        a for a in attendance or []
        if _matches_project(a, project_id) and _on_date(field(a, "date"), report_date)
    ]
    stock_entries = [
        s for s in stock_entries or []
        if _matches_project(s, project_id) and _on_date(field(s, "recorded_at"), report_date)
    ]

    digest = DailyProgressDigest(report_date=report_date, project_id=project_id)
    digest.active_tasks = [t for t in tasks if field(t, "status") == "in_progress"]
    digest.completed_today = [
        t for t in tasks
        if field(t, "status") == "completed" and _on_date(field(t, "updated_at"), report_date)
    ]
    digest.blocked_tasks = [t for t in tasks if field(t, "status") == "blocked"]
    digest.open_issues = [i for i in issues if field(i, "status") in OPEN_ISSUE_STATUSES]
    digest.attendance = attendance
    digest.material_movements = stock_entries
    digest.present_count = sum(1 for a in attendance if field(a, "status") in PRESENT_STATUSES)
    digest.absent_count = sum(1 for a in attendance if field(a, "status") == "absent")
    digest.payroll_total = sum(
        attendance_pay(
            field(a, "status"),
            attendance_rate(a),
            field(a, "overtime_hours"),
            field(a, "deduction"),
        )
        for a in attendance
    )
    return digest


def daily_progress_for_organizations(org_ids, report_date, project_id=None) -> DailyProgressDigest:
    """Fetch the day's record streams for *org_ids* and build the digest."""
    from siteledger.models.labour import Attendance
    from siteledger.models.materials import StockEntry
    from siteledger.models.project import Issue, Task

    report_date = parse_date(report_date)
    if report_date is None:
        raise ValueError("report_date is required")
    day_start = datetime.combine(report_date, datetime.min.time())
    day_end = day_start + timedelta(days=1)

    def scoped(model):
        q = model.query_for_orgs(org_ids)
        if project_id:
            q = q.filter(model.project_id == project_id)
        return q

    return build_daily_progress(
        report_date,
        scoped(Task).all(),
        scoped(Issue).all(),
        scoped(Attendance).filter(Attendance.date == report_date).all(),
        scoped(StockEntry)
        .filter(StockEntry.recorded_at >= day_start, StockEntry.recorded_at < day_end)
        .all(),
        project_id=project_id,
    )
