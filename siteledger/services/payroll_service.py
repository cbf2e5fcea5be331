"""
Payroll Service — attendance pay and monthly per-worker payroll.

Per attendance record:
    present  → daily_rate
    half_day → daily_rate / 2
    overtime → daily_rate + overtime_hours * daily_rate / 8
    absent   → 0
each paying status minus that record's deduction. Missing rate, hours or
deduction count as 0.

The same rule feeds the daily progress digest's payroll total.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date

from siteledger.utils.helpers import field, to_number

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 8


def gross_for_status(status, daily_rate, overtime_hours=0) -> float:
    rate = to_number(daily_rate)
    if status == "present":
        return rate
    if status == "half_day":
        return rate / 2
    if status == "overtime":
        return rate + to_number(overtime_hours) * rate / HOURS_PER_DAY
    return 0.0


def attendance_pay(status, daily_rate, overtime_hours=0, deduction=0) -> float:
    """Net pay for one attendance record; absent pays nothing."""
    if status not in ("present", "half_day", "overtime"):
        return 0.0
    return gross_for_status(status, daily_rate, overtime_hours) - to_number(deduction)


def attendance_rate(record) -> float:
    """Daily rate for an attendance record (own field or the joined worker's)."""
    rate = field(record, "daily_rate")
    if rate is None:
        rate = field(field(record, "worker"), "daily_rate")
    return to_number(rate)


def month_range(year: int, month: int) -> tuple[date, date]:
    """First and last day of the month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


@dataclass
class PayrollRow:
    worker_id: int
    name: str
    trade: str | None
    contractor: str | None
    daily_rate: float
    present_days: int = 0
    half_days: int = 0
    overtime_days: int = 0
    absent_days: int = 0
    total_overtime_hours: float = 0.0
    total_deductions: float = 0.0
    gross_pay: float = 0.0

    @property
    def total_working_days(self) -> int:
        return self.present_days + self.half_days + self.overtime_days

    @property
    def net_pay(self) -> float:
        return self.gross_pay - self.total_deductions

    def to_dict(self) -> dict:
        return {
            "worker_id": self.worker_id,
            "name": self.name,
            "trade": self.trade,
            "contractor": self.contractor,
            "daily_rate": self.daily_rate,
            "present_days": self.present_days,
            "half_days": self.half_days,
            "overtime_days": self.overtime_days,
            "absent_days": self.absent_days,
            "total_working_days": self.total_working_days,
            "total_overtime_hours": self.total_overtime_hours,
            "total_deductions": self.total_deductions,
            "gross_pay": self.gross_pay,
            "net_pay": self.net_pay,
        }


def calculate_payroll(workers, attendance) -> list[PayrollRow]:
    """Per-worker payroll over *attendance*.

    Deductions are summed over every record of the worker (absent days
    included); gross excludes them. Workers with no attendance records
    are left out.
    """
    by_worker: dict = {}
    for record in attendance or []:
        by_worker.setdefault(field(record, "worker_id"), []).append(record)

    rows = []
    for worker in workers or []:
        records = by_worker.get(field(worker, "id"))
        if not records:
            continue
        rate = to_number(field(worker, "daily_rate"))
        row = PayrollRow(
            worker_id=field(worker, "id"),
            name=field(worker, "name"),
            trade=field(worker, "trade"),
            contractor=field(worker, "contractor"),
            daily_rate=rate,
        )
        for a in records:
            status = field(a, "status")
            hours = to_number(field(a, "overtime_hours"))
            row.total_deductions += to_number(field(a, "deduction"))
            if status == "present":
                row.present_days += 1
            elif status == "half_day":
                row.half_days += 1
            elif status == "overtime":
                row.overtime_days += 1
                row.total_overtime_hours += hours
            elif status == "absent":
                row.absent_days += 1
            row.gross_pay += gross_for_status(status, rate, hours)
        rows.append(row)
    return rows


def payroll_totals(rows) -> dict:
    return {
        "workers": len(rows),
        "gross_pay": sum(r.gross_pay for r in rows),
        "deductions": sum(r.total_deductions for r in rows),
        "net_pay": sum(r.net_pay for r in rows),
    }


def monthly_payroll(org_ids, year: int, month: int, project_id=None) -> dict:
    """Payroll for active workers of *org_ids* over one calendar month."""
    from siteledger.models.labour import Attendance, Worker

    start, end = month_range(year, month)
    workers = (
        Worker.query_for_orgs(org_ids)
        .filter(Worker.is_active.is_(True))
        .order_by(Worker.name)
        .all()
    )
    q = Attendance.query_for_orgs(org_ids).filter(Attendance.date >= start, Attendance.date <= end)
    if project_id:
        q = q.filter(Attendance.project_id == project_id)
    rows = calculate_payroll(workers, q.all())
    return {
        "year": year,
        "month": month,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "rows": [r.to_dict() for r in rows],
        "totals": payroll_totals(rows),
    }
