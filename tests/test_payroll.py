"""
Attendance pay and monthly payroll.
"""

from datetime import date

import pytest

from siteledger.services.payroll_service import (
    attendance_pay,
    calculate_payroll,
    month_range,
    payroll_totals,
)


@pytest.mark.parametrize("status,hours,deduction,expected", [
    ("present", 0, 0, 800),
    ("half_day", 0, 0, 400),
    ("overtime", 4, 0, 1200),
    ("overtime", 4, 50, 1150),
    ("present", 0, 100, 700),
    ("absent", 0, 100, 0),
])
def test_attendance_pay(status, hours, deduction, expected):
    assert attendance_pay(status, 800, hours, deduction) == expected


def test_missing_values_are_zero():
    assert attendance_pay("overtime", None, None, None) == 0
    assert attendance_pay("present", 500, None, "") == 500


def test_month_range():
    assert month_range(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_range(2023, 12) == (date(2023, 12, 1), date(2023, 12, 31))


def test_worker_payroll_example():
    workers = [
        {"id": 1, "name": "Ravi Kumar", "trade": "Mason", "daily_rate": 800},
        {"id": 2, "name": "Idle", "trade": None, "daily_rate": 600},
    ]
    attendance = [
        {"worker_id": 1, "status": "present"},
        {"worker_id": 1, "status": "overtime", "overtime_hours": 4, "deduction": 50},
    ]
    (row,) = calculate_payroll(workers, attendance)
    assert row.worker_id == 1
    assert row.present_days == 1
    assert row.overtime_days == 1
    assert row.total_working_days == 2
    assert row.total_overtime_hours == 4
    assert row.gross_pay == 2000
    assert row.total_deductions == 50
    assert row.net_pay == 1950


def test_deductions_on_absent_days_count():
    (row,) = calculate_payroll(
        [{"id": 1, "name": "A", "daily_rate": 500}],
        [{"worker_id": 1, "status": "absent", "deduction": 30}],
    )
    assert row.absent_days == 1
    assert row.gross_pay == 0
    assert row.net_pay == -30


def test_totals():
    rows = calculate_payroll(
        [{"id": 1, "name": "A", "daily_rate": 500}, {"id": 2, "name": "B", "daily_rate": 700}],
        [{"worker_id": 1, "status": "present"}, {"worker_id": 2, "status": "half_day", "deduction": 50}],
    )
    assert payroll_totals(rows) == {"workers": 2, "gross_pay": 850, "deductions": 50, "net_pay": 800}


def test_payroll_endpoint(client, org_tree, auth_header, make_project):
    from siteledger.models import db
    from siteledger.models.labour import Attendance, Worker

    project = make_project(org_tree.parent)
    worker = Worker(organization_id=org_tree.parent.id, name="Ravi Kumar", daily_rate=800)
    db.session.add(worker)
    db.session.flush()
    db.session.add_all([
        Attendance(organization_id=org_tree.parent.id, project_id=project.id, worker_id=worker.id,
                   date=date(2024, 3, 4), status="present"),
        Attendance(organization_id=org_tree.parent.id, project_id=project.id, worker_id=worker.id,
                   date=date(2024, 3, 5), status="overtime", overtime_hours=4, deduction=50),
        Attendance(organization_id=org_tree.parent.id, project_id=project.id, worker_id=worker.id,
                   date=date(2024, 4, 1), status="present"),
    ])
    db.session.commit()

    res = client.get("/api/v1/reports/payroll?year=2024&month=3", headers=auth_header(org_tree.manager))
    assert res.status_code == 200
    body = res.get_json()
    assert body["totals"]["net_pay"] == 1950
    assert body["rows"][0]["total_working_days"] == 2

    res = client.get("/api/v1/reports/payroll?year=2024&month=13", headers=auth_header(org_tree.manager))
    assert res.status_code == 400
