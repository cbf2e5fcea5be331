"""
Daily progress digest.
"""

from datetime import date

import pytest

from siteledger.services.daily_progress_service import (
    build_daily_progress,
    daily_progress_for_organizations,
)

DAY = date(2024, 6, 15)


@pytest.fixture()
def streams():
    tasks = [
        {"id": 1, "project_id": 1, "status": "in_progress", "updated_at": "2024-06-10T08:00:00"},
        {"id": 2, "project_id": 1, "status": "completed", "updated_at": "2024-06-15T17:30:00"},
        {"id": 3, "project_id": 1, "status": "completed", "updated_at": "2024-06-14T17:30:00"},
        {"id": 4, "project_id": 2, "status": "blocked", "updated_at": None},
    ]
    issues = [
        {"id": 1, "project_id": 1, "status": "open"},
        {"id": 2, "project_id": 2, "status": "in_progress"},
        {"id": 3, "project_id": 1, "status": "resolved"},
    ]
    attendance = [
        {"project_id": 1, "worker_id": 1, "date": "2024-06-15", "status": "present", "daily_rate": 800},
        {"project_id": 1, "worker_id": 2, "date": "2024-06-15", "status": "overtime",
         "daily_rate": 800, "overtime_hours": 4, "deduction": 50},
        {"project_id": 2, "worker_id": 3, "date": "2024-06-15", "status": "absent", "daily_rate": 600},
        {"project_id": 1, "worker_id": 1, "date": "2024-06-14", "status": "present", "daily_rate": 800},
    ]
    stock = [
        {"project_id": 1, "recorded_at": "2024-06-15T10:00:00", "entry_type": "in", "quantity": 20},
        {"project_id": 2, "recorded_at": "2024-06-13T10:00:00", "entry_type": "out", "quantity": 5},
    ]
    return tasks, issues, attendance, stock


def test_digest_for_all_projects(streams):
    digest = build_daily_progress(DAY, *streams)
    summary = digest.to_dict()["summary"]
    assert summary == {
        "active_tasks": 1,
        "completed_today": 1,
        "blocked_tasks": 1,
        "open_issues": 2,
        "present": 2,
        "absent": 1,
        "payroll_total": 800 + 1200 - 50,
        "material_movements": 1,
    }


def test_digest_filtered_by_project(streams):
    digest = build_daily_progress(DAY, *streams, project_id=2)
    assert [t["id"] for t in digest.blocked_tasks] == [4]
    assert digest.active_tasks == []
    assert digest.present_count == 0
    assert digest.absent_count == 1
    assert digest.payroll_total == 0
    assert digest.material_movements == []


def test_date_is_required(streams):
    with pytest.raises(ValueError):
        build_daily_progress(None, *streams)


def test_digest_from_database(org_tree, make_project):
    from siteledger.models import db
    from siteledger.models.labour import Attendance, Worker
    from siteledger.models.project import Task

    project = make_project(org_tree.parent)
    worker = Worker(organization_id=org_tree.parent.id, name="Ravi", daily_rate=800)
    db.session.add(worker)
    db.session.flush()
    db.session.add_all([
        Task(organization_id=org_tree.parent.id, project_id=project.id, title="Slab", status="in_progress"),
        Attendance(organization_id=org_tree.parent.id, project_id=project.id, worker_id=worker.id,
                   date=DAY, status="half_day"),
    ])
    db.session.commit()

    digest = daily_progress_for_organizations([org_tree.parent.id], DAY)
    body = digest.to_dict()
    assert body["summary"]["active_tasks"] == 1
    assert body["summary"]["present"] == 0
    assert body["summary"]["payroll_total"] == 400
    assert body["attendance"][0]["worker_name"] == "Ravi"

    # Another organization's data never leaks in
    assert daily_progress_for_organizations([org_tree.other.id], DAY).active_tasks == []


def test_daily_progress_endpoint(client, org_tree, auth_header):
    res = client.get(
        "/api/v1/reports/daily-progress?date=2024-06-15", headers=auth_header(org_tree.engineer),
    )
    assert res.status_code == 200
    assert res.get_json()["report_date"] == "2024-06-15"

    res = client.get(
        "/api/v1/reports/daily-progress?date=junk", headers=auth_header(org_tree.engineer),
    )
    assert res.status_code == 400
