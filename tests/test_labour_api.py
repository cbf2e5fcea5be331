"""
Worker and attendance endpoints.
"""

from siteledger.models import db
from siteledger.models.labour import Attendance, Worker


def _worker(org):
    worker = Worker(organization_id=org.id, name="Ravi Kumar", daily_rate=800)
    db.session.add(worker)
    db.session.commit()
    return worker


def test_create_worker(client, org_tree, auth_header):
    res = client.post("/api/v1/workers", json={"name": "Asha", "daily_rate": "650", "phone": ""},
                      headers=auth_header(org_tree.manager))
    assert res.status_code == 201
    body = res.get_json()
    assert body["daily_rate"] == 650
    assert body["phone"] is None

    res = client.post("/api/v1/workers", json={"name": "X"}, headers=auth_header(org_tree.engineer))
    assert res.status_code == 403


def test_mark_attendance_upserts(client, org_tree, auth_header, make_project):
    project = make_project(org_tree.parent)
    db.session.commit()
    worker = _worker(org_tree.parent)
    headers = auth_header(org_tree.engineer)
    payload = {"project_id": project.id, "worker_id": worker.id, "date": "2024-06-15", "status": "present"}

    res = client.post("/api/v1/attendance", json=payload, headers=headers)
    assert res.status_code == 201

    payload.update(status="overtime", overtime_hours=3)
    res = client.post("/api/v1/attendance", json=payload, headers=headers)
    assert res.status_code == 200
    assert res.get_json()["overtime_hours"] == 3
    assert Attendance.query.count() == 1


def test_attendance_validation(client, org_tree, auth_header, make_project):
    project = make_project(org_tree.parent)
    db.session.commit()
    worker = _worker(org_tree.parent)
    headers = auth_header(org_tree.engineer)
    base = {"project_id": project.id, "worker_id": worker.id}

    assert client.post("/api/v1/attendance", json={**base, "date": "2024-06-15", "status": "sick"},
                       headers=headers).status_code == 400
    assert client.post("/api/v1/attendance", json={**base, "status": "present"},
                       headers=headers).status_code == 400


def test_worker_list_is_scoped(client, org_tree, auth_header):
    _worker(org_tree.other)
    res = client.get("/api/v1/workers", headers=auth_header(org_tree.owner))
    assert res.get_json()["total"] == 0


def test_attendance_rejects_worker_from_other_organization(client, org_tree, auth_header, make_project):
    sub_project = make_project(org_tree.sub, name="North Block")
    db.session.commit()
    worker = _worker(org_tree.parent)

    res = client.post("/api/v1/attendance", json={
        "project_id": sub_project.id, "worker_id": worker.id, "date": "2024-06-15",
    }, headers=auth_header(org_tree.owner))
    assert res.status_code == 400
    assert Attendance.query.count() == 0


def test_remark_follows_project_organization(client, org_tree, auth_header, make_project):
    first = make_project(org_tree.sub, name="North Block")
    second = make_project(org_tree.sub, name="North Annex")
    db.session.commit()
    worker = _worker(org_tree.sub)
    headers = auth_header(org_tree.owner)
    payload = {"project_id": first.id, "worker_id": worker.id, "date": "2024-06-15"}

    assert client.post("/api/v1/attendance", json=payload, headers=headers).status_code == 201
    payload["project_id"] = second.id
    assert client.post("/api/v1/attendance", json=payload, headers=headers).status_code == 200

    record = Attendance.query.one()
    assert (record.project_id, record.organization_id) == (second.id, org_tree.sub.id)


def test_attendance_rejects_non_string_status(client, org_tree, auth_header, make_project):
    project = make_project(org_tree.parent)
    db.session.commit()
    worker = _worker(org_tree.parent)
    res = client.post("/api/v1/attendance", json={
        "project_id": project.id, "worker_id": worker.id, "date": "2024-06-15", "status": ["present"],
    }, headers=auth_header(org_tree.engineer))
    assert res.status_code == 400
