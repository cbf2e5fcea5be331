"""
Demo seed data and the ``flask seed-demo`` command.
"""

from datetime import date

from siteledger.models import db
from siteledger.models.auth import Organization
from siteledger.models.labour import Attendance
from siteledger.models.project import Project, Task
from siteledger.services.seed_service import DEMO_PASSWORD, seed_demo


def test_seed_demo_builds_org_tree():
    summary = seed_demo(today=date(2024, 6, 15))
    db.session.commit()

    org = db.session.get(Organization, summary["organization_id"])
    assert org.name == "Demo Builders"
    assert [s.id for s in Organization.query.filter_by(parent_organization_id=org.id)] == [
        summary["sub_organization_id"]
    ]
    assert Project.query.count() == 1
    assert Task.query_for_org(org.id).count() == 3
    assert Attendance.query.filter_by(date=date(2024, 6, 15)).count() == 2
    assert summary["password"] == DEMO_PASSWORD


def test_seeded_owner_can_log_in(client):
    summary = seed_demo()
    db.session.commit()
    res = client.post("/api/v1/auth/login", json={
        "email": summary["owner_email"], "password": summary["password"],
    })
    assert res.status_code == 200
    assert res.get_json()["access_token"]


def test_cli_command(app):
    result = app.test_cli_runner().invoke(args=["seed-demo"])
    assert result.exit_code == 0
    assert "owner@demo.siteledger.local" in result.output
    assert Organization.query.filter_by(name="Demo Builders").count() == 1
