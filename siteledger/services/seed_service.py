"""
Demo data for ``flask seed-demo``.

Creates one top-level organization with a sub-organization, an owner, a
project manager and a site engineer (all sharing one password), plus a
project with tasks, an issue, workers, attendance and a material.
Flushes only; the CLI commits.
"""

import logging
from datetime import date, timedelta

from siteledger.models import db
from siteledger.models.auth import Organization, Profile, Role, User, UserRole
from siteledger.models.labour import Attendance, Worker
from siteledger.models.materials import Material
from siteledger.models.project import Issue, Project, Task
from siteledger.services.organization_service import generate_slug
from siteledger.utils.crypto import hash_password

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "SiteLedger!2024"

_DEMO_USERS = [
    ("owner@demo.siteledger.local", "Asha Rao", Role.OWNER),
    ("pm@demo.siteledger.local", "Vikram Shah", Role.PROJECT_MANAGER),
    ("engineer@demo.siteledger.local", "Neha Iyer", Role.SITE_ENGINEER),
]


def _user(email, full_name, org_id, role, password_hash):
    user = User(email=email, password_hash=password_hash, status="active")
    db.session.add(user)
    db.session.flush()
    db.session.add(Profile(user_id=user.id, organization_id=org_id, full_name=full_name, email=email))
    db.session.add(UserRole(user_id=user.id, organization_id=org_id, role=role))
    return user


def seed_demo(today=None):
    today = today or date.today()
    org = Organization(name="Demo Builders", slug=generate_slug("Demo Builders"))
    db.session.add(org)
    db.session.flush()
    sub = Organization(
        name="Demo Builders North",
        slug=generate_slug("Demo Builders North"),
        parent_organization_id=org.id,
    )
    db.session.add(sub)
    db.session.flush()

    password_hash = hash_password(DEMO_PASSWORD)
    users = {
        role: _user(email, name, org.id, role, password_hash)
        for email, name, role in _DEMO_USERS
    }
    owner = users[Role.OWNER]

    project = Project(
        organization_id=org.id,
        name="Riverside Towers",
        status="active",
        budget=25000000,
        spent=11250000,
        progress=42,
        start_date=today - timedelta(days=120),
        end_date=today + timedelta(days=240),
        client_name="Riverside Developers",
        location="Pune",
        created_by=owner.id,
    )
    db.session.add(project)
    db.session.flush()

    db.session.add_all([
        Task(organization_id=org.id, project_id=project.id, title="Foundation pour",
             status="completed", progress=100, due_date=today - timedelta(days=30)),
        Task(organization_id=org.id, project_id=project.id, title="Level 3 slab shuttering",
             status="in_progress", progress=60, due_date=today + timedelta(days=5),
             assigned_to=users[Role.SITE_ENGINEER].id),
        Task(organization_id=org.id, project_id=project.id, title="Electrical conduit layout",
             status="not_started", due_date=today - timedelta(days=2)),
        Issue(organization_id=org.id, project_id=project.id, title="Rebar delivery delayed",
              severity="high", status="open", reported_by=users[Role.SITE_ENGINEER].id),
    ])

    workers = [
        Worker(organization_id=org.id, name="Ravi Kumar", trade="Mason", daily_rate=800, phone="9876543210"),
        Worker(organization_id=org.id, name="Suresh Yadav", trade="Carpenter", daily_rate=750),
    ]
    db.session.add_all(workers)
    db.session.flush()
    for worker in workers:
        db.session.add(Attendance(
            organization_id=org.id, project_id=project.id, worker_id=worker.id,
            date=today, status="present", recorded_by=owner.id,
        ))
    db.session.add(Material(organization_id=org.id, name="Cement (OPC 53)", unit="bag", standard_rate=380))
    db.session.flush()

    logger.info("Demo organization %s created with sub-organization %s", org.id, sub.id)
    return {
        "organization_id": org.id,
        "sub_organization_id": sub.id,
        "project_id": project.id,
        "owner_email": _DEMO_USERS[0][0],
        "password": DEMO_PASSWORD,
    }
