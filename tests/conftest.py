"""
Shared pytest fixtures for the SiteLedger test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - org_tree: parent organization + sub-organization with one user per role
    - auth_header: build an ``Authorization: Bearer`` header for a user
"""

from types import SimpleNamespace

import pytest

from siteledger import create_app
from siteledger.models import db as _db
from siteledger.services.change_feed import feed


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        feed.clear()
        yield
        feed.clear()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


def _make_org(name, parent=None):
    from siteledger.models.auth import Organization
    from siteledger.services.organization_service import generate_slug

    org = Organization(
        name=name,
        slug=generate_slug(name),
        parent_organization_id=parent.id if parent else None,
    )
    _db.session.add(org)
    _db.session.flush()
    return org


def _make_user(email, org, role, password="Passw0rd!", full_name=None):
    from siteledger.models.auth import Profile, User, UserRole
    from siteledger.utils.crypto import hash_password

    user = User(email=email, password_hash=hash_password(password), status="active")
    _db.session.add(user)
    _db.session.flush()
    _db.session.add(Profile(
        user_id=user.id,
        organization_id=org.id,
        full_name=full_name or email.split("@")[0].title(),
        email=email,
    ))
    if role is not None:
        _db.session.add(UserRole(user_id=user.id, organization_id=org.id, role=role))
    _db.session.flush()
    return user


def _make_project(org, name="Tower A", **kwargs):
    from siteledger.models.project import Project

    project = Project(organization_id=org.id, name=name, **kwargs)
    _db.session.add(project)
    _db.session.flush()
    return project


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def org_tree():
    """Parent org (owner, PM, engineer) with one sub-org (its own owner).

    A second, unrelated top-level org is included to check isolation.
    """
    from siteledger.models.auth import Role

    parent = _make_org("Acme Builders")
    sub = _make_org("Acme North", parent=parent)
    other = _make_org("Other Co")
    tree = SimpleNamespace(
        parent=parent,
        sub=sub,
        other=other,
        owner=_make_user("owner@acme.test", parent, Role.OWNER),
        manager=_make_user("pm@acme.test", parent, Role.PROJECT_MANAGER),
        engineer=_make_user("se@acme.test", parent, Role.SITE_ENGINEER),
        sub_owner=_make_user("owner@north.test", sub, Role.OWNER),
        outsider=_make_user("owner@other.test", other, Role.OWNER),
    )
    _db.session.commit()
    return tree


@pytest.fixture()
def auth_header():
    """Return a callable: user → Authorization header dict."""
    from siteledger.services.jwt_service import generate_access_token

    def _header(user):
        return {"Authorization": f"Bearer {generate_access_token(user.id, None, None)}"}

    return _header


@pytest.fixture()
def make_org():
    return _make_org


@pytest.fixture()
def make_user():
    return _make_user


@pytest.fixture()
def make_project():
    return _make_project
