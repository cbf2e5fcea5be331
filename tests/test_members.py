"""
Team provisioning and membership management.
"""

import pytest

from siteledger.core.exceptions import NotFoundError, PermissionDeniedError
from siteledger.models import db
from siteledger.models.auth import Profile, Role, User, UserRole
from siteledger.services.member_service import create_team_member, list_members, remove_member
from siteledger.services.permission_service import build_access_context
from siteledger.services.user_service import UserServiceError
from siteledger.utils.crypto import verify_password


def _create(org_tree, **overrides):
    kwargs = dict(
        caller_id=org_tree.owner.id,
        email="New.Engineer@Acme.test",
        full_name="New Engineer",
        role="site_engineer",
        organization_id=org_tree.parent.id,
    )
    kwargs.update(overrides)
    return create_team_member(**kwargs)


class TestCreateTeamMember:
    def test_new_user(self, org_tree):
        result = _create(org_tree, phone=" 98765 ")
        db.session.commit()
        assert result["success"] is True
        user = db.session.get(User, result["user_id"])
        assert user.email == "new.engineer@acme.test"
        assert verify_password(result["default_password"], user.password_hash)
        assert user.profile.organization_id == org_tree.parent.id
        assert user.profile.phone == "98765"
        assert user.profile.temp_password == result["default_password"]
        role = UserRole.query.filter_by(user_id=user.id).one()
        assert role.role == Role.SITE_ENGINEER

    @pytest.mark.parametrize("missing", ["email", "full_name", "role", "organization_id"])
    def test_missing_fields(self, org_tree, missing):
        with pytest.raises(UserServiceError) as exc:
            _create(org_tree, **{missing: None})
        assert exc.value.status_code == 400
        assert exc.value.message.startswith("Missing required fields")

    @pytest.mark.parametrize("role", ["owner", "admin"])
    def test_invalid_role(self, org_tree, role):
        with pytest.raises(UserServiceError) as exc:
            _create(org_tree, role=role)
        assert exc.value.status_code == 400
        assert exc.value.message == "Invalid role. Must be project_manager or site_engineer"

    @pytest.mark.parametrize("who", ["manager", "engineer", "sub_owner"])
    def test_only_owner_of_that_org(self, org_tree, who):
        with pytest.raises(UserServiceError) as exc:
            _create(org_tree, caller_id=getattr(org_tree, who).id)
        assert exc.value.status_code == 403

    def test_already_member(self, org_tree):
        with pytest.raises(UserServiceError) as exc:
            _create(org_tree, email="pm@acme.test")
        assert exc.value.status_code == 400
        assert exc.value.message == "User is already a member of this organization"

    def test_existing_user_elsewhere_is_attached(self, org_tree):
        outsider_id = org_tree.outsider.id
        result = _create(org_tree, email="owner@other.test", full_name="Moved Over", role="project_manager")
        db.session.commit()

        assert result["user_id"] == outsider_id
        user = db.session.get(User, outsider_id)
        assert verify_password(result["default_password"], user.password_hash)
        assert not verify_password("Passw0rd!", user.password_hash)
        assert user.profile.organization_id == org_tree.parent.id
        assert user.profile.full_name == "Moved Over"
        assert Profile.query.filter_by(user_id=outsider_id).count() == 1
        assert UserRole.query.filter_by(user_id=outsider_id).count() == 2


class TestListAndRemove:
    def test_list_members(self, org_tree):
        members = list_members([org_tree.parent.id])
        assert {m["email"] for m in members} == {"owner@acme.test", "pm@acme.test", "se@acme.test"}
        assert all("temp_password" not in m for m in members)
        assert list_members([]) == []

    def test_owner_removes_member(self, org_tree):
        ctx = build_access_context(org_tree.owner.id)
        remove_member(ctx, org_tree.parent.id, org_tree.engineer.id)
        db.session.commit()
        assert UserRole.query.filter_by(user_id=org_tree.engineer.id).count() == 0

    def test_cannot_remove_self(self, org_tree):
        ctx = build_access_context(org_tree.owner.id)
        with pytest.raises(PermissionDeniedError):
            remove_member(ctx, org_tree.parent.id, org_tree.owner.id)

    def test_manager_lacks_roles_manage(self, org_tree):
        ctx = build_access_context(org_tree.manager.id)
        with pytest.raises(PermissionDeniedError):
            remove_member(ctx, org_tree.parent.id, org_tree.engineer.id)

    def test_foreign_org_not_found(self, org_tree):
        ctx = build_access_context(org_tree.owner.id)
        with pytest.raises(NotFoundError):
            remove_member(ctx, org_tree.other.id, org_tree.outsider.id)


class TestMembersAPI:
    def test_create_member(self, client, org_tree, auth_header):
        res = client.post("/api/v1/members", json={
            "email": "fresh@acme.test",
            "full_name": "Fresh Face",
            "role": "project_manager",
            "organization_id": org_tree.parent.id,
        }, headers=auth_header(org_tree.owner))
        assert res.status_code == 200
        body = res.get_json()
        assert body["success"] is True
        assert body["default_password"]

        login = client.post("/api/v1/auth/login", json={
            "email": "fresh@acme.test", "password": body["default_password"],
        })
        assert login.status_code == 200

    def test_create_member_error_envelope(self, client, org_tree, auth_header):
        res = client.post("/api/v1/members", json={
            "email": "x@acme.test", "full_name": "X", "role": "owner",
            "organization_id": org_tree.parent.id,
        }, headers=auth_header(org_tree.owner))
        assert res.status_code == 400
        assert res.get_json() == {
            "success": False, "error": "Invalid role. Must be project_manager or site_engineer",
        }

    @pytest.mark.parametrize("organization_id", [[1], {"id": 1}, "abc", True])
    def test_organization_id_must_be_an_integer(self, client, org_tree, auth_header, organization_id):
        res = client.post("/api/v1/members", json={
            "email": "x@acme.test", "full_name": "X", "role": "site_engineer",
            "organization_id": organization_id,
        }, headers=auth_header(org_tree.owner))
        assert res.status_code == 400
        assert res.get_json() == {"success": False, "error": "organization_id must be an integer"}

    def test_temp_password_visible_to_owner_only(self, client, org_tree, auth_header):
        _create(org_tree)
        db.session.commit()
        owner_view = client.get("/api/v1/members", headers=auth_header(org_tree.owner)).get_json()
        pm_view = client.get("/api/v1/members", headers=auth_header(org_tree.manager)).get_json()
        assert any(m.get("temp_password") for m in owner_view["items"])
        assert all("temp_password" not in m for m in pm_view["items"])

    def test_delete_member(self, client, org_tree, auth_header):
        res = client.delete(
            f"/api/v1/members/{org_tree.parent.id}/{org_tree.engineer.id}",
            headers=auth_header(org_tree.owner),
        )
        assert res.status_code == 200
        res = client.delete(
            f"/api/v1/members/{org_tree.parent.id}/{org_tree.manager.id}",
            headers=auth_header(org_tree.manager),
        )
        assert res.status_code == 403
