"""
Sub-organization lifecycle — service rules and HTTP layer.
"""

import pytest

from siteledger.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from siteledger.models import db
from siteledger.models.auth import Organization
from siteledger.models.project import Project
from siteledger.services import organization_service as svc
from siteledger.services.permission_service import build_access_context


class TestSlug:
    def test_slugify(self):
        assert svc.slugify("Acme North & Co.") == "acme-north-co-"

    def test_slug_uses_unix_seconds(self):
        assert svc.generate_slug("Site B", now=1700000000) == "site-b-1700000000"

    def test_slug_made_unique(self, org_tree):
        db.session.add(Organization(name="x", slug="site-b-1700000000"))
        db.session.flush()
        assert svc.generate_slug("Site B", now=1700000000) == "site-b-1700000000-2"


class TestSubOrganizationService:
    def test_owner_creates_child(self, org_tree):
        ctx = build_access_context(org_tree.owner.id)
        org = svc.create_sub_organization(ctx, "  Acme South ")
        assert org.name == "Acme South"
        assert org.parent_organization_id == org_tree.parent.id
        assert org.slug.startswith("acme-south-")

    @pytest.mark.parametrize("who", ["manager", "engineer", "sub_owner"])
    def test_others_cannot_create(self, org_tree, who):
        ctx = build_access_context(getattr(org_tree, who).id)
        with pytest.raises(PermissionDeniedError):
            svc.create_sub_organization(ctx, "Nope")

    def test_name_required(self, org_tree):
        ctx = build_access_context(org_tree.owner.id)
        with pytest.raises(ValidationError):
            svc.create_sub_organization(ctx, "   ")

    def test_list_children_counts(self, org_tree, make_project):
        make_project(org_tree.sub, "North Tower")
        children = svc.list_child_organizations(org_tree.parent.id)
        assert len(children) == 1
        assert children[0]["id"] == org_tree.sub.id
        assert children[0]["member_count"] == 1
        assert children[0]["project_count"] == 1

    def test_parent_owner_deletes_child_with_cascade(self, org_tree, make_project):
        project = make_project(org_tree.sub, "North Tower")
        project_id, sub_id = project.id, org_tree.sub.id
        db.session.commit()

        svc.delete_sub_organization(build_access_context(org_tree.owner.id), sub_id)
        db.session.commit()
        db.session.expire_all()

        assert db.session.get(Organization, sub_id) is None
        assert db.session.get(Project, project_id) is None

    def test_sub_org_member_cannot_delete_own_org(self, org_tree):
        ctx = build_access_context(org_tree.sub_owner.id)
        with pytest.raises(PermissionDeniedError):
            svc.delete_sub_organization(ctx, org_tree.sub.id)

    def test_invisible_org_is_not_found(self, org_tree):
        ctx = build_access_context(org_tree.owner.id)
        with pytest.raises(NotFoundError):
            svc.delete_sub_organization(ctx, org_tree.other.id)

    def test_manager_cannot_delete_child(self, org_tree):
        ctx = build_access_context(org_tree.manager.id)
        # child is not in the manager's accessible set
        with pytest.raises(NotFoundError):
            svc.delete_sub_organization(ctx, org_tree.sub.id)

    def test_cannot_delete_own_top_level(self, org_tree):
        ctx = build_access_context(org_tree.owner.id)
        with pytest.raises(ValidationError):
            svc.delete_sub_organization(ctx, org_tree.parent.id)


class TestOrganizationAPI:
    def test_accessible_requires_auth(self, client):
        res = client.get("/api/v1/organizations/accessible")
        assert res.status_code == 401

    def test_accessible_for_owner(self, client, org_tree, auth_header):
        res = client.get("/api/v1/organizations/accessible", headers=auth_header(org_tree.owner))
        assert res.status_code == 200
        ids = [o["id"] for o in res.get_json()["items"]]
        assert ids == [org_tree.parent.id, org_tree.sub.id]

    def test_create_and_delete(self, client, org_tree, auth_header):
        headers = auth_header(org_tree.owner)
        res = client.post(
            "/api/v1/organizations/sub-organizations", json={"name": "Acme East"}, headers=headers,
        )
        assert res.status_code == 201
        new_id = res.get_json()["id"]

        res = client.get("/api/v1/organizations/sub-organizations", headers=headers)
        body = res.get_json()
        assert body["can_manage"] is True
        assert {o["id"] for o in body["items"]} == {org_tree.sub.id, new_id}

        res = client.delete(f"/api/v1/organizations/sub-organizations/{new_id}", headers=headers)
        assert res.status_code == 200
        assert db.session.get(Organization, new_id) is None

    def test_engineer_create_forbidden(self, client, org_tree, auth_header):
        res = client.post(
            "/api/v1/organizations/sub-organizations",
            json={"name": "Rogue"}, headers=auth_header(org_tree.engineer),
        )
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_sub_member_delete_forbidden(self, client, org_tree, auth_header):
        res = client.delete(
            f"/api/v1/organizations/sub-organizations/{org_tree.sub.id}",
            headers=auth_header(org_tree.sub_owner),
        )
        assert res.status_code == 403

    def test_delete_foreign_org_not_found(self, client, org_tree, auth_header):
        res = client.delete(
            f"/api/v1/organizations/sub-organizations/{org_tree.other.id}",
            headers=auth_header(org_tree.owner),
        )
        assert res.status_code == 404
