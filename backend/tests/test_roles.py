"""Tests for role write paths: scope-unique names, single default per
scope, in-use delete guard."""

import pytest
from sqlalchemy import select

from orgadmin.models.role import Role


async def defaults_in_scope(db_session, organization_id=None) -> list[str]:
    scope = (
        Role.organization_id.is_(None)
        if organization_id is None
        else Role.organization_id == organization_id
    )
    result = await db_session.execute(
        select(Role.name).where(scope, Role.is_default.is_(True))
    )
    return list(result.scalars().all())


@pytest.mark.admin
@pytest.mark.asyncio
class TestRoleNames:

    async def test_create_global_role(self, client, admin_headers):
        response = await client.post(
            "/api/roles/", headers=admin_headers, json={"name": "Auditor"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["organization_id"] is None
        assert data["is_system_admin"] is False

    async def test_duplicate_name_in_same_scope(self, client, admin_headers, factory):
        await factory.role("Auditor")
        response = await client.post(
            "/api/roles/", headers=admin_headers, json={"name": "Auditor"}
        )
        assert response.status_code == 409

    async def test_same_name_in_different_scopes(self, client, admin_headers, factory, admin_user):
        org = await factory.organization(admin_user)
        await factory.role("Auditor")
        org_id = org.id

        response = await client.post(
            "/api/roles/",
            headers=admin_headers,
            json={"name": "Auditor", "organization_id": org_id},
        )
        assert response.status_code == 201
        assert response.json()["organization_id"] == org_id

    async def test_rename_into_existing_name(self, client, admin_headers, factory):
        await factory.role("Auditor")
        other = await factory.role("Reviewer")
        response = await client.patch(
            f"/api/roles/{other.id}", headers=admin_headers, json={"name": "Auditor"}
        )
        assert response.status_code == 409

    async def test_unknown_organization(self, client, admin_headers):
        response = await client.post(
            "/api/roles/",
            headers=admin_headers,
            json={"name": "Ghost", "organization_id": "no-such-org"},
        )
        assert response.status_code == 404


@pytest.mark.admin
@pytest.mark.asyncio
class TestDefaultRole:

    async def test_create_default_replaces_previous(self, client, admin_headers, factory, db_session):
        await factory.role("Old default", is_default=True)

        response = await client.post(
            "/api/roles/",
            headers=admin_headers,
            json={"name": "New default", "is_default": True},
        )

        assert response.status_code == 201
        assert await defaults_in_scope(db_session) == ["New default"]

    async def test_update_flips_default(self, client, admin_headers, factory, db_session):
        await factory.role("First", is_default=True)
        second = await factory.role("Second")

        response = await client.patch(
            f"/api/roles/{second.id}", headers=admin_headers, json={"is_default": True}
        )

        assert response.status_code == 200
        assert response.json()["is_default"] is True
        assert await defaults_in_scope(db_session) == ["Second"]

    async def test_default_flip_is_per_scope(self, client, admin_headers, factory, admin_user, db_session):
        org = await factory.organization(admin_user)
        await factory.role("Global default", is_default=True)
        await factory.role("Org default", organization=org, is_default=True)
        org_id = org.id

        response = await client.post(
            "/api/roles/",
            headers=admin_headers,
            json={"name": "New org default", "organization_id": org_id, "is_default": True},
        )

        assert response.status_code == 201
        assert await defaults_in_scope(db_session) == ["Global default"]
        assert await defaults_in_scope(db_session, org_id) == ["New org default"]

    async def test_clear_default(self, client, admin_headers, factory, db_session):
        role = await factory.role("Only", is_default=True)
        response = await client.patch(
            f"/api/roles/{role.id}", headers=admin_headers, json={"is_default": False}
        )
        assert response.status_code == 200
        assert await defaults_in_scope(db_session) == []


@pytest.mark.admin
@pytest.mark.asyncio
class TestRoleDeletion:

    async def test_delete_unused_role_removes_its_grants(self, client, admin_headers, factory, db_session):
        role = await factory.role("Temp")
        grant = await factory.grant("report", ["view"], role=role)
        role_id, grant_id = role.id, grant.id

        response = await client.delete(f"/api/roles/{role_id}", headers=admin_headers)

        assert response.status_code == 204
        assert await db_session.get(Role, role_id) is None
        response = await client.get(f"/api/permissions/{grant_id}", headers=admin_headers)
        assert response.status_code == 404

    async def test_role_assigned_to_user_cannot_be_deleted(self, client, admin_headers, factory):
        role = await factory.role("Held")
        await factory.user(roles=[role])
        role_id = role.id

        response = await client.delete(f"/api/roles/{role_id}", headers=admin_headers)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "ROLE_IN_USE"

    async def test_role_held_by_member_cannot_be_deleted(self, client, admin_headers, factory, admin_user):
        org = await factory.organization(admin_user)
        role = await factory.role("Member role", organization=org)
        await factory.member(org, admin_user, role)
        role_id = role.id

        response = await client.delete(f"/api/roles/{role_id}", headers=admin_headers)
        assert response.status_code == 422
