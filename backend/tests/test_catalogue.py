"""Tests for the resource/action catalogue and grant management."""

import pytest

from orgadmin.models.permission import PermissionTarget


@pytest.mark.admin
@pytest.mark.asyncio
class TestCatalogue:

    async def test_create_resource_normalises_slug(self, client, admin_headers):
        response = await client.post(
            "/api/resources/", headers=admin_headers, json={"name": "Reports", "slug": "Reports"}
        )
        assert response.status_code == 201
        assert response.json()["slug"] == "reports"

    @pytest.mark.parametrize("path", ["/api/resources/", "/api/actions/"])
    async def test_wildcard_slug_cannot_be_created(self, client, admin_headers, path):
        response = await client.post(path, headers=admin_headers, json={"name": "All", "slug": "*"})
        assert response.status_code == 422

    async def test_duplicate_action_slug(self, client, admin_headers, factory):
        await factory.action("export")
        response = await client.post(
            "/api/actions/", headers=admin_headers, json={"name": "Export", "slug": "export"}
        )
        assert response.status_code == 409

    async def test_reserved_entries_are_immutable(self, client, admin_headers, factory):
        wildcard = await factory.resource("*")
        manage = await factory.action("manage")
        wildcard_id, manage_id = wildcard.id, manage.id

        response = await client.patch(
            f"/api/resources/{wildcard_id}", headers=admin_headers, json={"name": "Everything"}
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "RESERVED_SLUG"

        response = await client.delete(f"/api/actions/{manage_id}", headers=admin_headers)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "RESERVED_SLUG"

    async def test_granted_resource_cannot_be_deleted(self, client, admin_headers, factory, admin_user):
        await factory.grant("report", ["view"], user=admin_user)
        resource = await factory.resource("report")
        action = await factory.action("view")
        resource_id, action_id = resource.id, action.id

        response = await client.delete(f"/api/resources/{resource_id}", headers=admin_headers)
        assert response.json()["error"]["code"] == "RESOURCE_IN_USE"

        response = await client.delete(f"/api/actions/{action_id}", headers=admin_headers)
        assert response.json()["error"]["code"] == "ACTION_IN_USE"

    async def test_unused_resource_is_deleted(self, client, admin_headers, factory):
        resource = await factory.resource("scratch")
        resource_id = resource.id

        response = await client.delete(f"/api/resources/{resource_id}", headers=admin_headers)
        assert response.status_code == 204

        response = await client.get(f"/api/resources/{resource_id}", headers=admin_headers)
        assert response.status_code == 404


@pytest.mark.admin
@pytest.mark.asyncio
class TestGrants:

    async def test_create_grant_with_actions(self, client, admin_headers, factory):
        role = await factory.role("Analyst")
        resource = await factory.resource("report")
        view = await factory.action("view")
        export = await factory.action("export")

        response = await client.post(
            "/api/permissions/",
            headers=admin_headers,
            json={
                "target": PermissionTarget.ROLE.value,
                "role_id": role.id,
                "resource_id": resource.id,
                "action_ids": [view.id, export.id, view.id],
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["target"] == "ROLE"
        assert data["role_id"] == role.id
        assert data["resource_slug"] == "report"
        assert data["action_slugs"] == ["export", "view"]

    @pytest.mark.parametrize(
        "target_fields",
        [
            {},
            {"user_id": "u1"},
            {"role_id": "r1", "organization_id": "o1"},
        ],
    )
    async def test_target_must_match_single_id(self, client, admin_headers, target_fields):
        response = await client.post(
            "/api/permissions/",
            headers=admin_headers,
            json={
                "target": "ROLE",
                "resource_id": "res",
                "action_ids": ["act"],
                **target_fields,
            },
        )
        assert response.status_code == 422

    async def test_empty_action_list_rejected(self, client, admin_headers, admin_user):
        response = await client.post(
            "/api/permissions/",
            headers=admin_headers,
            json={
                "target": "USER",
                "user_id": admin_user.id,
                "resource_id": "res",
                "action_ids": [],
            },
        )
        assert response.status_code == 422

    async def test_unknown_target(self, client, admin_headers, factory):
        resource = await factory.resource("report")
        view = await factory.action("view")
        response = await client.post(
            "/api/permissions/",
            headers=admin_headers,
            json={
                "target": "ORGANIZATION",
                "organization_id": "missing",
                "resource_id": resource.id,
                "action_ids": [view.id],
            },
        )
        assert response.status_code == 404

    async def test_replace_actions(self, client, admin_headers, factory, admin_user):
        grant = await factory.grant("report", ["view", "export"], user=admin_user)
        edit = await factory.action("edit")
        view = await factory.action("view")
        grant_id, edit_id, view_id = grant.id, edit.id, view.id

        response = await client.patch(
            f"/api/permissions/{grant_id}",
            headers=admin_headers,
            json={"action_ids": [view_id, edit_id]},
        )

        assert response.status_code == 200
        assert response.json()["action_slugs"] == ["edit", "view"]

    async def test_grant_reaches_session_on_refresh(self, client, admin_headers, factory):
        user = await factory.user(email="analyst@example.com")
        user_id = user.id
        response = await client.post(
            "/api/auth/login",
            json={"email": "analyst@example.com", "password": "testpassword123"},
        )
        tokens = response.json()
        assert tokens["permissions"]["direct_grants"] == []

        resource = await factory.resource("report")
        view = await factory.action("view")
        response = await client.post(
            "/api/permissions/",
            headers=admin_headers,
            json={
                "target": "USER",
                "user_id": user_id,
                "resource_id": resource.id,
                "action_ids": [view.id],
            },
        )
        assert response.status_code == 201

        response = await client.post(
            "/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        grants = response.json()["permissions"]["direct_grants"]
        assert [(g["resource_slug"], g["action_slugs"]) for g in grants] == [("report", ["view"])]

    async def test_list_filters_by_target(self, client, admin_headers, factory, admin_user):
        role = await factory.role("Analyst")
        await factory.grant("report", ["view"], role=role)
        await factory.grant("invoice", ["view"], user=admin_user)
        role_id = role.id

        response = await client.get(
            "/api/permissions/", headers=admin_headers, params={"target_id": role_id}
        )

        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["resource_slug"] == "report"
