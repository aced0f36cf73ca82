"""Tests for the self-service profile."""

import pytest
from sqlalchemy import select

from conftest import TEST_PASSWORD
from orgadmin.models.security_log import SecurityLog, SecurityLogStatus, SecurityLogType


async def profile_user(factory, actions=("view", "edit"), email="me@example.com"):
    user = await factory.user(email=email)
    await factory.grant("profile", list(actions), user=user)
    return user, await factory.headers(user)


@pytest.mark.auth
@pytest.mark.asyncio
class TestProfile:

    async def test_view_own_profile(self, client, factory):
        user, headers = await profile_user(factory)
        user_id = user.id

        response = await client.get("/api/profile/", headers=headers)

        assert response.status_code == 200
        assert response.json()["id"] == user_id
        assert response.json()["email"] == "me@example.com"

    async def test_profile_requires_permission(self, client, factory):
        headers = await factory.headers(await factory.user())
        assert (await client.get("/api/profile/", headers=headers)).status_code == 403

        _, view_only = await profile_user(factory, actions=("view",), email="ro@example.com")
        response = await client.patch(
            "/api/profile/", headers=view_only, json={"first_name": "Nope"}
        )
        assert response.status_code == 403

    async def test_update_name_keeps_session(self, client, factory):
        _, headers = await profile_user(factory)

        response = await client.patch(
            "/api/profile/", headers=headers, json={"first_name": "Ada", "last_name": "L"}
        )
        assert response.status_code == 200
        assert response.json()["first_name"] == "Ada"

        assert (await client.get("/api/profile/", headers=headers)).status_code == 200

    async def test_email_taken(self, client, factory):
        await factory.user(email="taken@example.com")
        _, headers = await profile_user(factory)

        response = await client.patch(
            "/api/profile/", headers=headers, json={"email": "taken@example.com"}
        )
        assert response.status_code == 409

    async def test_new_password_requires_current(self, client, factory):
        _, headers = await profile_user(factory)
        response = await client.patch(
            "/api/profile/", headers=headers, json={"new_password": "anotherpass1"}
        )
        assert response.status_code == 422

    async def test_wrong_current_password(self, client, factory, db_session):
        _, headers = await profile_user(factory)

        response = await client.patch(
            "/api/profile/",
            headers=headers,
            json={"current_password": "not-my-password", "new_password": "anotherpass1"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_CURRENT_PASSWORD"
        logs = (await db_session.execute(select(SecurityLog))).scalars().all()
        assert [(log.type, log.status) for log in logs] == [
            (SecurityLogType.PASSWORD_CHANGE, SecurityLogStatus.FAILED)
        ]

    async def test_password_change_ends_sessions(self, client, factory):
        _, headers = await profile_user(factory)

        response = await client.patch(
            "/api/profile/",
            headers=headers,
            json={"current_password": TEST_PASSWORD, "new_password": "anotherpass1"},
        )
        assert response.status_code == 200

        assert (await client.get("/api/profile/", headers=headers)).status_code == 401

        old = await client.post(
            "/api/auth/login", json={"email": "me@example.com", "password": TEST_PASSWORD}
        )
        assert old.status_code == 401
        new = await client.post(
            "/api/auth/login", json={"email": "me@example.com", "password": "anotherpass1"}
        )
        assert new.status_code == 200
