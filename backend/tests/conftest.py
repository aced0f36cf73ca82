"""Pytest configuration and fixtures for orgadmin tests.

Provides reusable fixtures for the database (in-memory SQLite), Redis
(fakeredis), the HTTP client, test data factories and auth headers.
"""

import os

# Settings are read at import time; point them at throwaway backends first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")

from typing import AsyncGenerator

import fakeredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from orgadmin.auth.jwt import create_access_token
from orgadmin.auth.password import hash_password
from orgadmin.auth.snapshot import PermissionSnapshot
from orgadmin.database import Base, get_db
from orgadmin.main import app
from orgadmin.models.organization import Organization, OrganizationMember
from orgadmin.models.permission import (
    Action,
    Permission,
    PermissionAction,
    PermissionTarget,
    Resource,
)
from orgadmin.models.role import Role
from orgadmin.models.user import User, UserRole, UserStatus
from orgadmin.services.snapshot_builder import build_snapshot
from orgadmin.utils.redis import set_redis

TEST_PASSWORD = "testpassword123"


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client sharing the test session.

    The override keeps get_db's contract: commit on success, roll back on
    error. A rollback expires loaded objects, so tests read ids up front.
    """

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Redis Fixtures ───────────────────────────────────────────────

@pytest.fixture(autouse=True)
def redis_client():
    """In-process Redis backing the token revocation list, fresh per test."""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    set_redis(client)

    yield client

    set_redis(None)


# ── Test Data Fixtures ───────────────────────────────────────────

class Factory:
    """Creates rows on the test session.

    Every method commits, so the rows survive a request that rolls back.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def user(
        self,
        email: str | None = None,
        status: UserStatus = UserStatus.ACTIVE,
        password: str = TEST_PASSWORD,
        roles: list[Role] = (),
    ) -> User:
        user = User(
            email=email or f"user{self._next()}@example.com",
            hashed_password=hash_password(password),
            first_name="Test",
            last_name="User",
            status=status,
        )
        user.user_roles = [UserRole(role_id=r.id) for r in roles]
        self.session.add(user)
        await self.session.commit()
        return user

    async def role(
        self,
        name: str | None = None,
        organization: Organization | None = None,
        is_default: bool = False,
        is_system_admin: bool = False,
    ) -> Role:
        role = Role(
            name=name or f"role-{self._next()}",
            organization_id=organization.id if organization else None,
            is_default=is_default,
            is_system_admin=is_system_admin,
        )
        self.session.add(role)
        await self.session.commit()
        return role

    async def organization(
        self,
        owner: User,
        slug: str | None = None,
        parent: Organization | None = None,
    ) -> Organization:
        slug = slug or f"org-{self._next()}"
        org = Organization(
            name=slug.replace("-", " ").title(),
            slug=slug,
            owner_id=owner.id,
            parent_id=parent.id if parent else None,
        )
        self.session.add(org)
        await self.session.commit()
        return org

    async def member(
        self, organization: Organization, user: User, role: Role | None = None
    ) -> OrganizationMember:
        member = OrganizationMember(
            organization_id=organization.id,
            user_id=user.id,
            role_id=role.id if role else None,
        )
        self.session.add(member)
        await self.session.commit()
        return member

    async def resource(self, slug: str) -> Resource:
        existing = await self.session.scalar(select(Resource).where(Resource.slug == slug))
        if existing:
            return existing
        resource = Resource(name=slug.title(), slug=slug)
        self.session.add(resource)
        await self.session.commit()
        return resource

    async def action(self, slug: str) -> Action:
        existing = await self.session.scalar(select(Action).where(Action.slug == slug))
        if existing:
            return existing
        action = Action(name=slug.title(), slug=slug)
        self.session.add(action)
        await self.session.commit()
        return action

    async def grant(
        self,
        resource_slug: str,
        action_slugs: list[str],
        *,
        user: User | None = None,
        role: Role | None = None,
        organization: Organization | None = None,
    ) -> Permission:
        if user is not None:
            target = PermissionTarget.USER
        elif role is not None:
            target = PermissionTarget.ROLE
        else:
            target = PermissionTarget.ORGANIZATION

        resource = await self.resource(resource_slug)
        actions = [await self.action(slug) for slug in action_slugs]
        permission = Permission(
            target=target,
            resource_id=resource.id,
            user_id=user.id if user else None,
            role_id=role.id if role else None,
            organization_id=organization.id if organization else None,
        )
        permission.actions = [PermissionAction(action_id=a.id) for a in actions]
        self.session.add(permission)
        await self.session.commit()
        return permission

    async def admin(self, email: str = "admin@example.com") -> User:
        role = await self.session.scalar(
            select(Role).where(Role.name == "ADMIN", Role.organization_id.is_(None))
        )
        if role is None:
            role = await self.role("ADMIN", is_system_admin=True)
        return await self.user(email=email, roles=[role])

    async def headers(self, user: User, snapshot: PermissionSnapshot | None = None) -> dict:
        """Bearer headers for `user`; the snapshot is built from the store
        unless one is supplied."""
        if snapshot is None:
            snapshot = await build_snapshot(self.session, user.id)
        token = create_access_token(user_id=user.id, snapshot=snapshot)
        return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


@pytest_asyncio.fixture
async def admin_user(factory: Factory) -> User:
    return await factory.admin()


@pytest_asyncio.fixture
async def admin_headers(factory: Factory, admin_user: User) -> dict:
    return await factory.headers(admin_user)


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "auth: Authentication endpoint tests")
    config.addinivalue_line("markers", "permissions: Evaluator and guard tests")
    config.addinivalue_line("markers", "admin: Administrative write path tests")
