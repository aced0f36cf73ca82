"""Role write paths: scope-unique names, the single default per scope,
and the in-use delete guard.

A scope is either the global scope (organization_id IS NULL) or one
organization. Everything runs on the request session, so the default flip
commits or rolls back with the rest of the request.
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    ResourceNotFoundError,
)
from orgadmin.models.organization import Organization, OrganizationMember
from orgadmin.models.role import Role
from orgadmin.models.user import UserRole

logger = logging.getLogger(__name__)


def _scope_clause(organization_id: str | None):
    if organization_id is None:
        return Role.organization_id.is_(None)
    return Role.organization_id == organization_id


async def get_role(db: AsyncSession, role_id: str) -> Role:
    result = await db.execute(select(Role).where(Role.id == role_id))
    role = result.scalar_one_or_none()
    if not role:
        raise ResourceNotFoundError("Role", role_id)
    return role


async def ensure_unique_name(
    db: AsyncSession,
    name: str,
    organization_id: str | None,
    exclude_id: str | None = None,
) -> None:
    stmt = select(Role.id).where(_scope_clause(organization_id), Role.name == name)
    if exclude_id:
        stmt = stmt.where(Role.id != exclude_id)
    if (await db.execute(stmt)).first():
        raise ConflictError(f"Role '{name}' already exists in this scope")


async def set_default(db: AsyncSession, role: Role) -> None:
    """Make `role` the only default role of its scope."""
    await db.execute(
        update(Role)
        .where(_scope_clause(role.organization_id), Role.id != role.id)
        .values(is_default=False)
        .execution_options(synchronize_session="fetch")
    )
    role.is_default = True
    await db.flush()


async def create_role(
    db: AsyncSession,
    *,
    name: str,
    description: str | None = None,
    is_default: bool = False,
    organization_id: str | None = None,
) -> Role:
    if organization_id is not None:
        org = await db.get(Organization, organization_id)
        if not org:
            raise ResourceNotFoundError("Organization", organization_id)

    await ensure_unique_name(db, name, organization_id)

    role = Role(
        name=name,
        description=description,
        organization_id=organization_id,
        is_default=False,
    )
    db.add(role)
    await db.flush()

    if is_default:
        await set_default(db, role)
    return role


async def update_role(db: AsyncSession, role: Role, changes: dict) -> Role:
    if "name" in changes and changes["name"] != role.name:
        await ensure_unique_name(db, changes["name"], role.organization_id, exclude_id=role.id)
        role.name = changes["name"]
    if "description" in changes:
        role.description = changes["description"]

    is_default = changes.get("is_default")
    if is_default is True:
        await set_default(db, role)
    elif is_default is False:
        role.is_default = False

    await db.flush()
    return role


async def delete_role(db: AsyncSession, role: Role) -> None:
    """Delete a role nobody holds; its grants go with it."""
    assigned = await db.scalar(
        select(func.count()).select_from(UserRole).where(UserRole.role_id == role.id)
    )
    members = await db.scalar(
        select(func.count())
        .select_from(OrganizationMember)
        .where(OrganizationMember.role_id == role.id)
    )
    if assigned or members:
        raise BusinessLogicError(
            "Role is assigned to users or members and cannot be deleted",
            error_code="ROLE_IN_USE",
        )
    await db.delete(role)
    await db.flush()
    logger.info("Deleted role %s (%s)", role.id, role.name)


async def get_default_role(db: AsyncSession, organization_id: str | None) -> Role | None:
    result = await db.execute(
        select(Role).where(_scope_clause(organization_id), Role.is_default.is_(True)).limit(1)
    )
    return result.scalar_one_or_none()
