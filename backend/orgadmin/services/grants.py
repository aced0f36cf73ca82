"""Grant write paths and the resource/action delete guards.

A grant row and all of its action links are added in one flush, so no
reader ever sees a grant without actions.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orgadmin.auth.permissions import RESERVED_ACTION_SLUGS, RESERVED_RESOURCE_SLUGS
from orgadmin.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    ResourceNotFoundError,
)
from orgadmin.models.organization import Organization
from orgadmin.models.permission import (
    Action,
    Permission,
    PermissionAction,
    PermissionTarget,
    Resource,
)
from orgadmin.models.role import Role
from orgadmin.models.user import User

logger = logging.getLogger(__name__)

_TARGET_MODELS = {
    PermissionTarget.USER: (User, "User"),
    PermissionTarget.ROLE: (Role, "Role"),
    PermissionTarget.ORGANIZATION: (Organization, "Organization"),
}


def grant_query():
    return select(Permission).options(
        selectinload(Permission.resource),
        selectinload(Permission.actions).selectinload(PermissionAction.action),
    ).execution_options(populate_existing=True)


async def get_grant(db: AsyncSession, permission_id: str) -> Permission:
    result = await db.execute(grant_query().where(Permission.id == permission_id))
    permission = result.scalar_one_or_none()
    if not permission:
        raise ResourceNotFoundError("Permission", permission_id)
    return permission


async def _load_resource(db: AsyncSession, resource_id: str) -> Resource:
    resource = await db.get(Resource, resource_id)
    if not resource:
        raise ResourceNotFoundError("Resource", resource_id)
    return resource


async def _load_actions(db: AsyncSession, action_ids: list[str]) -> list[Action]:
    result = await db.execute(select(Action).where(Action.id.in_(action_ids)))
    actions = list(result.scalars().all())
    missing = set(action_ids) - {a.id for a in actions}
    if missing:
        raise ResourceNotFoundError("Action", ", ".join(sorted(missing)))
    return actions


async def create_grant(
    db: AsyncSession,
    *,
    target: PermissionTarget,
    target_id: str,
    resource_id: str,
    action_ids: list[str],
) -> Permission:
    model, label = _TARGET_MODELS[target]
    if not await db.get(model, target_id):
        raise ResourceNotFoundError(label, target_id)

    await _load_resource(db, resource_id)
    actions = await _load_actions(db, action_ids)

    permission = Permission(
        target=target,
        resource_id=resource_id,
        user_id=target_id if target == PermissionTarget.USER else None,
        role_id=target_id if target == PermissionTarget.ROLE else None,
        organization_id=target_id if target == PermissionTarget.ORGANIZATION else None,
    )
    permission.actions = [PermissionAction(action=a) for a in actions]
    db.add(permission)
    await db.flush()
    permission_id = permission.id
    db.expire(permission)
    return await get_grant(db, permission_id)


async def update_grant(
    db: AsyncSession,
    permission: Permission,
    *,
    resource_id: str | None = None,
    action_ids: list[str] | None = None,
) -> Permission:
    if resource_id is not None:
        await _load_resource(db, resource_id)
        permission.resource_id = resource_id
    if action_ids is not None:
        actions = await _load_actions(db, action_ids)
        kept = {pa.action_id: pa for pa in permission.actions}
        permission.actions = [
            kept.get(a.id) or PermissionAction(action_id=a.id) for a in actions
        ]
    await db.flush()
    permission_id = permission.id
    db.expire(permission)
    return await get_grant(db, permission_id)


# ── Resource / action guards ────────────────────────────────

async def ensure_unique_slug(
    db: AsyncSession, model, slug: str, exclude_id: str | None = None
) -> None:
    stmt = select(model.id).where(model.slug == slug)
    if exclude_id:
        stmt = stmt.where(model.id != exclude_id)
    if (await db.execute(stmt)).first():
        raise ConflictError(f"{model.__name__} slug '{slug}' already exists")


def ensure_not_reserved(record: Resource | Action) -> None:
    reserved = RESERVED_RESOURCE_SLUGS if isinstance(record, Resource) else RESERVED_ACTION_SLUGS
    if record.slug in reserved:
        raise BusinessLogicError(
            f"'{record.slug}' is reserved and cannot be changed",
            error_code="RESERVED_SLUG",
        )


async def delete_resource(db: AsyncSession, resource: Resource) -> None:
    ensure_not_reserved(resource)
    in_use = await db.scalar(
        select(func.count()).select_from(Permission).where(Permission.resource_id == resource.id)
    )
    if in_use:
        raise BusinessLogicError(
            "Resource is referenced by permissions and cannot be deleted",
            error_code="RESOURCE_IN_USE",
        )
    await db.delete(resource)
    await db.flush()
    logger.info("Deleted resource %s", resource.slug)


async def delete_action(db: AsyncSession, action: Action) -> None:
    ensure_not_reserved(action)
    in_use = await db.scalar(
        select(func.count())
        .select_from(PermissionAction)
        .where(PermissionAction.action_id == action.id)
    )
    if in_use:
        raise BusinessLogicError(
            "Action is referenced by permissions and cannot be deleted",
            error_code="ACTION_IN_USE",
        )
    await db.delete(action)
    await db.flush()
    logger.info("Deleted action %s", action.slug)
