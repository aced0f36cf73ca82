"""Permission (grant) management router.

Endpoints:
    GET    /api/permissions/          List grants (filter by target / resource)
    POST   /api/permissions/          Create grant with its actions
    GET    /api/permissions/{id}      Grant detail
    PATCH  /api/permissions/{id}      Change resource or actions
    DELETE /api/permissions/{id}      Delete grant

Changes reach a principal's session at their next login or refresh.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.auth.deps import require_permission
from orgadmin.database import get_db
from orgadmin.models.permission import Permission, PermissionTarget
from orgadmin.models.user import User
from orgadmin.schemas.common import PaginatedResponse
from orgadmin.schemas.permission import PermissionCreate, PermissionOut, PermissionUpdate
from orgadmin.services.grants import create_grant, get_grant, grant_query, update_grant

router = APIRouter()


def permission_out(permission: Permission) -> PermissionOut:
    links = sorted(permission.actions, key=lambda pa: pa.action.slug)
    return PermissionOut(
        id=permission.id,
        target=permission.target,
        user_id=permission.user_id,
        role_id=permission.role_id,
        organization_id=permission.organization_id,
        resource_id=permission.resource_id,
        resource_slug=permission.resource.slug,
        action_ids=[pa.action_id for pa in links],
        action_slugs=[pa.action.slug for pa in links],
        created_at=permission.created_at,
    )


@router.get("/", response_model=PaginatedResponse[PermissionOut])
async def list_permissions(
    target: PermissionTarget | None = None,
    target_id: str | None = None,
    resource_id: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("permission", "view")),
):
    filters = []
    if target:
        filters.append(Permission.target == target)
    if target_id:
        filters.append(
            (Permission.user_id == target_id)
            | (Permission.role_id == target_id)
            | (Permission.organization_id == target_id)
        )
    if resource_id:
        filters.append(Permission.resource_id == resource_id)

    total = await db.scalar(select(func.count()).select_from(Permission).where(*filters))
    result = await db.execute(
        grant_query().where(*filters).order_by(Permission.created_at).limit(limit).offset(offset)
    )
    return PaginatedResponse[PermissionOut](
        items=[permission_out(p) for p in result.scalars().all()],
        total=total or 0,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=PermissionOut, status_code=201)
async def create_permission(
    body: PermissionCreate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("permission", "create")),
):
    permission = await create_grant(
        db,
        target=body.target,
        target_id=body.target_id,
        resource_id=body.resource_id,
        action_ids=body.action_ids,
    )
    return permission_out(permission)


@router.get("/{permission_id}", response_model=PermissionOut)
async def get_permission(
    permission_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("permission", "view")),
):
    return permission_out(await get_grant(db, permission_id))


@router.patch("/{permission_id}", response_model=PermissionOut)
async def update_permission(
    permission_id: str,
    body: PermissionUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("permission", "edit")),
):
    permission = await get_grant(db, permission_id)
    permission = await update_grant(
        db, permission, resource_id=body.resource_id, action_ids=body.action_ids
    )
    return permission_out(permission)


@router.delete("/{permission_id}", status_code=204)
async def delete_permission(
    permission_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("permission", "delete")),
):
    permission = await get_grant(db, permission_id)
    await db.delete(permission)
    await db.flush()
