"""Role management router.

Endpoints:
    GET    /api/roles/          List roles (global, or one organization's)
    POST   /api/roles/          Create role
    GET    /api/roles/{id}      Role detail
    PATCH  /api/roles/{id}      Update role (name, description, default flag)
    DELETE /api/roles/{id}      Delete role (refused while assigned)

Routes taking a role id deny callers who hold the action nowhere before
the role is looked up. Organization-scoped roles are then checked against
the role's organization before anything is written.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.auth.deps import get_current_snapshot, require_or_deny, require_permission
from orgadmin.auth.snapshot import PermissionSnapshot
from orgadmin.database import get_db
from orgadmin.models.role import Role
from orgadmin.models.user import User
from orgadmin.schemas.common import PaginatedResponse
from orgadmin.schemas.role import RoleCreate, RoleOut, RoleUpdate
from orgadmin.services.roles import create_role, delete_role, get_role, update_role

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[RoleOut])
async def list_roles(
    organization_id: str | None = None,
    global_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("role", "view", "organization_id")),
):
    filters = []
    if organization_id:
        filters.append(Role.organization_id == organization_id)
    elif global_only:
        filters.append(Role.organization_id.is_(None))

    total = await db.scalar(select(func.count()).select_from(Role).where(*filters))
    result = await db.execute(
        select(Role).where(*filters).order_by(Role.name).limit(limit).offset(offset)
    )
    return PaginatedResponse[RoleOut](
        items=[RoleOut.model_validate(r) for r in result.scalars().all()],
        total=total or 0,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=RoleOut, status_code=201)
async def create_role_endpoint(
    body: RoleCreate,
    db: AsyncSession = Depends(get_db),
    snapshot: PermissionSnapshot = Depends(get_current_snapshot),
):
    """Create a role. With is_default set, it replaces the scope's current default."""
    require_or_deny(snapshot, "role", "create", body.organization_id)
    role = await create_role(db, **body.model_dump())
    return RoleOut.model_validate(role)


@router.get("/{role_id}", response_model=RoleOut)
async def get_role_endpoint(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    snapshot: PermissionSnapshot = Depends(get_current_snapshot),
):
    require_or_deny(snapshot, "role", "view")
    role = await get_role(db, role_id)
    require_or_deny(snapshot, "role", "view", role.organization_id)
    return RoleOut.model_validate(role)


@router.patch("/{role_id}", response_model=RoleOut)
async def update_role_endpoint(
    role_id: str,
    body: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    snapshot: PermissionSnapshot = Depends(get_current_snapshot),
):
    require_or_deny(snapshot, "role", "edit")
    role = await get_role(db, role_id)
    require_or_deny(snapshot, "role", "edit", role.organization_id)
    changes = {
        k: v
        for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k == "description"
    }
    role = await update_role(db, role, changes)
    return RoleOut.model_validate(role)


@router.delete("/{role_id}", status_code=204)
async def delete_role_endpoint(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    snapshot: PermissionSnapshot = Depends(get_current_snapshot),
):
    require_or_deny(snapshot, "role", "delete")
    role = await get_role(db, role_id)
    require_or_deny(snapshot, "role", "delete", role.organization_id)
    await delete_role(db, role)
