"""User management router.

Endpoints:
    GET    /api/users/          List users (search, status filter, paging)
    POST   /api/users/          Create user
    GET    /api/users/{id}      User detail
    PATCH  /api/users/{id}      Update user (profile, status, global roles)
    DELETE /api/users/{id}      Delete user
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orgadmin.auth.deps import require_permission
from orgadmin.database import get_db
from orgadmin.models.user import User, UserRole, UserStatus
from orgadmin.schemas.common import PaginatedResponse
from orgadmin.schemas.user import UserCreate, UserOut, UserUpdate
from orgadmin.services.users import create_user, delete_user, load_user, update_user, user_out

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[UserOut])
async def list_users(
    search: str | None = Query(None, max_length=255),
    status: UserStatus | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("user", "view")),
):
    filters = []
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            or_(
                func.lower(User.email).like(pattern),
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
            )
        )
    if status:
        filters.append(User.status == status)

    total = await db.scalar(select(func.count()).select_from(User).where(*filters))
    result = await db.execute(
        select(User)
        .options(selectinload(User.user_roles).selectinload(UserRole.role))
        .where(*filters)
        .order_by(User.email)
        .limit(limit)
        .offset(offset)
        .execution_options(populate_existing=True)
    )
    return PaginatedResponse[UserOut](
        items=[user_out(u) for u in result.scalars().all()],
        total=total or 0,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=UserOut, status_code=201)
async def create_user_endpoint(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("user", "create")),
):
    """Create a user. Without role_ids the global default role is assigned."""
    fields = body.model_dump(exclude={"email", "password", "role_ids"})
    user = await create_user(
        db, email=body.email, password=body.password, role_ids=body.role_ids, **fields
    )
    return user_out(user)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("user", "view")),
):
    return user_out(await load_user(db, user_id))


@router.patch("/{user_id}", response_model=UserOut)
async def update_user_endpoint(
    user_id: str,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("user", "edit")),
):
    """Partial update. Deactivation, password and global role changes end
    the user's current sessions."""
    user = await load_user(db, user_id)
    user = await update_user(db, user, body.model_dump(exclude_unset=True))
    return user_out(user)


@router.delete("/{user_id}", status_code=204)
async def delete_user_endpoint(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("user", "delete")),
):
    user = await load_user(db, user_id)
    await delete_user(db, user, current_user)
