"""User write paths shared by self-registration and the admin API."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orgadmin.auth.password import hash_password
from orgadmin.auth.revocation import TokenRevocation
from orgadmin.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    ResourceNotFoundError,
)
from orgadmin.models.organization import Organization
from orgadmin.models.role import Role
from orgadmin.models.user import User, UserRole, UserStatus
from orgadmin.schemas.user import RoleBrief, UserOut
from orgadmin.services.roles import get_default_role

logger = logging.getLogger(__name__)


async def load_user(db: AsyncSession, user_id: str) -> User:
    """Load a user with its global role assignments."""
    result = await db.execute(
        select(User)
        .options(selectinload(User.user_roles).selectinload(UserRole.role))
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise ResourceNotFoundError("User", user_id)
    return user


def user_out(user: User) -> UserOut:
    out = UserOut.model_validate(user)
    out.roles = [RoleBrief.model_validate(ur.role) for ur in user.user_roles]
    return out


async def ensure_unique_email(
    db: AsyncSession, email: str, exclude_id: str | None = None
) -> None:
    stmt = select(User.id).where(User.email == email)
    if exclude_id:
        stmt = stmt.where(User.id != exclude_id)
    if (await db.execute(stmt)).first():
        raise ConflictError("Email already registered")


async def _global_roles(db: AsyncSession, role_ids: list[str]) -> list[Role]:
    wanted = list(dict.fromkeys(role_ids))
    if not wanted:
        return []
    result = await db.execute(select(Role).where(Role.id.in_(wanted)))
    roles = list(result.scalars().all())
    missing = set(wanted) - {r.id for r in roles}
    if missing:
        raise ResourceNotFoundError("Role", ", ".join(sorted(missing)))
    if any(not r.is_global for r in roles):
        raise BusinessLogicError(
            "Only global roles can be assigned to users directly",
            error_code="ROLE_SCOPE_MISMATCH",
        )
    return roles


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    role_ids: list[str] | None = None,
    **fields,
) -> User:
    """Create a user; without explicit roles the global default role applies."""
    await ensure_unique_email(db, email)

    if role_ids:
        roles = await _global_roles(db, role_ids)
    else:
        default_role = await get_default_role(db, None)
        roles = [default_role] if default_role else []

    user = User(email=email, hashed_password=hash_password(password), **fields)
    user.user_roles = [UserRole(role_id=r.id) for r in roles]
    db.add(user)
    await db.flush()
    return await load_user(db, user.id)


async def update_user(db: AsyncSession, user: User, changes: dict) -> User:
    """Apply a partial update.

    Changing status away from ACTIVE or changing global roles revokes the
    user's outstanding tokens, since their snapshots no longer hold.
    """
    revoke = False

    if "email" in changes and changes["email"] and changes["email"] != user.email:
        await ensure_unique_email(db, changes["email"], exclude_id=user.id)
        user.email = changes["email"]

    password = changes.pop("password", None)
    if password:
        user.hashed_password = hash_password(password)
        revoke = True

    role_ids = changes.pop("role_ids", None)
    if role_ids is not None:
        roles = await _global_roles(db, role_ids)
        current = {ur.role_id: ur for ur in user.user_roles}
        user.user_roles = [current.get(r.id) or UserRole(role_id=r.id) for r in roles]
        revoke = True

    for field in ("first_name", "last_name", "phone", "avatar", "email_verified"):
        if field in changes:
            setattr(user, field, changes[field])

    status = changes.get("status")
    if status is not None and status != user.status:
        user.status = status
        revoke = revoke or status != UserStatus.ACTIVE

    await db.flush()

    if revoke:
        await TokenRevocation.revoke_all_user_tokens(user.id)
        logger.info("Revoked outstanding sessions for user %s", user.id)

    return await load_user(db, user.id)


async def delete_user(db: AsyncSession, user: User, acting_user: User) -> None:
    if user.id == acting_user.id:
        raise BusinessLogicError("You cannot delete yourself", error_code="SELF_DELETE")
    owned = await db.scalar(
        select(func.count()).select_from(Organization).where(Organization.owner_id == user.id)
    )
    if owned:
        raise BusinessLogicError(
            "User owns organizations; transfer or delete them first",
            error_code="USER_OWNS_ORGANIZATIONS",
        )
    await db.delete(user)
    await db.flush()
    await TokenRevocation.revoke_all_user_tokens(user.id)
    logger.info("Deleted user %s", user.id)
