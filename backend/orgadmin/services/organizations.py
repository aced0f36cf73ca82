"""Organization hierarchy and membership rules.

- An organization can never become its own ancestor.
- Only the owner may delete an organization, and only once it has no
  child organizations.
- New members receive the organization's default role; a member's role
  must belong to the same organization.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from orgadmin.models.organization import Organization, OrganizationMember
from orgadmin.models.role import Role
from orgadmin.models.user import User
from orgadmin.services.roles import get_default_role

logger = logging.getLogger(__name__)


async def get_organization(db: AsyncSession, organization_id: str) -> Organization:
    org = await db.get(Organization, organization_id)
    if not org:
        raise ResourceNotFoundError("Organization", organization_id)
    return org


async def ensure_unique_slug(
    db: AsyncSession, slug: str, exclude_id: str | None = None
) -> None:
    stmt = select(Organization.id).where(Organization.slug == slug)
    if exclude_id:
        stmt = stmt.where(Organization.id != exclude_id)
    if (await db.execute(stmt)).first():
        raise ConflictError(f"Organization slug '{slug}' already exists")


async def descendant_ids(db: AsyncSession, organization_id: str) -> set[str]:
    """Every organization below `organization_id`, at any depth."""
    result = await db.execute(select(Organization.id, Organization.parent_id))
    children: dict[str, list[str]] = {}
    for org_id, parent_id in result.all():
        if parent_id:
            children.setdefault(parent_id, []).append(org_id)

    found: set[str] = set()
    stack = list(children.get(organization_id, []))
    while stack:
        current = stack.pop()
        if current in found:
            continue
        found.add(current)
        stack.extend(children.get(current, []))
    return found


async def validate_parent(
    db: AsyncSession, organization_id: str | None, parent_id: str | None
) -> None:
    """Reject a parent that does not exist or would create a cycle."""
    if parent_id is None:
        return
    await get_organization(db, parent_id)
    if organization_id is None:
        return
    if parent_id == organization_id:
        raise BusinessLogicError(
            "An organization cannot be its own parent", error_code="ORGANIZATION_CYCLE"
        )
    if parent_id in await descendant_ids(db, organization_id):
        raise BusinessLogicError(
            "An organization cannot be moved below one of its descendants",
            error_code="ORGANIZATION_CYCLE",
        )


async def available_parents(
    db: AsyncSession, organization_id: str | None = None
) -> list[Organization]:
    """Organizations that may be chosen as parent of `organization_id`.

    With no organization id (a new organization) every organization is
    a candidate.
    """
    excluded: set[str] = set()
    if organization_id:
        excluded = await descendant_ids(db, organization_id)
        excluded.add(organization_id)

    stmt = select(Organization).order_by(Organization.name)
    if excluded:
        stmt = stmt.where(Organization.id.not_in(excluded))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def delete_organization(db: AsyncSession, org: Organization, user: User) -> None:
    if org.owner_id != user.id:
        logger.warning(
            "User %s attempted to delete organization %s they do not own", user.id, org.id
        )
        raise PermissionDeniedError()

    child_count = await db.scalar(
        select(func.count()).select_from(Organization).where(Organization.parent_id == org.id)
    )
    if child_count:
        raise BusinessLogicError(
            "Organization has child organizations; move or delete them first",
            error_code="ORGANIZATION_HAS_CHILDREN",
        )

    await db.delete(org)
    await db.flush()
    logger.info("Deleted organization %s (%s)", org.id, org.slug)


# ── Members ─────────────────────────────────────────────────

async def add_members(
    db: AsyncSession, org: Organization, user_ids: list[str]
) -> list[OrganizationMember]:
    """Add users as members; already-present users are skipped.

    Returns only the newly created memberships.
    """
    wanted = list(dict.fromkeys(user_ids))
    found = await db.execute(select(User.id).where(User.id.in_(wanted)))
    known = set(found.scalars().all())
    missing = [uid for uid in wanted if uid not in known]
    if missing:
        raise ResourceNotFoundError("User", ", ".join(missing))

    existing = await db.execute(
        select(OrganizationMember.user_id).where(
            OrganizationMember.organization_id == org.id,
            OrganizationMember.user_id.in_(wanted),
        )
    )
    already = set(existing.scalars().all())

    default_role = await get_default_role(db, org.id)
    created = []
    for user_id in wanted:
        if user_id in already:
            continue
        member = OrganizationMember(
            organization_id=org.id,
            user_id=user_id,
            role_id=default_role.id if default_role else None,
        )
        db.add(member)
        created.append(member)

    await db.flush()
    return created


async def get_member(
    db: AsyncSession, organization_id: str, user_id: str
) -> OrganizationMember:
    result = await db.execute(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        raise ResourceNotFoundError("Member", user_id)
    return member


async def set_member_role(
    db: AsyncSession, member: OrganizationMember, role_id: str | None
) -> OrganizationMember:
    if role_id is not None:
        role = await db.get(Role, role_id)
        if not role:
            raise ResourceNotFoundError("Role", role_id)
        if role.organization_id != member.organization_id:
            raise BusinessLogicError(
                "Role does not belong to this organization",
                error_code="ROLE_SCOPE_MISMATCH",
            )
    member.role_id = role_id
    await db.flush()
    return member
