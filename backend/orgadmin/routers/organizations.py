"""Organization management router.

Endpoints:
    GET    /api/organizations/                              List organizations
    POST   /api/organizations/                              Create (caller becomes owner)
    GET    /api/organizations/available-parents             Valid parent candidates
    GET    /api/organizations/{id}                          Detail
    PATCH  /api/organizations/{id}                          Update (cycle-checked)
    DELETE /api/organizations/{id}                          Delete (owner only, no children)
    GET    /api/organizations/{id}/members                  List members
    POST   /api/organizations/{id}/members                  Add members (default role)
    PATCH  /api/organizations/{id}/members/{user_id}        Change a member's role
    DELETE /api/organizations/{id}/members/{user_id}        Remove a member

Routes carrying an organization id are guarded in that organization's
scope.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.auth.deps import require_permission
from orgadmin.database import get_db
from orgadmin.models.organization import Organization, OrganizationMember, OrganizationStatus
from orgadmin.models.user import User
from orgadmin.schemas.common import PaginatedResponse
from orgadmin.schemas.organization import (
    MemberAdd,
    MemberOut,
    MemberUpdate,
    OrganizationCreate,
    OrganizationOut,
    OrganizationParentOption,
    OrganizationUpdate,
)
from orgadmin.services.organizations import (
    add_members,
    available_parents,
    delete_organization,
    ensure_unique_slug,
    get_member,
    get_organization,
    set_member_role,
    validate_parent,
)

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[OrganizationOut])
async def list_organizations(
    search: str | None = Query(None, max_length=255),
    status: OrganizationStatus | None = None,
    parent_id: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("organization", "view")),
):
    filters = []
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            or_(func.lower(Organization.name).like(pattern), Organization.slug.like(pattern))
        )
    if status:
        filters.append(Organization.status == status)
    if parent_id:
        filters.append(Organization.parent_id == parent_id)

    total = await db.scalar(select(func.count()).select_from(Organization).where(*filters))
    result = await db.execute(
        select(Organization).where(*filters).order_by(Organization.name).limit(limit).offset(offset)
    )
    return PaginatedResponse[OrganizationOut](
        items=[OrganizationOut.model_validate(o) for o in result.scalars().all()],
        total=total or 0,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=OrganizationOut, status_code=201)
async def create_organization(
    body: OrganizationCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("organization", "create")),
):
    """Create an organization owned by the caller."""
    await ensure_unique_slug(db, body.slug)
    await validate_parent(db, None, body.parent_id)

    org = Organization(**body.model_dump(), owner_id=user.id)
    db.add(org)
    await db.flush()
    return OrganizationOut.model_validate(org)


@router.get("/available-parents", response_model=list[OrganizationParentOption])
async def list_available_parents(
    organization_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("organization", "view")),
):
    """Organizations that may become the parent of `organization_id`
    (the organization itself and its descendants are excluded)."""
    if organization_id:
        await get_organization(db, organization_id)
    orgs = await available_parents(db, organization_id)
    return [OrganizationParentOption.model_validate(o) for o in orgs]


@router.get("/{organization_id}", response_model=OrganizationOut)
async def get_organization_endpoint(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("organization", "view", "organization_id")),
):
    return OrganizationOut.model_validate(await get_organization(db, organization_id))


@router.patch("/{organization_id}", response_model=OrganizationOut)
async def update_organization(
    organization_id: str,
    body: OrganizationUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("organization", "edit", "organization_id")),
):
    org = await get_organization(db, organization_id)
    updates = body.model_dump(exclude_unset=True)

    if updates.get("slug") and updates["slug"] != org.slug:
        await ensure_unique_slug(db, updates["slug"], exclude_id=org.id)
    if "parent_id" in updates:
        await validate_parent(db, org.id, updates["parent_id"])

    for key, value in updates.items():
        if key in ("name", "slug", "status") and value is None:
            continue
        setattr(org, key, value)
    await db.flush()
    return OrganizationOut.model_validate(org)


@router.delete("/{organization_id}", status_code=204)
async def delete_organization_endpoint(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("organization", "delete", "organization_id")),
):
    """Delete an organization with its members, roles and grants.

    Only the owner may delete; child organizations must be gone first.
    """
    org = await get_organization(db, organization_id)
    await delete_organization(db, org, user)


# ── Members ─────────────────────────────────────────────────

@router.get("/{organization_id}/members", response_model=list[MemberOut])
async def list_members(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("organization", "view", "organization_id")),
):
    await get_organization(db, organization_id)
    result = await db.execute(
        select(OrganizationMember)
        .where(OrganizationMember.organization_id == organization_id)
        .order_by(OrganizationMember.created_at)
    )
    return [MemberOut.model_validate(m) for m in result.scalars().all()]


@router.post("/{organization_id}/members", response_model=list[MemberOut], status_code=201)
async def add_members_endpoint(
    organization_id: str,
    body: MemberAdd,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("organization", "edit", "organization_id")),
):
    """Add users; returns only the memberships that were created."""
    org = await get_organization(db, organization_id)
    created = await add_members(db, org, body.user_ids)
    return [MemberOut.model_validate(m) for m in created]


@router.patch("/{organization_id}/members/{user_id}", response_model=MemberOut)
async def update_member(
    organization_id: str,
    user_id: str,
    body: MemberUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("organization", "edit", "organization_id")),
):
    member = await get_member(db, organization_id, user_id)
    member = await set_member_role(db, member, body.role_id)
    return MemberOut.model_validate(member)


@router.delete("/{organization_id}/members/{user_id}", status_code=204)
async def remove_member(
    organization_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("organization", "edit", "organization_id")),
):
    member = await get_member(db, organization_id, user_id)
    await db.delete(member)
    await db.flush()
