"""Resource catalogue router.

Endpoints:
    GET    /api/resources/          List resources
    POST   /api/resources/          Create resource
    GET    /api/resources/{id}      Resource detail
    PATCH  /api/resources/{id}      Rename / re-slug (not the wildcard)
    DELETE /api/resources/{id}      Delete (refused while granted)
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.auth.deps import require_permission
from orgadmin.database import get_db
from orgadmin.middleware.exceptions import ResourceNotFoundError
from orgadmin.models.permission import Resource
from orgadmin.models.user import User
from orgadmin.schemas.permission import ResourceCreate, ResourceOut, ResourceUpdate
from orgadmin.services.grants import delete_resource, ensure_not_reserved, ensure_unique_slug

router = APIRouter()


async def _get_resource(db: AsyncSession, resource_id: str) -> Resource:
    resource = await db.get(Resource, resource_id)
    if not resource:
        raise ResourceNotFoundError("Resource", resource_id)
    return resource


@router.get("/", response_model=list[ResourceOut])
async def list_resources(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("resource", "view")),
):
    result = await db.execute(select(Resource).order_by(Resource.slug))
    return [ResourceOut.model_validate(r) for r in result.scalars().all()]


@router.post("/", response_model=ResourceOut, status_code=201)
async def create_resource(
    body: ResourceCreate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("resource", "create")),
):
    await ensure_unique_slug(db, Resource, body.slug)
    resource = Resource(**body.model_dump())
    db.add(resource)
    await db.flush()
    return ResourceOut.model_validate(resource)


@router.get("/{resource_id}", response_model=ResourceOut)
async def get_resource(
    resource_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("resource", "view")),
):
    return ResourceOut.model_validate(await _get_resource(db, resource_id))


@router.patch("/{resource_id}", response_model=ResourceOut)
async def update_resource(
    resource_id: str,
    body: ResourceUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("resource", "edit")),
):
    resource = await _get_resource(db, resource_id)
    ensure_not_reserved(resource)

    updates = body.model_dump(exclude_unset=True)
    if updates.get("slug") and updates["slug"] != resource.slug:
        await ensure_unique_slug(db, Resource, updates["slug"], exclude_id=resource.id)
    for key, value in updates.items():
        if key in ("name", "slug") and value is None:
            continue
        setattr(resource, key, value)
    await db.flush()
    return ResourceOut.model_validate(resource)


@router.delete("/{resource_id}", status_code=204)
async def delete_resource_endpoint(
    resource_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("resource", "delete")),
):
    await delete_resource(db, await _get_resource(db, resource_id))
