"""Action catalogue router.

Endpoints:
    GET    /api/actions/          List actions
    POST   /api/actions/          Create action
    GET    /api/actions/{id}      Action detail
    PATCH  /api/actions/{id}      Rename / re-slug (not "manage")
    DELETE /api/actions/{id}      Delete (refused while granted)
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.auth.deps import require_permission
from orgadmin.database import get_db
from orgadmin.middleware.exceptions import ResourceNotFoundError
from orgadmin.models.permission import Action
from orgadmin.models.user import User
from orgadmin.schemas.permission import ActionCreate, ActionOut, ActionUpdate
from orgadmin.services.grants import delete_action, ensure_not_reserved, ensure_unique_slug

router = APIRouter()


async def _get_action(db: AsyncSession, action_id: str) -> Action:
    action = await db.get(Action, action_id)
    if not action:
        raise ResourceNotFoundError("Action", action_id)
    return action


@router.get("/", response_model=list[ActionOut])
async def list_actions(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("action", "view")),
):
    result = await db.execute(select(Action).order_by(Action.slug))
    return [ActionOut.model_validate(a) for a in result.scalars().all()]


@router.post("/", response_model=ActionOut, status_code=201)
async def create_action(
    body: ActionCreate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("action", "create")),
):
    await ensure_unique_slug(db, Action, body.slug)
    action = Action(**body.model_dump())
    db.add(action)
    await db.flush()
    return ActionOut.model_validate(action)


@router.get("/{action_id}", response_model=ActionOut)
async def get_action(
    action_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("action", "view")),
):
    return ActionOut.model_validate(await _get_action(db, action_id))


@router.patch("/{action_id}", response_model=ActionOut)
async def update_action(
    action_id: str,
    body: ActionUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("action", "edit")),
):
    action = await _get_action(db, action_id)
    ensure_not_reserved(action)

    updates = body.model_dump(exclude_unset=True)
    if updates.get("slug") and updates["slug"] != action.slug:
        await ensure_unique_slug(db, Action, updates["slug"], exclude_id=action.id)
    for key, value in updates.items():
        if key in ("name", "slug") and value is None:
            continue
        setattr(action, key, value)
    await db.flush()
    return ActionOut.model_validate(action)


@router.delete("/{action_id}", status_code=204)
async def delete_action_endpoint(
    action_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("action", "delete")),
):
    await delete_action(db, await _get_action(db, action_id))
