"""Self-service profile.

Endpoints:
    GET    /api/profile/     The caller's own account
    PATCH  /api/profile/     Update own email, name, phone or password

A password change ends every session of the user, the current one
included; the client logs in again with the new password.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.auth.deps import require_permission
from orgadmin.auth.password import verify_password
from orgadmin.database import get_db
from orgadmin.middleware.exceptions import BusinessLogicError
from orgadmin.models.security_log import SecurityLogStatus, SecurityLogType
from orgadmin.models.user import User
from orgadmin.schemas.profile import ProfileUpdate
from orgadmin.schemas.user import UserOut
from orgadmin.services.users import load_user, update_user, user_out
from orgadmin.utils.security_log import log_security_event

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=UserOut)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("profile", "view")),
):
    return user_out(await load_user(db, user.id))


@router.patch("/", response_model=UserOut)
async def update_profile(
    body: ProfileUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("profile", "edit")),
):
    changes = body.model_dump(
        exclude_unset=True, exclude={"current_password", "new_password"}
    )
    # Null leaves email and names unchanged; a null phone clears it
    changes = {k: v for k, v in changes.items() if v is not None or k == "phone"}

    if body.new_password:
        if not verify_password(body.current_password, user.hashed_password or ""):
            await log_security_event(
                db, request, type=SecurityLogType.PASSWORD_CHANGE,
                status=SecurityLogStatus.FAILED, email=user.email, user=user,
                message="Wrong current password",
            )
            await db.commit()
            raise BusinessLogicError(
                "Current password is incorrect", error_code="INVALID_CURRENT_PASSWORD"
            )
        changes["password"] = body.new_password

    loaded = await load_user(db, user.id)
    updated = await update_user(db, loaded, changes)

    if body.new_password:
        await log_security_event(
            db, request, type=SecurityLogType.PASSWORD_CHANGE,
            status=SecurityLogStatus.SUCCESS, email=updated.email, user=updated,
        )
    return user_out(updated)
