"""Security log router (read-only).

Endpoints:
    GET /api/security-logs/     Paginated authentication events, newest first
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.auth.deps import require_permission
from orgadmin.database import get_db
from orgadmin.models.security_log import SecurityLog, SecurityLogStatus, SecurityLogType
from orgadmin.models.user import User
from orgadmin.schemas.common import PaginatedResponse
from orgadmin.schemas.security_log import SecurityLogOut

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[SecurityLogOut])
async def list_security_logs(
    type: SecurityLogType | None = None,
    status: SecurityLogStatus | None = None,
    email: str | None = Query(None, max_length=255),
    user_id: str | None = None,
    since: datetime | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("security-log", "view")),
):
    filters = []
    if type:
        filters.append(SecurityLog.type == type)
    if status:
        filters.append(SecurityLog.status == status)
    if email:
        filters.append(SecurityLog.email == email.lower())
    if user_id:
        filters.append(SecurityLog.user_id == user_id)
    if since:
        filters.append(SecurityLog.created_at >= since)

    total = await db.scalar(select(func.count()).select_from(SecurityLog).where(*filters))
    result = await db.execute(
        select(SecurityLog)
        .where(*filters)
        .order_by(SecurityLog.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return PaginatedResponse[SecurityLogOut](
        items=[SecurityLogOut.model_validate(e) for e in result.scalars().all()],
        total=total or 0,
        limit=limit,
        offset=offset,
    )
