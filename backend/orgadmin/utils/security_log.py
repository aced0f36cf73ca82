"""Lightweight helper for recording security log entries.

Usage:
    await log_security_event(
        db, request, type=SecurityLogType.LOGIN, status=SecurityLogStatus.FAILED,
        email=body.email, message="Invalid credentials",
    )

The row is added to the current session and committed with the
enclosing transaction; callers that are about to raise must commit first.
"""

from __future__ import annotations

import logging

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.models.security_log import SecurityLog, SecurityLogStatus, SecurityLogType
from orgadmin.models.user import User

logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return (request.client.host if request.client else "unknown")[:45]


async def log_security_event(
    db: AsyncSession,
    request: Request,
    *,
    type: SecurityLogType,
    status: SecurityLogStatus,
    email: str,
    user: User | None = None,
    message: str | None = None,
) -> None:
    """Append a security log entry to the current DB session."""
    entry = SecurityLog(
        user_id=user.id if user else None,
        email=email,
        ip_address=_client_ip(request),
        user_agent=(request.headers.get("user-agent") or "unknown")[:500],
        status=status,
        type=type,
        message=message,
    )
    db.add(entry)

    level = logging.INFO if status == SecurityLogStatus.SUCCESS else logging.WARNING
    logger.log(level, "%s %s for %s", type.value, status.value, email)
