"""Auth routes: register, login, refresh, logout, current principal.

Route overview:
  POST /register           self-registration (global default role)
  POST /login              email + password login, builds the session snapshot
  POST /refresh            exchange a refresh token for new tokens and a fresh snapshot
  POST /logout             revoke the access token (and refresh token if given)
  GET  /me                 profile + session snapshot
  POST /permissions/check  evaluate a batch of queries against the caller's snapshot
"""

import logging
import time

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.auth.deps import get_current_snapshot, get_current_user
from orgadmin.auth.jwt import create_access_token, create_refresh_token, decode_token
from orgadmin.auth.password import verify_password
from orgadmin.auth.permissions import evaluate
from orgadmin.auth.revocation import TokenRevocation
from orgadmin.auth.snapshot import PermissionSnapshot
from orgadmin.database import get_db
from orgadmin.middleware.exceptions import AuthenticationError
from orgadmin.models.security_log import SecurityLogStatus, SecurityLogType
from orgadmin.models.user import User
from orgadmin.schemas.auth import (
    LoginRequest,
    LogoutRequest,
    MeResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionCheckResult,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from orgadmin.schemas.common import MessageResponse
from orgadmin.services.snapshot_builder import build_snapshot_for_session
from orgadmin.services.users import create_user, load_user, user_out
from orgadmin.utils.security_log import log_security_event

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

async def _issue_tokens(db: AsyncSession, user: User) -> TokenResponse:
    """Build the snapshot for a verified, active user and mint both tokens."""
    snapshot = await build_snapshot_for_session(db, user.id)
    user = await load_user(db, user.id)
    return TokenResponse(
        access_token=create_access_token(user_id=user.id, snapshot=snapshot),
        refresh_token=create_refresh_token(user_id=user.id),
        user=user_out(user),
        permissions=snapshot,
    )


async def _fail(
    db: AsyncSession,
    request: Request,
    *,
    type: SecurityLogType,
    email: str,
    message: str,
    user: User | None = None,
    detail: str = "Invalid credentials",
) -> None:
    # get_db rolls back on error, so the audit row is committed before raising
    await log_security_event(
        db, request, type=type, status=SecurityLogStatus.FAILED,
        email=email, user=user, message=message,
    )
    await db.commit()
    raise AuthenticationError(detail)


async def _revoke(payload: dict) -> None:
    jti = payload.get("jti")
    if jti:
        await TokenRevocation.revoke_token(jti, float(payload.get("exp", time.time())))


# ── POST /register ──────────────────────────────────────────

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Self-registration. The new user receives the global default role
    (if one is configured) and is logged in straight away."""
    user = await create_user(
        db,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
    )
    await log_security_event(
        db, request, type=SecurityLogType.REGISTER, status=SecurityLogStatus.SUCCESS,
        email=user.email, user=user,
    )
    return await _issue_tokens(db, user)


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Email + password login. Returns JWTs carrying the permission snapshot."""
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user or not user.hashed_password:
        await _fail(
            db, request, type=SecurityLogType.LOGIN, email=body.email,
            message="Unknown email",
        )
    if not verify_password(body.password, user.hashed_password):
        await _fail(
            db, request, type=SecurityLogType.LOGIN, email=body.email, user=user,
            message="Wrong password",
        )
    if not user.is_active:
        await _fail(
            db, request, type=SecurityLogType.LOGIN, email=body.email, user=user,
            message=f"Account {user.status.value.lower()}",
            detail="Account is not active",
        )

    try:
        tokens = await _issue_tokens(db, user)
    except AuthenticationError as e:
        await _fail(
            db, request, type=SecurityLogType.LOGIN, email=body.email, user=user,
            message="Snapshot build failed", detail=e.message,
        )
    await log_security_event(
        db, request, type=SecurityLogType.LOGIN, status=SecurityLogStatus.SUCCESS,
        email=user.email, user=user,
    )
    return tokens


# ── POST /refresh ───────────────────────────────────────────

@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Rotate tokens. The snapshot is rebuilt, so grant changes made since
    login take effect here."""
    payload = decode_token(body.refresh_token)
    user_id = payload.get("sub")
    jti = payload.get("jti")
    if not user_id or not jti or payload.get("type") != "refresh":
        raise AuthenticationError("Invalid or expired refresh token")

    if await TokenRevocation.is_revoked(jti):
        raise AuthenticationError("Refresh token has been revoked")
    if await TokenRevocation.is_user_revoked(user_id, payload.get("iat", 0)):
        raise AuthenticationError("Session expired. Please log in again.")

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    # One-time use: the presented refresh token is retired
    await _revoke(payload)

    try:
        tokens = await _issue_tokens(db, user)
    except AuthenticationError as e:
        await _fail(
            db, request, type=SecurityLogType.REFRESH, email=user.email, user=user,
            message="Snapshot build failed", detail=e.message,
        )
    await log_security_event(
        db, request, type=SecurityLogType.REFRESH, status=SecurityLogStatus.SUCCESS,
        email=user.email, user=user,
    )
    return tokens


# ── POST /logout ────────────────────────────────────────────

@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    body: LogoutRequest | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """End the session: the access token (and its snapshot) stop being honoured."""
    await _revoke(getattr(user, "_token_payload", {}))

    if body and body.refresh_token:
        refresh_payload = decode_token(body.refresh_token)
        if refresh_payload.get("sub") == user.id and refresh_payload.get("type") == "refresh":
            await _revoke(refresh_payload)

    await log_security_event(
        db, request, type=SecurityLogType.LOGOUT, status=SecurityLogStatus.SUCCESS,
        email=user.email, user=user,
    )
    return MessageResponse(message="Logged out")


# ── GET /me ─────────────────────────────────────────────────

@router.get("/me", response_model=MeResponse)
async def me(
    user: User = Depends(get_current_user),
    snapshot: PermissionSnapshot = Depends(get_current_snapshot),
    db: AsyncSession = Depends(get_db),
):
    """Current profile and the snapshot the session was issued with."""
    loaded = await load_user(db, user.id)
    return MeResponse(user=user_out(loaded), permissions=snapshot)


# ── POST /permissions/check ─────────────────────────────────

@router.post("/permissions/check", response_model=PermissionCheckResponse)
async def check_permissions(
    body: PermissionCheckRequest,
    snapshot: PermissionSnapshot = Depends(get_current_snapshot),
):
    """Advisory: tells a client which controls to offer. Every route still
    runs its own guard."""
    return PermissionCheckResponse(
        results=[
            PermissionCheckResult(
                resource=q.resource,
                action=q.action,
                organization_id=q.organization_id,
                allowed=evaluate(snapshot, q.resource, q.action, q.organization_id),
            )
            for q in body.checks
        ]
    )
