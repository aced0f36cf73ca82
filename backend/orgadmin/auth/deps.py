"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user         → decode JWT, check revocation, load user, return User
  get_current_snapshot     → the permission snapshot embedded in the token
  require_or_deny(...)     → raise PermissionDeniedError unless evaluate() allows
  require_permission(...)  → dependency factory guarding a route before its body runs

The snapshot is always passed to the evaluator explicitly; nothing here
reads request-global state.
"""

import logging

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgadmin.auth.jwt import decode_token
from orgadmin.auth.permissions import evaluate
from orgadmin.auth.revocation import TokenRevocation
from orgadmin.auth.snapshot import PermissionSnapshot
from orgadmin.database import get_db
from orgadmin.middleware.exceptions import AuthenticationError, PermissionDeniedError
from orgadmin.models.user import User

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT, load the user and return it.

    Also stashes the decoded payload on the user object as `_token_payload`
    so downstream deps can read the snapshot claim without re-decoding.
    """
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise AuthenticationError("Invalid or expired token")

    jti = payload.get("jti")
    if not jti or await TokenRevocation.is_revoked(jti):
        raise AuthenticationError("Token has been revoked")

    # Deactivation or global role changes revoke every earlier token
    if await TokenRevocation.is_user_revoked(user_id, payload.get("iat", 0)):
        raise AuthenticationError("Session expired. Please log in again.")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        logger.warning("Rejected token for missing or inactive user %s", user_id)
        raise AuthenticationError("User not found or inactive")

    user._token_payload = payload  # type: ignore[attr-defined]
    return user


async def get_current_snapshot(
    user: User = Depends(get_current_user),
) -> PermissionSnapshot:
    payload: dict = getattr(user, "_token_payload", {})
    return PermissionSnapshot.from_claims(payload.get("permissions"))


# ── Guard ───────────────────────────────────────────────────

def require_or_deny(
    snapshot: PermissionSnapshot,
    resource_slug: str,
    action_slug: str,
    organization_id: str | None = None,
) -> None:
    """Raise PermissionDeniedError unless the snapshot permits the action.

    Used directly by handlers whose organization scope only becomes known
    from the request body or a loaded record.
    """
    if not evaluate(snapshot, resource_slug, action_slug, organization_id):
        raise PermissionDeniedError()


def require_permission(
    resource_slug: str,
    action_slug: str,
    organization_param: str | None = None,
):
    """Dependency factory: deny the request before the handler body runs.

    `organization_param` names a path or query parameter holding the
    organization id the check is scoped to. Reads only the token snapshot,
    so a denied request never touches the store beyond authentication.

    Usage:
        @router.patch("/{organization_id}")
        async def update_organization(
            user: User = Depends(
                require_permission("organization", "edit", "organization_id")
            ),
        ):
            ...
    """
    async def _check(
        request: Request,
        user: User = Depends(get_current_user),
        snapshot: PermissionSnapshot = Depends(get_current_snapshot),
    ) -> User:
        organization_id = None
        if organization_param:
            organization_id = request.path_params.get(
                organization_param
            ) or request.query_params.get(organization_param)

        if not evaluate(snapshot, resource_slug, action_slug, organization_id):
            logger.warning(
                "Permission denied for user %s on %s:%s",
                user.id, resource_slug, action_slug,
            )
            raise PermissionDeniedError()
        return user

    return _check
