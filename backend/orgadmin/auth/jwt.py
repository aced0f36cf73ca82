"""JWT token creation and decoding.

Token claims:
  - sub:          user ID
  - type:         "access" | "refresh"
  - permissions:  permission snapshot (access tokens only, see auth.snapshot)
  - jti:          unique token id (revocation key)
  - iat:          issue time, fractional seconds (user-wide revocation)
  - exp:          expiry timestamp
"""

import time
import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from orgadmin.auth.snapshot import PermissionSnapshot
from orgadmin.config import settings

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    user_id: str,
    snapshot: PermissionSnapshot,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "permissions": snapshot.to_claims(),
        "type": "access",
        "jti": str(uuid.uuid4()),
        "iat": time.time(),
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def create_refresh_token(user_id: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expire_days)
    payload = {
        "sub": user_id,
        "type": "refresh",
        "jti": str(uuid.uuid4()),
        "iat": time.time(),
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
