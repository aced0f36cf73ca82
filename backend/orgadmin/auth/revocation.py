"""JWT token revocation using a Redis blacklist.

Logging out discards the session snapshot by revoking the token that
carries it. Tokens are blacklisted until their natural expiry. Lookups
fail closed: if Redis cannot be reached the token is treated as revoked.
"""

import logging
import time

from orgadmin.config import settings
from orgadmin.utils.redis import get_redis

logger = logging.getLogger(__name__)


def _token_key(jti: str) -> str:
    return f"revoked:{jti}"


def _user_key(user_id: str) -> str:
    return f"revoked:user:{user_id}"


class TokenRevocation:
    """Manage JWT token revocation with Redis."""

    @staticmethod
    async def revoke_token(jti: str, expires_at: float) -> bool:
        """Add a token id to the revocation list.

        Args:
            jti: the token's `jti` claim
            expires_at: Unix timestamp when the token naturally expires

        Returns:
            True if successfully revoked
        """
        ttl = int(expires_at - time.time())
        if ttl <= 0:
            # Already expired, nothing to blacklist
            return True

        redis_client = await get_redis()
        try:
            await redis_client.setex(_token_key(jti), ttl, str(int(time.time())))
            return True
        except Exception:
            logger.exception("Failed to revoke token %s", jti)
            return False

    @staticmethod
    async def is_revoked(jti: str) -> bool:
        redis_client = await get_redis()
        try:
            return await redis_client.exists(_token_key(jti)) > 0
        except Exception:
            logger.exception("Failed to check token revocation")
            return True

    @staticmethod
    async def revoke_all_user_tokens(user_id: str, duration: int | None = None) -> bool:
        """Invalidate every token issued to a user before now.

        Used when a user is deactivated or their global roles change, so
        stale snapshots stop being honoured. The marker outlives the
        longest-lived token (a refresh token) unless `duration` is given.
        """
        if duration is None:
            duration = max(
                settings.refresh_token_expire_days * 86400,
                settings.access_token_expire_minutes * 60,
            )
        redis_client = await get_redis()
        try:
            await redis_client.setex(_user_key(user_id), duration, str(time.time()))
            return True
        except Exception:
            logger.exception("Failed to revoke tokens for user %s", user_id)
            return False

    @staticmethod
    async def is_user_revoked(user_id: str, issued_at: float) -> bool:
        """True if a user-wide revocation happened at or after `issued_at`."""
        redis_client = await get_redis()
        try:
            revoked_at = await redis_client.get(_user_key(user_id))
        except Exception:
            logger.exception("Failed to check user revocation")
            return True
        return revoked_at is not None and float(revoked_at) >= float(issued_at)
