"""
Token Revocation System using Redis.

Implements token blacklisting to immediately invalidate JWT tokens
when users log out or are blocked by an admin.
"""

import logging

from rideshare.app.core import redis_client as redis_module
from rideshare.app.core.config import settings

logger = logging.getLogger("rideshare.auth")

# Redis key prefixes
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


def _token_ttl_seconds() -> int:
    # Tokens expire on their own after this, so the flags can too
    return settings.access_token_expire_minutes * 60


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.
    
    Returns:
        True if successfully revoked, False if Redis was unavailable
    """
    try:
        await redis_module.redis_client.setex(
            f"{TOKEN_BLACKLIST_PREFIX}{token}",
            _token_ttl_seconds(),
            str(user_id)
        )
        return True
    except Exception as e:
        logger.error("Error revoking token for user %s: %s", user_id, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.
    
    Fails open when Redis is unreachable (availability over strictness).
    """
    try:
        exists = await redis_module.redis_client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}")
        return exists > 0
    except Exception as e:
        logger.warning("Token revocation check unavailable: %s", e)
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """
    Revoke all active tokens for a user.
    
    Called when a user is blocked to terminate every session at once.
    """
    try:
        await redis_module.redis_client.setex(
            f"{USER_TOKENS_PREFIX}{user_id}:revoked",
            _token_ttl_seconds(),
            "1"
        )
        return True
    except Exception as e:
        logger.error("Error revoking all tokens for user %s: %s", user_id, e)
        return False


async def are_user_tokens_revoked(user_id: int) -> bool:
    """Check if all tokens for a user have been revoked."""
    try:
        exists = await redis_module.redis_client.exists(f"{USER_TOKENS_PREFIX}{user_id}:revoked")
        return exists > 0
    except Exception as e:
        logger.warning("User revocation check unavailable for user %s: %s", user_id, e)
        return False


async def clear_user_token_revocation(user_id: int) -> bool:
    """Clear the global revocation flag when a blocked user is unblocked."""
    try:
        await redis_module.redis_client.delete(f"{USER_TOKENS_PREFIX}{user_id}:revoked")
        return True
    except Exception as e:
        logger.error("Error clearing token revocation for user %s: %s", user_id, e)
        return False
