"""
Token Revocation System using Redis.

Logout blacklists the presented token; blocking a user flags all of their
tokens. Both keys expire when the tokens would have expired anyway.
"""

import logging

from redis.exceptions import RedisError

import uride.app.core.redis_client as redis_store
from uride.app.core.config import settings

logger = logging.getLogger("uride.auth")

TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


async def revoke_token(token: str, user_id: int, ttl_seconds: int = None) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        token: The JWT token string to revoke
        user_id: User ID who owns the token (stored for audit)
        ttl_seconds: Remaining token lifetime; defaults to the full lifetime

    Returns:
        True if successfully revoked, False otherwise
    """
    if ttl_seconds is None:
        ttl_seconds = settings.access_token_expire_minutes * 60

    try:
        await redis_store.redis_client.setex(
            f"{TOKEN_BLACKLIST_PREFIX}{token}",
            ttl_seconds,
            str(user_id)
        )
        return True
    except (RedisError, OSError) as e:
        logger.error("Error revoking token for user %s: %s", user_id, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Fails open when Redis is unreachable: expiry still bounds the token.
    """
    try:
        exists = await redis_store.redis_client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}")
        return exists > 0
    except (RedisError, OSError) as e:
        logger.warning("Error checking token revocation: %s", e)
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """Flag every token of a user as revoked (used when an admin blocks them)."""
    try:
        ttl_seconds = settings.access_token_expire_minutes * 60
        await redis_store.redis_client.setex(f"{USER_TOKENS_PREFIX}{user_id}:revoked", ttl_seconds, "1")
        return True
    except (RedisError, OSError) as e:
        logger.error("Error revoking all tokens for user %s: %s", user_id, e)
        return False


async def are_user_tokens_revoked(user_id: int) -> bool:
    try:
        exists = await redis_store.redis_client.exists(f"{USER_TOKENS_PREFIX}{user_id}:revoked")
        return exists > 0
    except (RedisError, OSError) as e:
        logger.warning("Error checking user token revocation: %s", e)
        return False


async def clear_user_token_revocation(user_id: int) -> bool:
    """Clear the revocation flag when a blocked user is unblocked."""
    try:
        await redis_store.redis_client.delete(f"{USER_TOKENS_PREFIX}{user_id}:revoked")
        return True
    except (RedisError, OSError) as e:
        logger.error("Error clearing token revocation for user %s: %s", user_id, e)
        return False
