"""Transfer throttling: fixed-window attempt counter per user in Redis."""

import time
from functools import lru_cache

import redis.asyncio as aioredis
from fastapi import status
from redis.exceptions import RedisError

from app.core.config import get_settings
from app.core.exceptions import AppError
from app.core.logging import get_logger

log = get_logger(__name__)

KEY_PREFIX = "ratelimit:transfer"


class RateLimitedError(AppError):
    def __init__(self, retry_after: int):
        super().__init__(
            "Too many transfer attempts, please try again later.",
            code="RATE_LIMITED",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"retry_after_seconds": retry_after},
        )


@lru_cache
def get_redis() -> aioredis.Redis:
    return aioredis.from_url(get_settings().redis_url, decode_responses=True)


def _key(user_id: str, window_seconds: int) -> tuple[str, int]:
    window = int(time.time()) // window_seconds
    retry_after = window_seconds - int(time.time()) % window_seconds
    return f"{KEY_PREFIX}:{user_id}:{window}", retry_after


async def incr_transfer_attempts(redis, user_id: str, window_seconds: int) -> tuple[int, int]:
    """Increment and return (count, seconds left in window); count 0 when Redis is unavailable."""
    key, retry_after = _key(user_id, window_seconds)
    try:
        n = await redis.incr(key)
        if n == 1:
            await redis.expire(key, window_seconds)
        return n, retry_after
    except (RedisError, OSError) as e:
        log.warning("rate_limit_unavailable", reason=str(e))
        return 0, retry_after


async def check_transfer_rate(user_id: str, redis=None) -> None:
    settings = get_settings()
    if not settings.rate_limit_enabled:
        return
    count, retry_after = await incr_transfer_attempts(
        redis or get_redis(), user_id, settings.transfer_rate_window_seconds
    )
    if count > settings.transfer_rate_limit:
        log.info("transfer_rate_limited", user_id=user_id, count=count)
        raise RateLimitedError(retry_after)
