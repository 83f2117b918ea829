import logging

import redis.asyncio as redis
from redis.exceptions import RedisError
from fastapi import Request, Response, status

from app.core.config import Settings
from app.core.exceptions import APIException

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def create_redis_client(settings: Settings) -> redis.Redis:
    return redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)


async def rate_limit(request: Request, response: Response) -> None:
    """
    Count the request against its client IP for the current window and
    reject it once the window's allowance is spent.
    """
    settings: Settings = request.app.state.settings
    if not settings.RATE_LIMIT_ENABLED:
        return

    ip = request.client.host if request.client else "unknown"
    key = f"rate:ip:{ip}"
    window = settings.RATE_LIMIT_WINDOW_SECONDS
    redis_client = request.app.state.redis

    try:
        pipe = redis_client.pipeline()
        pipe.incr(key)
        pipe.ttl(key)
        count, ttl = await pipe.execute()
        if ttl < 0:
            # First hit of the window
            await redis_client.expire(key, window)
            ttl = window
    except RedisError as exc:
        logger.exception(f"Redis unavailable for rate limiting: {exc}")
        raise APIException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            message="Rate limiter unavailable"
        ) from exc

    limit = settings.RATE_LIMIT_MAX_REQUESTS
    headers = {
        "RateLimit-Limit": str(limit),
        "RateLimit-Remaining": str(max(limit - count, 0)),
        "RateLimit-Reset": str(ttl),
    }
    if count > limit:
        logger.warning(f"Rate limit exceeded for {ip} ({count} requests)")
        raise APIException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            message=RATE_LIMIT_MESSAGE,
            headers={**headers, "Retry-After": str(ttl)},
        )
    response.headers.update(headers)
