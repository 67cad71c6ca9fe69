from typing import cast

from fastapi import Request
from redis.asyncio import Redis

from src.core.errors.exceptions import UpstreamUnavailableException


async def get_redis_client(request: Request) -> Redis:
    """
    Provide the application-wide Redis client stored on app.state.
    """
    redis_client = getattr(request.app.state, "redis_client", None)
    if redis_client is None:
        raise UpstreamUnavailableException(
            "Cache client is not initialized",
            {"hint": "Ensure the startup lifecycle ran"},
        )
    return cast(Redis, redis_client)
