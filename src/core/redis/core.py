from typing import cast

from redis.asyncio import Redis

from loggers import get_logger

logger = get_logger(__name__)


def create_redis_client(
    connection_url: str,
    *,
    decode_responses: bool = True,
    socket_timeout: float | None = None,
    socket_connect_timeout: float | None = None,
) -> Redis:
    """
    Create a Redis async client from URL. Keeping construction here simplifies
    monkeypatching in tests and centralizes defaults.

    Timeouts bound every command so an unreachable cache raises instead of
    stalling the request.
    """
    try:
        client = Redis.from_url(
            connection_url,
            decode_responses=decode_responses,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
        )
        return cast(Redis, client)
    except Exception as exc:
        logger.exception("Failed to create Redis client: %s", exc)
        raise
