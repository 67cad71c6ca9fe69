from collections.abc import Awaitable

from redis.asyncio import Redis
import redis.exceptions as redis_exc
import sentry_sdk
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from loggers import get_logger
from src.core.errors.exceptions import UpstreamUnavailableException

logger = get_logger(__name__)


class ReadinessService:
    """Checks the two stores every auth operation depends on."""

    def __init__(self, redis_client: Redis, session: AsyncSession) -> None:
        self.redis_client = redis_client
        self.session = session

    async def check(self) -> dict[str, str]:
        redis_is_ok = await self._check_redis()
        postgres_is_ok = await self._check_postgres()
        if not redis_is_ok or not postgres_is_ok:
            raise UpstreamUnavailableException(
                "Readiness check failed",
                additional_info={"redis": redis_is_ok, "postgres": postgres_is_ok},
            )
        return {"status": "ok"}

    async def _check_redis(self) -> bool:
        try:
            ping_result = self.redis_client.ping()
            if isinstance(ping_result, Awaitable):
                return bool(await ping_result)
            return bool(ping_result)
        except redis_exc.RedisError as exc:
            logger.error("Redis readiness check failed: %s", exc)
            sentry_sdk.capture_exception(exc)
            return False

    async def _check_postgres(self) -> bool:
        try:
            await self.session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Postgres readiness check failed: %s", exc)
            sentry_sdk.capture_exception(exc)
            return False
