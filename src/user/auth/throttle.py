from collections.abc import Awaitable
from typing import Any, cast

from redis.asyncio import Redis
import redis.exceptions as redis_exc

from loggers import get_logger
from src.core.utils.security import build_email_throttle_key, mask_email
from src.main.config import config
from src.user.auth.redis_scripts import REGISTER_LOGIN_FAILURE_SCRIPT

logger = get_logger(__name__)


class LoginThrottle:
    """
    Failed-login counter per identifier (e-mail) over a fixed window.

    The window starts at the first failure and is not extended by later ones;
    once it elapses the counter disappears. Cache errors never block a login:
    they are logged and the throttle behaves as if no failures were recorded.
    """

    def __init__(
        self,
        redis_client: Redis,
        max_attempts: int | None = None,
        window_seconds: int | None = None,
        prefix: str | None = None,
    ) -> None:
        self.redis_client = redis_client
        self.max_attempts = max_attempts or config.auth.LOGIN_MAX_ATTEMPTS
        self.window_seconds = window_seconds or config.auth.LOGIN_LOCKOUT_WINDOW_SECONDS
        self.prefix = prefix or config.auth.LOGIN_ATTEMPTS_PREFIX

    def _key(self, identifier: str) -> str:
        return build_email_throttle_key(self.prefix, identifier)

    async def register_failure(self, identifier: str) -> int:
        """Count one failure and return the new total (0 if the cache is down)."""
        try:
            result = self.redis_client.eval(
                REGISTER_LOGIN_FAILURE_SCRIPT,
                1,
                self._key(identifier),
                str(self.window_seconds),
            )
            attempts = int(await cast(Awaitable[Any], result))
        except redis_exc.RedisError as exc:
            logger.error(
                "[LoginThrottle] Could not record failure for %s: %s",
                mask_email(identifier),
                exc,
            )
            return 0

        if attempts >= self.max_attempts:
            logger.warning(
                "[LoginThrottle] %s reached %s failed attempts",
                mask_email(identifier),
                attempts,
            )
        return attempts

    async def attempts(self, identifier: str) -> int:
        try:
            value = await self.redis_client.get(self._key(identifier))
        except redis_exc.RedisError as exc:
            logger.error(
                "[LoginThrottle] Could not read counter for %s: %s",
                mask_email(identifier),
                exc,
            )
            return 0
        return int(value) if value is not None else 0

    async def is_locked(self, identifier: str) -> bool:
        return await self.attempts(identifier) >= self.max_attempts

    async def retry_after(self, identifier: str) -> int:
        """Seconds until the current window ends, 0 when there is none."""
        try:
            ttl = await self.redis_client.ttl(self._key(identifier))
        except redis_exc.RedisError as exc:
            logger.error(
                "[LoginThrottle] Could not read window for %s: %s",
                mask_email(identifier),
                exc,
            )
            return 0
        return max(0, int(ttl))

    async def reset(self, identifier: str) -> None:
        try:
            await self.redis_client.delete(self._key(identifier))
        except redis_exc.RedisError as exc:
            logger.error(
                "[LoginThrottle] Could not reset counter for %s: %s",
                mask_email(identifier),
                exc,
            )
