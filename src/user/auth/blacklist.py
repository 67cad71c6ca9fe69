from redis.asyncio import Redis
import redis.exceptions as redis_exc

from loggers import get_logger
from src.core.errors.exceptions import UpstreamUnavailableException
from src.core.utils.retry import with_retries
from src.main.config import config

logger = get_logger(__name__)


class AccessTokenBlacklist:
    """
    Revoked access token ids, kept in the cache only as long as the token
    itself would have stayed valid.
    """

    def __init__(self, redis_client: Redis, prefix: str | None = None) -> None:
        self.redis_client = redis_client
        self.prefix = prefix or config.auth.BLACKLIST_PREFIX

    def _key(self, token_id: str) -> str:
        return f"{self.prefix}:{token_id}"

    async def add(self, token_id: str, ttl_seconds: int) -> bool:
        """
        Blacklist `token_id` for `ttl_seconds`. A token that already expired
        needs no entry, so non-positive TTLs are skipped.

        Raises:
            UpstreamUnavailableException: the cache rejected or dropped the write
        """
        if ttl_seconds <= 0:
            logger.debug(
                "[Blacklist] Token %s… already expired, nothing to store", token_id[:8]
            )
            return False
        try:
            # NX keeps the first TTL when logout is repeated
            await self.redis_client.set(self._key(token_id), "1", ex=ttl_seconds, nx=True)
        except redis_exc.RedisError as exc:
            raise UpstreamUnavailableException(
                "Cache unavailable while blacklisting token",
                {"operation": "blacklist.add", "error": str(exc)},
            ) from exc
        return True

    @with_retries(max_retries=2, delay=0, retry_on=(UpstreamUnavailableException,))
    async def _lookup(self, token_id: str) -> bool:
        try:
            return bool(await self.redis_client.exists(self._key(token_id)))
        except redis_exc.RedisError as exc:
            raise UpstreamUnavailableException(
                "Cache unavailable while checking blacklist",
                {"operation": "blacklist.contains", "error": str(exc)},
            ) from exc

    async def contains(self, token_id: str) -> bool:
        """
        Whether `token_id` is blacklisted. If the cache cannot answer after one
        retry the token is treated as blacklisted.
        """
        try:
            return await self._lookup(token_id)
        except UpstreamUnavailableException as exc:
            logger.error(
                "[Blacklist] Lookup failed for token %s…, failing closed: %s",
                token_id[:8],
                exc.additional_info,
            )
            return True
