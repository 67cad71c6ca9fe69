from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loggers import get_logger
from src.core.database.repositories import BaseRepository
from src.user.auth.models import RefreshToken

logger = get_logger(__name__)


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """
    Durable revocation store for refresh tokens.

    Every write for one (user, device) pair is expected to run inside a
    transaction holding `lock_device` for that pair.
    """

    model = RefreshToken

    async def save(self, session: AsyncSession, data: dict[str, Any]) -> RefreshToken:
        return await self.create(session, data)

    async def find_valid(
        self,
        session: AsyncSession,
        token_value: str,
        user_id: UUID,
        device_id: str,
        now: datetime,
    ) -> RefreshToken | None:
        """The live record matching all three keys, or None if revoked, expired or unknown."""
        query = (
            select(RefreshToken)
            .where(
                RefreshToken.token_value == token_value,
                RefreshToken.user_id == user_id,
                RefreshToken.device_id == device_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > now,
            )
            .limit(1)
        )
        result = await session.execute(query)
        return result.scalars().first()

    async def revoke_token(
        self, session: AsyncSession, token_value: str, now: datetime
    ) -> int:
        return await self.update_where(
            session,
            {"is_revoked": True, "revoked_at": now},
            RefreshToken.token_value == token_value,
            RefreshToken.is_revoked.is_(False),
        )

    async def revoke_if_active(
        self, session: AsyncSession, record_id: UUID, now: datetime
    ) -> bool:
        """
        Conditionally revoke one record. Of several concurrent callers for the
        same record exactly one sees True.
        """
        affected = await self.update_where(
            session,
            {"is_revoked": True, "revoked_at": now},
            RefreshToken.id == record_id,
            RefreshToken.is_revoked.is_(False),
        )
        return affected == 1

    async def revoke_for_device(
        self, session: AsyncSession, user_id: UUID, device_id: str, now: datetime
    ) -> int:
        return await self.update_where(
            session,
            {"is_revoked": True, "revoked_at": now},
            RefreshToken.user_id == user_id,
            RefreshToken.device_id == device_id,
            RefreshToken.is_revoked.is_(False),
        )

    async def revoke_all_for_user(
        self, session: AsyncSession, user_id: UUID, now: datetime
    ) -> int:
        affected = await self.update_where(
            session,
            {"is_revoked": True, "revoked_at": now},
            RefreshToken.user_id == user_id,
            RefreshToken.is_revoked.is_(False),
        )
        logger.info(
            "[RefreshTokens] Revoked %s live session(s) for user %s", affected, user_id
        )
        return affected

    async def lock_device(
        self, session: AsyncSession, user_id: UUID, device_id: str
    ) -> None:
        await self.xact_lock(session, f"{user_id}:{device_id}")
