from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, cast
from uuid import UUID

import jwt
from sqlalchemy.exc import IntegrityError
import uuid6

from loggers import get_logger
from src.core.database.errors import upstream_database_errors
from src.core.database.uow import ApplicationUnitOfWork, RepositoryProtocol
from src.core.utils.datetime_utils import (
    get_utc_now,
    parse_duration_to_seconds,
    seconds_until,
)
from src.main.config import JWTConfig, config
from src.user.auth.blacklist import AccessTokenBlacklist
from src.user.auth.constants import (
    ACCESS_TOKEN_MODE,
    DEFAULT_ACCESS_TOKEN_SECONDS,
    DEFAULT_REFRESH_TOKEN_SECONDS,
    REFRESH_TOKEN_MODE,
    TOKEN_TYPE,
)
from src.user.auth.exceptions import InvalidTokenException
from src.user.auth.jwt_payload_schema import AccessTokenPayload, RefreshTokenPayload
from src.user.models import User

logger = get_logger(__name__)

REQUIRED_CLAIMS = ["exp", "iat", "sub", "jti"]


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = TOKEN_TYPE


@dataclass(frozen=True, slots=True)
class TokenSettings:
    access_secret: str
    refresh_secret: str
    algorithm: str
    access_ttl_seconds: int
    refresh_ttl_seconds: int
    leeway_seconds: int = 30

    @classmethod
    def from_config(cls, jwt_config: JWTConfig) -> "TokenSettings":
        return cls(
            access_secret=jwt_config.JWT_ACCESS_SECRET_KEY,
            refresh_secret=jwt_config.JWT_REFRESH_SECRET_KEY,
            algorithm=jwt_config.ALGORITHM,
            access_ttl_seconds=parse_duration_to_seconds(
                jwt_config.ACCESS_TOKEN_EXPIRY, DEFAULT_ACCESS_TOKEN_SECONDS
            ),
            refresh_ttl_seconds=parse_duration_to_seconds(
                jwt_config.REFRESH_TOKEN_EXPIRY, DEFAULT_REFRESH_TOKEN_SECONDS
            ),
            leeway_seconds=jwt_config.JWT_LEEWAY_SECONDS,
        )


def parse_subject(value: Any) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise InvalidTokenException({"reason": "malformed subject"}) from exc


class TokenService:
    """
    Issues, rotates and revokes token pairs.

    Each (user, device) pair has at most one live refresh token. Every write
    for a pair runs in one transaction that first takes the pair's advisory
    lock; the partial unique index on live records backs this up.
    """

    def __init__(
        self,
        uow: ApplicationUnitOfWork[RepositoryProtocol],
        blacklist: AccessTokenBlacklist,
        settings: TokenSettings | None = None,
        clock: Callable[[], datetime] = get_utc_now,
    ) -> None:
        self.uow = uow
        self.blacklist = blacklist
        self.settings = settings or TokenSettings.from_config(config.jwt)
        self.clock = clock

    # ----- Encoding ----- #
    def _encode_access_token(self, user: User, now: datetime) -> str:
        payload: AccessTokenPayload = {
            "sub": str(user.id),
            "email": user.email,
            "role": str(user.role),
            "jti": str(uuid6.uuid7()),
            "iat": int(now.timestamp()),
            "exp": int(
                (now + timedelta(seconds=self.settings.access_ttl_seconds)).timestamp()
            ),
            "mode": ACCESS_TOKEN_MODE,
        }
        return jwt.encode(
            dict(payload), self.settings.access_secret, self.settings.algorithm
        )

    def _encode_refresh_token(
        self, user_id: UUID, device_id: str, now: datetime
    ) -> tuple[str, datetime]:
        expires_at = now + timedelta(seconds=self.settings.refresh_ttl_seconds)
        payload: RefreshTokenPayload = {
            "sub": str(user_id),
            "device_id": device_id,
            "jti": str(uuid6.uuid7()),
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "mode": REFRESH_TOKEN_MODE,
        }
        token = jwt.encode(
            dict(payload), self.settings.refresh_secret, self.settings.algorithm
        )
        return token, expires_at

    # ----- Decoding ----- #
    def _decode(self, token: str, secret: str, mode: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.settings.algorithm],
                leeway=self.settings.leeway_seconds,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidTokenException({"reason": "expired", "mode": mode}) from exc
        except jwt.PyJWTError as exc:
            raise InvalidTokenException(
                {"reason": exc.__class__.__name__, "mode": mode}
            ) from exc

        if claims.get("mode") != mode:
            raise InvalidTokenException({"reason": "wrong token mode", "mode": mode})
        return claims

    def verify_access_token(self, token: str) -> AccessTokenPayload:
        """Signature, expiry and mode checked; any failure is InvalidTokenException."""
        claims = self._decode(token, self.settings.access_secret, ACCESS_TOKEN_MODE)
        return cast(AccessTokenPayload, claims)

    def verify_refresh_token(self, token: str) -> RefreshTokenPayload:
        claims = self._decode(token, self.settings.refresh_secret, REFRESH_TOKEN_MODE)
        return cast(RefreshTokenPayload, claims)

    # ----- Issuance and rotation ----- #
    async def _issue_within(
        self,
        uow: ApplicationUnitOfWork[RepositoryProtocol],
        user: User,
        device_id: str,
        now: datetime,
    ) -> TokenPair:
        """Revoke-then-insert for one device. The caller holds the device lock."""
        repo = uow.refresh_tokens
        revoked = await repo.revoke_for_device(uow.session, user.id, device_id, now)
        if revoked:
            logger.info(
                "[TokenService] Replaced %s live session(s) for user %s on device %r",
                revoked,
                user.id,
                device_id,
            )

        access_token = self._encode_access_token(user, now)
        refresh_token, expires_at = self._encode_refresh_token(user.id, device_id, now)
        await repo.save(
            uow.session,
            {
                "token_value": refresh_token,
                "user_id": user.id,
                "device_id": device_id,
                "expires_at": expires_at,
                "is_revoked": False,
            },
        )
        await uow.flush()
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.settings.access_ttl_seconds,
        )

    async def issue_token_pair(self, user: User, device_id: str) -> TokenPair:
        """
        Mint a new pair for `user` on `device_id`, revoking whatever session the
        device had. Not retried on failure.
        """
        now = self.clock()
        async with upstream_database_errors("refresh_tokens.issue"):
            async with self.uow as uow:
                await uow.refresh_tokens.lock_device(uow.session, user.id, device_id)
                pair = await self._issue_within(uow, user, device_id, now)
                await uow.commit()

        logger.info(
            "[TokenService] Issued token pair for user %s on device %r",
            user.id,
            device_id,
        )
        return pair

    async def rotate_on_refresh(self, refresh_token: str, device_id: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair. The presented token is single
        use: once rotated, presenting it again is InvalidTokenException.
        """
        claims = self.verify_refresh_token(refresh_token)
        if claims.get("device_id") != device_id:
            raise InvalidTokenException({"reason": "device mismatch"})
        user_id = parse_subject(claims.get("sub"))

        now = self.clock()
        async with upstream_database_errors("refresh_tokens.rotate"):
            async with self.uow as uow:
                repo = uow.refresh_tokens
                await repo.lock_device(uow.session, user_id, device_id)

                record = await repo.find_valid(
                    uow.session, refresh_token, user_id, device_id, now
                )
                if record is None:
                    raise InvalidTokenException(
                        {"reason": "no live record", "user_id": str(user_id)}
                    )

                user = await uow.users.get_single(uow.session, id=user_id)
                if user is None or not user.is_active:
                    raise InvalidTokenException(
                        {"reason": "unknown or inactive user", "user_id": str(user_id)}
                    )

                try:
                    if not await repo.revoke_if_active(uow.session, record.id, now):
                        raise InvalidTokenException(
                            {"reason": "already rotated", "user_id": str(user_id)}
                        )
                    pair = await self._issue_within(uow, user, device_id, now)
                    await uow.commit()
                except IntegrityError as exc:
                    # A concurrent writer already holds the live slot for this device
                    raise InvalidTokenException(
                        {"reason": "concurrent rotation", "user_id": str(user_id)}
                    ) from exc

        logger.info(
            "[TokenService] Rotated refresh token for user %s on device %r",
            user_id,
            device_id,
        )
        return pair

    # ----- Revocation ----- #
    async def revoke_session(self, user_id: UUID, device_id: str) -> int:
        """Revoke the device's live session. Revoking twice is not an error."""
        now = self.clock()
        async with upstream_database_errors("refresh_tokens.revoke_session"):
            async with self.uow as uow:
                await uow.refresh_tokens.lock_device(uow.session, user_id, device_id)
                revoked = await uow.refresh_tokens.revoke_for_device(
                    uow.session, user_id, device_id, now
                )
                await uow.commit()
        logger.info(
            "[TokenService] Revoked %s session(s) for user %s on device %r",
            revoked,
            user_id,
            device_id,
        )
        return revoked

    async def revoke_all_sessions(self, user_id: UUID) -> int:
        now = self.clock()
        async with upstream_database_errors("refresh_tokens.revoke_all"):
            async with self.uow as uow:
                revoked = await uow.refresh_tokens.revoke_all_for_user(
                    uow.session, user_id, now
                )
                await uow.commit()
        return revoked

    async def blacklist_access_token(self, token_id: str, remaining_ttl: int) -> bool:
        """Returns False when the token had no lifetime left and nothing was stored."""
        return await self.blacklist.add(token_id, remaining_ttl)

    async def is_access_token_blacklisted(self, token_id: str) -> bool:
        return await self.blacklist.contains(token_id)

    def remaining_lifetime(self, exp: int | float) -> int:
        return seconds_until(exp, self.clock())
