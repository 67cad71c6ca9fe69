from typing import Any
from uuid import UUID

from fastapi import Depends
import jwt
from redis.asyncio import Redis

from loggers import get_logger
from src.core.database.session import get_unit_of_work
from src.core.database.uow import ApplicationUnitOfWork, RepositoryProtocol
from src.core.errors.exceptions import UpstreamUnavailableException
from src.core.redis.dependencies import get_redis_client
from src.core.utils.security import mask_email
from src.user.auth.blacklist import AccessTokenBlacklist
from src.user.auth.services.credential_validator import CredentialValidator
from src.user.auth.services.token_service import TokenPair, TokenService
from src.user.auth.throttle import LoginThrottle
from src.user.services import NewUser, UserDirectory

logger = get_logger(__name__)


def strip_bearer(token: str | None) -> str:
    if not token:
        return ""
    token = token.strip()
    if token.lower().startswith("bearer "):
        token = token[7:].strip()
    return token


def read_unverified_claims(token: str) -> dict[str, Any] | None:
    """Claims of a token without checking signature or expiry, None if undecodable."""
    try:
        return jwt.decode(
            token, options={"verify_signature": False, "verify_exp": False}
        )
    except jwt.PyJWTError:
        return None


class AuthService:
    """Entry point for the transport layer: login, register, refresh, logout."""

    def __init__(
        self,
        users: UserDirectory,
        credentials: CredentialValidator,
        tokens: TokenService,
    ) -> None:
        self.users = users
        self.credentials = credentials
        self.tokens = tokens

    async def login(self, email: str, password: str, device_id: str) -> TokenPair:
        user = await self.credentials.validate(email, password)
        return await self.tokens.issue_token_pair(user, device_id)

    async def register(self, new_user: NewUser, device_id: str) -> TokenPair:
        user = await self.users.create(new_user)
        logger.info("[AuthService] Registered %s", mask_email(user.email))
        return await self.tokens.issue_token_pair(user, device_id)

    async def refresh(self, refresh_token: str, device_id: str) -> TokenPair:
        return await self.tokens.rotate_on_refresh(strip_bearer(refresh_token), device_id)

    async def logout(
        self, user_id: UUID, access_token: str | None, device_id: str
    ) -> None:
        """
        Blacklist the access token (best effort) and revoke the device session.

        A missing or garbled access token, or a cache outage while blacklisting,
        does not stop the session from being revoked.
        """
        claims = read_unverified_claims(strip_bearer(access_token))
        token_id = claims.get("jti") if claims else None
        expires = claims.get("exp") if claims else None

        if token_id and isinstance(expires, (int, float)):
            ttl = self.tokens.remaining_lifetime(expires)
            try:
                await self.tokens.blacklist_access_token(str(token_id), ttl)
            except UpstreamUnavailableException as exc:
                logger.error(
                    "[AuthService] Could not blacklist access token for user %s: %s",
                    user_id,
                    exc.additional_info,
                )
        else:
            logger.warning(
                "[AuthService] Logout for user %s without a usable access token",
                user_id,
            )

        await self.tokens.revoke_session(user_id, device_id)

    async def is_token_blacklisted(self, token: str | None) -> bool:
        """Undecodable tokens and tokens without an id count as blacklisted."""
        claims = read_unverified_claims(strip_bearer(token)) if token else None
        token_id = claims.get("jti") if claims else None
        if not token_id:
            return True
        return await self.tokens.is_access_token_blacklisted(str(token_id))


def build_auth_service(
    uow: ApplicationUnitOfWork[RepositoryProtocol], redis_client: Redis
) -> AuthService:
    users = UserDirectory(uow)
    tokens = TokenService(uow, AccessTokenBlacklist(redis_client))
    credentials = CredentialValidator(
        users,
        LoginThrottle(redis_client),
        on_lockout=tokens.revoke_all_sessions,
    )
    return AuthService(users=users, credentials=credentials, tokens=tokens)


def get_auth_service(
    uow: ApplicationUnitOfWork[RepositoryProtocol] = Depends(get_unit_of_work),
    redis_client: Redis = Depends(get_redis_client),
) -> AuthService:
    return build_auth_service(uow, redis_client)
