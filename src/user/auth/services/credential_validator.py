from collections.abc import Awaitable, Callable
from typing import Any, NoReturn
from uuid import UUID

from loggers import get_logger
from src.core.utils.security import burn_password_check, mask_email, normalize_email
from src.main.config import config
from src.user.auth.exceptions import AccountLockedException, InvalidCredentialsException
from src.user.auth.throttle import LoginThrottle
from src.user.models import User
from src.user.services import UserDirectory

logger = get_logger(__name__)

LockoutListener = Callable[[UUID], Awaitable[Any]]


class CredentialValidator:
    """
    Checks e-mail and password, counting failures per e-mail.

    Callers only ever see InvalidCredentialsException or AccountLockedException;
    an unknown e-mail, a wrong password and a disabled account look the same.
    """

    def __init__(
        self,
        users: UserDirectory,
        throttle: LoginThrottle,
        reset_on_success: bool | None = None,
        on_lockout: LockoutListener | None = None,
    ) -> None:
        self.users = users
        self.throttle = throttle
        self.reset_on_success = (
            config.auth.LOGIN_RESET_ON_SUCCESS
            if reset_on_success is None
            else reset_on_success
        )
        self.on_lockout = on_lockout

    async def validate(self, email: str, password: str) -> User:
        email = normalize_email(email)

        # Checked first so that a correct password cannot bypass an active lockout
        if await self.throttle.is_locked(email):
            retry_after = await self.throttle.retry_after(email)
            logger.info("[CredentialValidator] Locked account %s", mask_email(email))
            raise AccountLockedException(retry_after, {"email": email})

        user = await self.users.find_by_email(email)
        if user is None:
            await burn_password_check(password)
            await self._reject(email, None)
        elif not (await self.users.verify_password(user, password) and user.is_active):
            await self._reject(email, user)

        if self.reset_on_success:
            await self.throttle.reset(email)
        return user

    async def _reject(self, email: str, user: User | None) -> NoReturn:
        attempts = await self.throttle.register_failure(email)
        logger.debug(
            "[CredentialValidator] Failed login for %s (%s attempt(s))",
            mask_email(email),
            attempts,
        )

        if attempts < self.throttle.max_attempts:
            raise InvalidCredentialsException({"email": email, "attempts": attempts})

        if attempts == self.throttle.max_attempts and user is not None:
            await self._notify_lockout(user)
        raise AccountLockedException(
            await self.throttle.retry_after(email), {"email": email}
        )

    async def _notify_lockout(self, user: User) -> None:
        if self.on_lockout is None:
            return
        try:
            await self.on_lockout(user.id)
        except Exception as exc:
            logger.error(
                "[CredentialValidator] Lockout listener failed for user %s: %s",
                user.id,
                exc,
            )
