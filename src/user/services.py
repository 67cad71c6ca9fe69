import asyncio
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from loggers import get_logger
from src.core.database.errors import upstream_database_errors
from src.core.database.uow import ApplicationUnitOfWork, RepositoryProtocol
from src.core.errors.exceptions import UpstreamUnavailableException
from src.core.utils.retry import with_retries
from src.core.utils.security import (
    hash_password,
    mask_email,
    normalize_email,
    verify_password,
)
from src.user.auth.exceptions import DuplicateEmailException
from src.user.enums import UserRole
from src.user.models import User

logger = get_logger(__name__)

read_retry = with_retries(
    max_retries=2, delay=0, retry_on=(UpstreamUnavailableException,)
)


@dataclass(frozen=True, slots=True)
class NewUser:
    email: str
    name: str
    password: str
    role: UserRole = UserRole.USER


class UserDirectory:
    """User lookups, password checks and registration."""

    def __init__(self, uow: ApplicationUnitOfWork[RepositoryProtocol]) -> None:
        self.uow = uow

    @read_retry
    async def find_by_email(self, email: str) -> User | None:
        async with upstream_database_errors("users.find_by_email"):
            async with self.uow as uow:
                return await uow.users.get_single(
                    uow.session, email=normalize_email(email)
                )

    @read_retry
    async def find_by_id(self, user_id: UUID) -> User | None:
        async with upstream_database_errors("users.find_by_id"):
            async with self.uow as uow:
                return await uow.users.get_single(uow.session, id=user_id)

    async def verify_password(self, user: User, plaintext: str) -> bool:
        return await verify_password(plaintext, user.password)

    async def create(self, registration: NewUser) -> User:
        """
        Register a new account.

        Raises:
            DuplicateEmailException: the e-mail is already registered
        """
        email = normalize_email(registration.email)
        password_hash = await asyncio.to_thread(hash_password, registration.password)
        async with upstream_database_errors("users.create"):
            async with self.uow as uow:
                if await uow.users.exists(uow.session, email=email):
                    logger.info(
                        "[UserDirectory] Registration rejected, %s already exists",
                        mask_email(email),
                    )
                    raise DuplicateEmailException({"email": email})
                try:
                    user = await uow.users.create(
                        uow.session,
                        {
                            "email": email,
                            "name": registration.name,
                            "password": password_hash,
                            "role": registration.role,
                            "is_active": True,
                        },
                    )
                    await uow.flush()
                    await uow.commit()
                except IntegrityError as exc:
                    # Lost a race with a concurrent registration
                    logger.info(
                        "[UserDirectory] Concurrent registration for %s",
                        mask_email(email),
                    )
                    raise DuplicateEmailException({"email": email}) from exc

        logger.info("[UserDirectory] Registered user %s", user.id)
        return user
