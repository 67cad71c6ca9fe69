from typing import Any, cast

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.repositories import BaseRepository
from src.core.database.uow.abstract import R, RepositoryProtocol
from src.core.database.uow.sqlalchemy import RepositoryInstance, SQLAlchemyUnitOfWork
from src.user.auth.repositories import RefreshTokenRepository
from src.user.repositories import UserRepository


class ApplicationUnitOfWork(SQLAlchemyUnitOfWork[R]):
    """
    Application-specific Unit of Work implementation.

    This class extends SQLAlchemyUnitOfWork and provides repository factory methods
    for all repositories used in the application.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self._repositories: dict[type[BaseRepository[Any]], BaseRepository[Any]] = {}

    def _get_repository(
        self, repository_type: type[RepositoryInstance]
    ) -> RepositoryInstance:
        """
        Get or create a repository of the specified type.

        Repositories are stateless, so one instance per unit of work is enough.
        """
        if repository_type not in self._repositories:
            self._repositories[repository_type] = repository_type()

        return cast(RepositoryInstance, self._repositories[repository_type])

    @property
    def users(self) -> UserRepository:
        return self._get_repository(UserRepository)

    @property
    def refresh_tokens(self) -> RefreshTokenRepository:
        return self._get_repository(RefreshTokenRepository)


async def get_uow(session: AsyncSession) -> ApplicationUnitOfWork[RepositoryProtocol]:
    """
    Build an ApplicationUnitOfWork over the given session.

    Args:
        session: The SQLAlchemy AsyncSession to use for database operations

    Returns:
        ApplicationUnitOfWork: The UnitOfWork instance
    """
    return ApplicationUnitOfWork(session)
