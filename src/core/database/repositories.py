from typing import Any, Generic, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from loggers import get_logger
from src.core.database.base import Base as SQLAlchemyBase
from src.core.database.transactions import advisory_xact_lock

logger = get_logger(__name__)

T = TypeVar("T", bound=SQLAlchemyBase)


class BaseRepository(Generic[T]):
    """
    Base repository with common SQLAlchemy operations. Writes are staged on the
    session passed in; the unit of work owning that session commits them.
    """

    model: type[T]

    def __init__(self) -> None:
        if not hasattr(self, "model"):
            raise NotImplementedError("Subclasses must define class variable 'model'")

    async def create(self, session: AsyncSession, data: dict[str, Any]) -> T:
        """Stage a new record on the provided session."""
        instance = self.model(**data)
        session.add(instance)
        logger.debug("%s created [Staged, pending commit].", self.model.__name__)
        return instance

    async def exists(self, session: AsyncSession, **filters: Any) -> bool:
        """Determine if any record matches the provided filters."""
        subquery = select(1).select_from(self.model).filter_by(**filters).limit(1)
        query = select(subquery.exists())
        return bool(await session.scalar(query))

    async def get_single(self, session: AsyncSession, **filters: Any) -> T | None:
        """Retrieve a single record using the provided session."""
        query = select(self.model).filter_by(**filters).limit(1)
        result = await session.execute(query)
        return result.scalars().first()

    async def update_where(
        self,
        session: AsyncSession,
        data: dict[str, Any],
        *conditions: ColumnElement[bool],
        **filters: Any,
    ) -> int:
        """
        Bulk UPDATE in a single statement. Returns the number of rows matched,
        which lets callers treat the statement as a compare-and-set.
        """
        if not conditions:
            self._ensure_filters_present(filters)
        query = (
            update(self.model)
            .where(*conditions)
            .filter_by(**filters)
            .values(**data)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(query)
        rowcount = int(getattr(result, "rowcount", 0) or 0)
        logger.debug(
            "%s bulk update matched %s row(s) [Staged, pending commit].",
            self.model.__name__,
            rowcount,
        )
        return rowcount

    def _lock_key(self, key: str) -> str:
        return f"{self.model.__tablename__}:{key}"

    async def xact_lock(self, session: AsyncSession, key: str) -> None:
        """Take a blocking transaction-scoped advisory lock namespaced by table."""
        await advisory_xact_lock(session, self._lock_key(key))

    @staticmethod
    def _ensure_filters_present(filters: dict[str, Any]) -> None:
        if not filters:
            raise ValueError("At least one filter must be provided for update")
