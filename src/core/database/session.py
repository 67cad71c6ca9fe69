from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.database.engine import engine
from src.core.database.uow import ApplicationUnitOfWork, RepositoryProtocol, get_uow

async_session = async_sessionmaker(bind=engine, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_unit_of_work(
    session: AsyncSession = Depends(get_session),
) -> AsyncGenerator[ApplicationUnitOfWork[RepositoryProtocol]]:
    """
    Request-scoped Unit of Work over the request-scoped session.

    Services open their own `async with uow:` blocks; this dependency only
    hands out the instance.
    """
    uow = await get_uow(session)
    yield uow
