from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import hashlib

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def safe_begin(session: AsyncSession) -> AsyncGenerator[None]:
    """
    Context manager that guarantees a transactional scope for ORM operations.

    - If the session is not already in a transaction, opens a regular transaction
      (BEGIN...COMMIT/ROLLBACK).
    - If the session is already in a transaction, creates a nested transaction
      (SAVEPOINT) to allow local commit or rollback without affecting the outer transaction.

    Args:
        session (AsyncSession): The SQLAlchemy async session to manage.
    """
    if session.in_transaction():
        async with session.begin_nested():
            yield
    else:
        async with session.begin():
            yield


def _string_to_int64(key: str) -> int:
    """Map an arbitrary string to the signed 64-bit key space of pg advisory locks."""
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, byteorder="big", signed=True)


def _ensure_transaction(session: AsyncSession) -> None:
    if not session.in_transaction():
        raise RuntimeError(
            "Transaction-scoped advisory locks require an active transaction"
        )


async def advisory_xact_lock(session: AsyncSession, key: str) -> None:
    """
    Block until the transaction-scoped advisory lock for `key` is held.

    The lock is released by PostgreSQL at COMMIT or ROLLBACK, so it can only be
    taken inside an open transaction.
    """
    _ensure_transaction(session)
    await session.execute(
        text("SELECT pg_advisory_xact_lock(:key)"), {"key": _string_to_int64(key)}
    )

