"""
Transaction boundary for the services: each `async with uow:` block is one
database transaction, and the repositories hang off the unit of work.
"""

from src.core.database.uow.abstract import RepositoryProtocol, UnitOfWork
from src.core.database.uow.application import ApplicationUnitOfWork, get_uow
from src.core.database.uow.sqlalchemy import SQLAlchemyUnitOfWork

__all__ = [
    "ApplicationUnitOfWork",
    "RepositoryProtocol",
    "SQLAlchemyUnitOfWork",
    "UnitOfWork",
    "get_uow",
]
