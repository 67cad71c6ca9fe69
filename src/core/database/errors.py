from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError

from loggers import get_logger
from src.core.errors.exceptions import UpstreamUnavailableException

logger = get_logger(__name__)


@asynccontextmanager
async def upstream_database_errors(operation: str) -> AsyncGenerator[None]:
    """
    Re-raise driver and ORM failures as `UpstreamUnavailableException`.

    Domain exceptions raised inside the block pass through untouched. Callers
    that need to react to a specific database error (e.g. a unique violation)
    catch it inside the block.
    """
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        logger.error("[Database] %s failed: %s", operation, exc.__class__.__name__)
        raise UpstreamUnavailableException(
            "Database unavailable",
            {"operation": operation, "error": exc.__class__.__name__},
        ) from exc
