from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.main.config import PostgresConfig, config


def build_engine(postgres: PostgresConfig) -> AsyncEngine:
    """
    Async engine with short pool and driver timeouts, so a stalled database
    turns into an error the request can report instead of a hung request.
    """
    return create_async_engine(
        postgres.dsn_async,
        echo=postgres.DB_ECHO,
        pool_size=postgres.POOL_SIZE,
        max_overflow=postgres.MAX_OVERFLOW,
        pool_timeout=postgres.POOL_TIMEOUT,
        pool_pre_ping=True,
        pool_recycle=60 * 30,
        connect_args={
            "timeout": postgres.POSTGRES_CONNECT_TIMEOUT,
            "command_timeout": postgres.POSTGRES_COMMAND_TIMEOUT,
        },
    )


engine = build_engine(config.postgres)
