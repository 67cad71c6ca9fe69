from typing import Annotated

from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_session
from src.core.redis.dependencies import get_redis_client
from src.healthcheck.services import ReadinessService

router = APIRouter()


def get_readiness_service(
    redis_client: Annotated[Redis, Depends(get_redis_client)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ReadinessService:
    return ReadinessService(redis_client, session)


@router.get("/health/", response_model=dict)
@router.head("/health/", include_in_schema=False)
async def check_health() -> dict[str, str]:
    """Liveness: the process is up and serving requests."""
    return {"status": "ok"}


@router.get("/health/ready", response_model=dict)
async def check_readiness(
    service: Annotated[ReadinessService, Depends(get_readiness_service)],
) -> dict[str, str]:
    """Readiness: the cache and the database both answer."""
    return await service.check()
