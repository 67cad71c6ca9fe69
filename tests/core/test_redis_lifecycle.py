from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.core.errors.exceptions import UpstreamUnavailableException
from src.core.redis import lifecycle
from src.core.redis.dependencies import get_redis_client
from src.main.config import RedisConfig


@pytest.mark.asyncio
async def test_on_redis_startup_and_shutdown(monkeypatch: pytest.MonkeyPatch) -> None:
    client = SimpleNamespace(
        ping=AsyncMock(return_value=True),
        aclose=AsyncMock(return_value=None),
    )
    created_with: dict[str, Any] = {}

    def fake_create(connection_url: str, **kwargs: Any) -> SimpleNamespace:
        created_with.update(kwargs, connection_url=connection_url)
        return client

    monkeypatch.setattr(lifecycle, "create_redis_client", fake_create)
    redis_config = RedisConfig(
        REDIS_HOST="cache",
        REDIS_PORT=6379,
        REDIS_SOCKET_TIMEOUT=0.5,
        REDIS_CONNECT_TIMEOUT=0.25,
    )
    app = SimpleNamespace(state=SimpleNamespace())

    await lifecycle.on_redis_startup(app, redis_config)  # type: ignore[arg-type]

    assert app.state.redis_client is client
    assert created_with == {
        "connection_url": "redis://:@cache:6379/0",
        "socket_timeout": 0.5,
        "socket_connect_timeout": 0.25,
    }
    client.ping.assert_awaited_once()

    await lifecycle.on_redis_shutdown(app)  # type: ignore[arg-type]
    client.aclose.assert_awaited_once()
    assert app.state.redis_client is None


@pytest.mark.asyncio
async def test_get_redis_client_returns_from_state() -> None:
    redis_client = object()
    request = SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(redis_client=redis_client))
    )

    resolved = await get_redis_client(request)  # type: ignore[arg-type]

    assert resolved is redis_client


@pytest.mark.asyncio
async def test_get_redis_client_missing_is_unavailable() -> None:
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace()))

    with pytest.raises(UpstreamUnavailableException):
        await get_redis_client(request)  # type: ignore[arg-type]
