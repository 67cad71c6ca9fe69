from collections.abc import AsyncGenerator, Generator
import os

os.environ.setdefault("TESTING", "true")

from fastapi import FastAPI  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from src.core.database.session import get_session, get_unit_of_work  # noqa: E402
from src.core.redis.dependencies import get_redis_client  # noqa: E402
from src.main.config import Config, get_settings  # noqa: E402
from src.main.web import get_application  # noqa: E402
from src.user.auth.blacklist import AccessTokenBlacklist  # noqa: E402
from src.user.auth.services.auth_service import AuthService  # noqa: E402
from src.user.auth.services.credential_validator import (  # noqa: E402
    CredentialValidator,
)
from src.user.auth.services.token_service import TokenService  # noqa: E402
from src.user.auth.throttle import LoginThrottle  # noqa: E402
from src.user.models import User  # noqa: E402
from src.user.services import UserDirectory  # noqa: E402
from tests.factories.token_factory import FrozenClock, build_token_settings  # noqa: E402
from tests.factories.user_factory import build_user  # noqa: E402
from tests.fakes.db import FakeAsyncSession  # noqa: E402
from tests.fakes.redis import InMemoryRedis  # noqa: E402
from tests.fakes.stores import InMemoryDatabase, InMemoryUnitOfWork  # noqa: E402
from tests.helpers.dependencies import (  # noqa: E402
    DependencyOverrides,
    provide,
    provide_async,
)


@pytest.fixture(scope="session")
def settings() -> Config:
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def app() -> FastAPI:
    return get_application()


@pytest.fixture
def dependency_overrides(app: FastAPI) -> Generator[DependencyOverrides]:
    overrides = DependencyOverrides(app)
    yield overrides
    overrides.reset()


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def fake_session() -> FakeAsyncSession:
    return FakeAsyncSession()


@pytest.fixture
def memory_db() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def uow(memory_db: InMemoryDatabase) -> InMemoryUnitOfWork:
    return memory_db.unit_of_work()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def user(memory_db: InMemoryDatabase) -> User:
    return memory_db.add_user(build_user(email="jane@example.com", name="Jane"))


@pytest.fixture
def token_service(
    uow: InMemoryUnitOfWork, fake_redis: InMemoryRedis, clock: FrozenClock
) -> TokenService:
    return TokenService(
        uow,  # type: ignore[arg-type]
        AccessTokenBlacklist(fake_redis, prefix="test:blacklist"),  # type: ignore[arg-type]
        settings=build_token_settings(),
        clock=clock,
    )


@pytest.fixture
def login_throttle(fake_redis: InMemoryRedis) -> LoginThrottle:
    return LoginThrottle(
        fake_redis,  # type: ignore[arg-type]
        max_attempts=5,
        window_seconds=300,
        prefix="test:attempts",
    )


@pytest.fixture
def auth_service(
    uow: InMemoryUnitOfWork,
    token_service: TokenService,
    login_throttle: LoginThrottle,
) -> AuthService:
    users = UserDirectory(uow)  # type: ignore[arg-type]
    credentials = CredentialValidator(
        users,
        login_throttle,
        reset_on_success=True,
        on_lockout=token_service.revoke_all_sessions,
    )
    return AuthService(users=users, credentials=credentials, tokens=token_service)


@pytest.fixture
def app_with_fakes(
    app: FastAPI,
    dependency_overrides: DependencyOverrides,
    fake_redis: InMemoryRedis,
    fake_session: FakeAsyncSession,
    memory_db: InMemoryDatabase,
) -> FastAPI:
    async def provide_unit_of_work() -> AsyncGenerator[InMemoryUnitOfWork]:
        # One unit of work per request, all sharing the same in-memory tables
        yield memory_db.unit_of_work()

    dependency_overrides.set(get_redis_client, provide(fake_redis))
    dependency_overrides.set(get_session, provide_async(fake_session))
    dependency_overrides.set(get_unit_of_work, provide_unit_of_work)
    return app


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client


@pytest_asyncio.fixture
async def async_client_with_fakes(
    app_with_fakes: FastAPI,
) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app_with_fakes)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client
