import pytest

from src.core.errors.exceptions import PermissionDeniedException
from src.user.auth.dependencies import (
    AccessGuardConfig,
    AccessTokenGuard,
    require_access_token,
    require_active_user,
)
from src.user.auth.exceptions import InvalidTokenException
from src.user.auth.services.auth_service import AuthService
from src.user.enums import UserRole
from src.user.models import User
from tests.factories.token_factory import FrozenClock, encode_claims
from tests.factories.user_factory import DEFAULT_PASSWORD, build_user
from tests.fakes.redis import InMemoryRedis
from tests.fakes.stores import InMemoryDatabase
from tests.helpers.requests import build_request


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def login(auth_service: AuthService, user: User, device_id: str = "dev1") -> str:
    pair = await auth_service.login(user.email, DEFAULT_PASSWORD, device_id)
    return pair.access_token


def test_extract_token_prefers_header_and_falls_back_to_cookie() -> None:
    guard = AccessTokenGuard()

    assert guard.extract_token(build_request(headers=bearer("a.b.c"))) == "a.b.c"
    assert (
        guard.extract_token(build_request(cookies={"Authentication": "c.o.k"}))
        == "c.o.k"
    )
    assert guard.extract_token(build_request()) is None


def test_extract_token_rejects_other_schemes() -> None:
    guard = AccessTokenGuard()
    request = build_request(
        headers={
            "Authorization": "Basic dXNlcjpwYXNz",
            "Cookie": "Authentication=c.o.k",
        }
    )

    assert guard.extract_token(request) is None


def test_extract_token_with_custom_header_and_no_cookie() -> None:
    guard = AccessTokenGuard(
        AccessGuardConfig(
            header_name="X-Access-Token", scheme="Token", cookie_name=None
        )
    )
    from_header = build_request(headers={"X-Access-Token": "Token t.o.k"})
    from_cookie = build_request(cookies={"Authentication": "c.o.k"})

    assert guard.extract_token(from_header) == "t.o.k"
    assert guard.extract_token(from_cookie) is None


@pytest.mark.asyncio
async def test_guard_returns_principal_for_valid_token(
    auth_service: AuthService, user: User
) -> None:
    token = await login(auth_service, user)

    principal = await require_access_token(
        build_request(headers=bearer(token)), auth_service
    )

    assert principal.id == user.id
    assert principal.email == user.email
    assert principal.role == UserRole.USER
    assert principal.token == token
    assert principal.user is None


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer not-a-jwt"}])
async def test_guard_rejects_missing_or_malformed_token(
    auth_service: AuthService, headers: dict[str, str]
) -> None:
    with pytest.raises(InvalidTokenException):
        await require_access_token(build_request(headers=headers), auth_service)


@pytest.mark.asyncio
async def test_guard_rejects_refresh_token(
    auth_service: AuthService, user: User
) -> None:
    pair = await auth_service.login(user.email, DEFAULT_PASSWORD, "dev1")

    with pytest.raises(InvalidTokenException):
        await require_access_token(
            build_request(headers=bearer(pair.refresh_token)), auth_service
        )


@pytest.mark.asyncio
async def test_guard_rejects_token_after_logout(
    auth_service: AuthService, user: User
) -> None:
    token = await login(auth_service, user)
    await auth_service.logout(user.id, token, "dev1")

    with pytest.raises(InvalidTokenException):
        await require_access_token(build_request(headers=bearer(token)), auth_service)


@pytest.mark.asyncio
async def test_guard_fails_closed_when_blacklist_unreachable(
    auth_service: AuthService, user: User, fake_redis: InMemoryRedis
) -> None:
    token = await login(auth_service, user)
    fake_redis.fail_with()

    with pytest.raises(InvalidTokenException):
        await require_access_token(build_request(headers=bearer(token)), auth_service)


@pytest.mark.asyncio
async def test_guard_rejects_unknown_role(
    auth_service: AuthService, user: User, clock: FrozenClock
) -> None:
    now = int(clock().timestamp())
    token = encode_claims(
        {
            "sub": str(user.id),
            "email": user.email,
            "role": "superuser",
            "jti": "jti-1",
            "iat": now,
            "exp": now + 60,
            "mode": "access_token",
        }
    )

    with pytest.raises(InvalidTokenException):
        await require_access_token(build_request(headers=bearer(token)), auth_service)


@pytest.mark.asyncio
async def test_role_restricted_guard(
    auth_service: AuthService, user: User, memory_db: InMemoryDatabase
) -> None:
    admin = memory_db.add_user(
        build_user(email="admin@example.com", role=UserRole.ADMIN)
    )
    require_admin = AccessTokenGuard(
        AccessGuardConfig(required_roles=frozenset({UserRole.ADMIN}))
    )

    user_token = await login(auth_service, user)
    admin_token = await login(auth_service, admin)

    with pytest.raises(PermissionDeniedException):
        await require_admin(build_request(headers=bearer(user_token)), auth_service)
    principal = await require_admin(
        build_request(headers=bearer(admin_token)), auth_service
    )
    assert principal.role == UserRole.ADMIN


@pytest.mark.asyncio
async def test_active_user_guard_loads_and_checks_user(
    auth_service: AuthService, user: User
) -> None:
    token = await login(auth_service, user)

    request = build_request(headers=bearer(token))

    principal = await require_active_user(request, auth_service)
    assert principal.user is not None
    assert principal.user.id == user.id

    user.is_active = False
    with pytest.raises(InvalidTokenException):
        await require_active_user(request, auth_service)
