from typing import Any

import httpx
import pytest

from tests.factories.user_factory import DEFAULT_PASSWORD
from tests.fakes.redis import InMemoryRedis
from tests.fakes.stores import InMemoryDatabase

REGISTER_URL = "/v1/auth/register"
LOGIN_URL = "/v1/auth/login"
REFRESH_URL = "/v1/auth/refresh"
LOGOUT_URL = "/v1/auth/logout"
PROFILE_URL = "/v1/users/me"


def registration(**overrides: Any) -> dict[str, Any]:
    body = {
        "email": "Jane@Example.com",
        "name": "Jane",
        "password": DEFAULT_PASSWORD,
        "confirmPassword": DEFAULT_PASSWORD,
        "deviceId": "phone-1",
    }
    body.update(overrides)
    return body


def credentials(password: str = DEFAULT_PASSWORD, device_id: str = "phone-1"):
    return {"email": "jane@example.com", "password": password, "deviceId": device_id}


def assert_token_pair(body: dict[str, Any]) -> None:
    assert set(body) == {"accessToken", "refreshToken", "expiresIn", "tokenType"}
    assert body["tokenType"] == "Bearer"
    assert body["expiresIn"] == 900


@pytest.mark.asyncio
async def test_register_returns_token_pair(
    async_client_with_fakes: httpx.AsyncClient, memory_db: InMemoryDatabase
) -> None:
    response = await async_client_with_fakes.post(REGISTER_URL, json=registration())

    assert response.status_code == 201
    assert_token_pair(response.json())
    assert response.headers["Cache-Control"] == "no-store"

    (user,) = memory_db.users.values()
    assert user.email == "jane@example.com"
    assert user.password != DEFAULT_PASSWORD
    assert len(memory_db.live_tokens(user.id, "phone-1")) == 1


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    first = await async_client_with_fakes.post(REGISTER_URL, json=registration())
    second = await async_client_with_fakes.post(
        REGISTER_URL, json=registration(deviceId="laptop")
    )

    assert first.status_code == 201
    assert second.status_code == 409
    assert "jane@example.com" not in second.text.lower()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"email": "not-an-email"},
        {"password": "weak", "confirmPassword": "weak"},
        {"confirmPassword": "Other!pass1"},
        {"deviceId": ""},
        {"deviceId": "bad device/id"},
        {"name": "<script>"},
    ],
)
async def test_register_rejects_invalid_payload(
    async_client_with_fakes: httpx.AsyncClient,
    memory_db: InMemoryDatabase,
    overrides: dict[str, Any],
) -> None:
    response = await async_client_with_fakes.post(
        REGISTER_URL, json=registration(**overrides)
    )

    assert response.status_code == 422
    assert DEFAULT_PASSWORD not in response.text
    assert memory_db.users == {}


@pytest.mark.asyncio
async def test_login_refresh_logout_flow(
    async_client_with_fakes: httpx.AsyncClient, memory_db: InMemoryDatabase
) -> None:
    await async_client_with_fakes.post(REGISTER_URL, json=registration())

    login = await async_client_with_fakes.post(LOGIN_URL, json=credentials())
    assert login.status_code == 200
    tokens = login.json()
    assert_token_pair(tokens)

    refreshed = await async_client_with_fakes.post(
        REFRESH_URL,
        json={"refreshToken": tokens["refreshToken"], "deviceId": "phone-1"},
    )
    assert refreshed.status_code == 200
    new_tokens = refreshed.json()
    assert new_tokens["refreshToken"] != tokens["refreshToken"]

    replay = await async_client_with_fakes.post(
        REFRESH_URL,
        json={"refreshToken": tokens["refreshToken"], "deviceId": "phone-1"},
    )
    assert replay.status_code == 401
    assert replay.headers["WWW-Authenticate"] == "Bearer"

    auth = {"Authorization": f"Bearer {new_tokens['accessToken']}"}
    profile = await async_client_with_fakes.get(PROFILE_URL, headers=auth)
    assert profile.status_code == 200
    assert profile.json()["email"] == "jane@example.com"
    assert "password" not in profile.json()

    logout = await async_client_with_fakes.post(
        LOGOUT_URL, json={"deviceId": "phone-1"}, headers=auth
    )
    assert logout.status_code == 204

    after_logout = await async_client_with_fakes.get(PROFILE_URL, headers=auth)
    assert after_logout.status_code == 401

    (user,) = memory_db.users.values()
    assert memory_db.live_tokens(user.id) == []


@pytest.mark.asyncio
async def test_refresh_from_other_device_is_rejected(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    tokens = (
        await async_client_with_fakes.post(REGISTER_URL, json=registration())
    ).json()

    response = await async_client_with_fakes.post(
        REFRESH_URL,
        json={"refreshToken": tokens["refreshToken"], "deviceId": "laptop"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_requires_access_token(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    response = await async_client_with_fakes.post(
        LOGOUT_URL, json={"deviceId": "phone-1"}
    )

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_wrong_password_and_unknown_email_look_the_same(
    async_client_with_fakes: httpx.AsyncClient,
) -> None:
    await async_client_with_fakes.post(REGISTER_URL, json=registration())

    wrong_password = await async_client_with_fakes.post(
        LOGIN_URL, json=credentials(password="Wr0ng!pass")
    )
    unknown = await async_client_with_fakes.post(
        LOGIN_URL,
        json={
            "email": "nobody@example.com",
            "password": DEFAULT_PASSWORD,
            "deviceId": "phone-1",
        },
    )

    assert wrong_password.status_code == unknown.status_code == 401
    assert wrong_password.json() == unknown.json()


@pytest.mark.asyncio
async def test_lockout_after_repeated_failures(
    async_client_with_fakes: httpx.AsyncClient, memory_db: InMemoryDatabase
) -> None:
    await async_client_with_fakes.post(REGISTER_URL, json=registration())

    statuses = []
    for _ in range(5):
        response = await async_client_with_fakes.post(
            LOGIN_URL, json=credentials(password="Wr0ng!pass")
        )
        statuses.append(response.status_code)
    assert statuses == [401] * 5
    assert response.json()["message"] == "Account temporarily locked"
    assert 0 < int(response.headers["Retry-After"]) <= 300

    # Correct password does not get through while locked
    locked = await async_client_with_fakes.post(LOGIN_URL, json=credentials())
    assert locked.status_code == 401
    assert "Retry-After" in locked.headers

    # Reaching the threshold revoked the session created at registration
    (user,) = memory_db.users.values()
    assert memory_db.live_tokens(user.id) == []


@pytest.mark.asyncio
async def test_login_lockout_expires(
    async_client_with_fakes: httpx.AsyncClient, fake_redis: InMemoryRedis
) -> None:
    await async_client_with_fakes.post(REGISTER_URL, json=registration())
    for _ in range(5):
        await async_client_with_fakes.post(
            LOGIN_URL, json=credentials(password="Wr0ng!pass")
        )

    fake_redis.advance(301)
    response = await async_client_with_fakes.post(LOGIN_URL, json=credentials())

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_login_keeps_working_while_throttle_cache_is_down(
    async_client_with_fakes: httpx.AsyncClient, fake_redis: InMemoryRedis
) -> None:
    await async_client_with_fakes.post(REGISTER_URL, json=registration())
    fake_redis.fail_with()

    wrong = await async_client_with_fakes.post(
        LOGIN_URL, json=credentials(password="Wr0ng!pass")
    )
    right = await async_client_with_fakes.post(LOGIN_URL, json=credentials())

    assert wrong.status_code == 401
    assert "Retry-After" not in wrong.headers
    assert right.status_code == 200


@pytest.mark.asyncio
async def test_access_token_rejected_while_blacklist_cache_is_down(
    async_client_with_fakes: httpx.AsyncClient, fake_redis: InMemoryRedis
) -> None:
    tokens = (
        await async_client_with_fakes.post(REGISTER_URL, json=registration())
    ).json()
    fake_redis.fail_with()

    response = await async_client_with_fakes.get(
        PROFILE_URL, headers={"Authorization": f"Bearer {tokens['accessToken']}"}
    )

    assert response.status_code == 401
