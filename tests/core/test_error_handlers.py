import json
import logging

from fastapi import Request
import pytest

from src.core.errors import handlers
from src.core.errors.exceptions import (
    CoreException,
    InstanceAlreadyExistsException,
    PermissionDeniedException,
    UnauthorizedException,
    UpstreamUnavailableException,
)
from src.user.auth import handlers as auth_handlers
from src.user.auth.exceptions import AccountLockedException, InvalidTokenException
from tests.helpers.requests import build_request


def _build_request(headers: list[tuple[bytes, bytes]] | None = None) -> Request:
    return build_request(
        path="/v1/resource", headers=headers or [], client=("127.0.0.1", 8000)
    )


@pytest.fixture(autouse=True)
def _patch_response_logger(monkeypatch: pytest.MonkeyPatch) -> logging.Logger:
    logger = logging.getLogger("response_logger_test")
    logger.handlers = []
    logger.setLevel(logging.DEBUG)
    logger.propagate = True
    monkeypatch.setattr(handlers, "response_logger", logger)
    return logger


def test_format_log_message_masks_sensitive_data() -> None:
    request = _build_request(headers=[(b"x-request-id", b"req-123")])

    message = handlers.format_log_message(
        request,
        "unauthorized",
        "token leaked",
        {"refresh_token": "secret", "Email": "a@b.c", "note": "safe"},
        include_request_path=True,
    )

    assert "[req-123] [Unauthorized] GET /v1/resource | token leaked" in message
    assert "refresh_token=***" in message
    assert "Email=***" in message
    assert "secret" not in message
    assert "note='safe'" in message


def test_format_log_message_truncates_long_text() -> None:
    request = _build_request()
    long_message = "a" * 600

    message = handlers.format_log_message(request, "error", long_message)

    assert message.endswith("...")
    assert message.count("a") == 497


@pytest.mark.asyncio
async def test_core_exception_handler(caplog: pytest.LogCaptureFixture) -> None:
    handler = handlers.CoreExceptionHandler()
    request = _build_request()
    caplog.set_level(logging.INFO, logger="response_logger_test")

    response = await handler(request, CoreException("failed to process"))

    assert response.status_code == 400
    assert json.loads(response.body) == {
        "error": "Bad request",
        "message": "failed to process",
    }
    assert any("Bad request" in record.message for record in caplog.records)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "handler_cls,exc_cls,status,error_type,log_level,include_path",
    [
        (
            handlers.InstanceAlreadyExistsExceptionHandler,
            InstanceAlreadyExistsException,
            409,
            "Instance already exists",
            logging.INFO,
            False,
        ),
        (
            handlers.UnauthorizedExceptionHandler,
            UnauthorizedException,
            401,
            "Unauthorized",
            logging.WARNING,
            True,
        ),
        (
            handlers.PermissionDeniedExceptionHandler,
            PermissionDeniedException,
            403,
            "Permission Denied",
            logging.WARNING,
            True,
        ),
    ],
)
async def test_other_handlers(
    handler_cls: type[handlers.HandlerCallable],
    exc_cls: type[CoreException],
    status: int,
    error_type: str,
    log_level: int,
    include_path: bool,
    caplog: pytest.LogCaptureFixture,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    handler_instance = handler_cls()
    request = _build_request()
    caplog.set_level(log_level, logger="response_logger_test")

    if include_path:
        original = handlers.format_log_message
        monkeypatch.setattr(
            handlers,
            "format_log_message",
            lambda req, err, msg, add=None, include_request_path=False: original(
                req, err, msg, add, include_request_path=True
            ),
        )

    response = await handler_instance(request, exc_cls("failure"))

    assert response.status_code == status
    assert json.loads(response.body) == {"error": error_type, "message": "failure"}
    assert any(
        record.levelno == log_level and error_type in record.message
        for record in caplog.records
    )


@pytest.mark.asyncio
async def test_upstream_unavailable_handler_hides_internal_detail(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: list[BaseException] = []
    monkeypatch.setattr(handlers.sentry_sdk, "capture_exception", captured.append)
    handler = handlers.UpstreamUnavailableExceptionHandler()
    exc = UpstreamUnavailableException(
        "Database unavailable", {"operation": "users.find_by_email"}
    )

    response = await handler(_build_request(), exc)

    assert response.status_code == 503
    body = json.loads(response.body)
    assert body["error"] == "Service unavailable"
    assert "Database" not in body["message"]
    assert captured == [exc]


@pytest.mark.asyncio
async def test_unauthorized_handler_sets_bearer_challenge() -> None:
    handler = handlers.UnauthorizedExceptionHandler()

    response = await handler(_build_request(), InvalidTokenException({"reason": "x"}))

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert json.loads(response.body)["message"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_account_locked_handler_sets_retry_after() -> None:
    handler = auth_handlers.AccountLockedExceptionHandler()

    response = await handler(_build_request(), AccountLockedException(120))

    assert response.status_code == 401
    assert response.headers["Retry-After"] == "120"
    assert json.loads(response.body) == {
        "error": "Unauthorized",
        "message": "Account temporarily locked",
    }


@pytest.mark.asyncio
async def test_account_locked_handler_omits_retry_after_without_window() -> None:
    handler = auth_handlers.AccountLockedExceptionHandler()

    response = await handler(_build_request(), AccountLockedException(0))

    assert "Retry-After" not in response.headers
