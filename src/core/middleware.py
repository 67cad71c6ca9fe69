from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import re
import time
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import redis.exceptions as redis_exc
import sentry_sdk
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from starlette.responses import Response

from loggers import get_logger

logger = get_logger(__name__)
timing_logger = get_logger("src.request.timing", plain_format=True)
UNEXPECTED_ERROR_DETAIL = "Unexpected error"
UNAVAILABLE_DETAIL = "Service temporarily unavailable, please retry later"
AUTH_PATH_PREFIX = "/v1/auth"


@dataclass(slots=True)
class PostgresqlErrorHandlingResult:
    response: JSONResponse
    send_to_sentry: bool
    is_server_error: bool


def register_middlewares(app: FastAPI) -> None:
    """Registers all custom middlewares in proper order"""

    @app.middleware("http")
    async def security_headers_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Content-Security-Policy", "frame-ancestors 'none'")
        if request.url.path.startswith(AUTH_PATH_PREFIX):
            # Token responses must never be cached by intermediaries
            response.headers.setdefault("Cache-Control", "no-store")
            response.headers.setdefault("Pragma", "no-cache")
        return response

    @app.middleware("http")
    async def request_timing_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        if process_time < 0.5:
            level = timing_logger.info
            category = "[FAST]"
        elif process_time < 2:
            level = timing_logger.warning
            category = "[MODERATE]"
        else:
            level = timing_logger.warning
            category = "[SLOW]"

        method = request.method
        path = request.url.path
        status_code = response.status_code
        duration = f"{process_time:.3f}s"

        level("%s %s %s |%s|%s", category, method, path, duration, status_code)

        return response

    @app.middleware("http")
    async def storage_error_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except IntegrityError as exc:
            handled_result = handle_postgresql_error(exc)
            if handled_result.is_server_error:
                logger.error(
                    "Integrity error at %s: %s", request.url.path, exc.orig, exc_info=True
                )
            else:
                logger.info("Integrity error at %s: %s", request.url.path, exc.orig)
            if handled_result.send_to_sentry:
                sentry_sdk.capture_exception(exc)
            return handled_result.response
        except OperationalError as e:
            logger.error("Database connection error at %s: %s", request.url.path, e.orig)
            sentry_sdk.capture_exception(e)
            return JSONResponse(
                status_code=503,
                content={"detail": UNAVAILABLE_DETAIL},
                headers={"Retry-After": "1"},
            )

        except redis_exc.ConnectionError as e:
            logger.error("Redis connection error at %s: %s", request.url.path, e)
            sentry_sdk.capture_exception(e)
            return JSONResponse(
                status_code=503,
                content={"detail": UNAVAILABLE_DETAIL},
                headers={"Retry-After": "1"},
            )
        except ProgrammingError as e:
            logger.error("SQL error at %s: %s", request.url.path, e.orig)
            sentry_sdk.capture_exception(e)
            return JSONResponse(
                status_code=500, content={"detail": "Database query error."}
            )

    @app.middleware("http")
    async def unexpected_error_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            error_traceback = traceback.format_exc()
            logger.error(
                "Unexpected error at %s: %s\n%s",
                request.url.path,
                str(e),
                error_traceback,
            )
            sentry_sdk.capture_exception(e)
            return JSONResponse(
                status_code=500, content={"detail": UNEXPECTED_ERROR_DETAIL}
            )


# sqlstate -> status code for violations caused by client input
_CLIENT_INTEGRITY_ERRORS: dict[str, int] = {
    "23505": 409,  # unique_violation
    "23503": 400,  # foreign_key_violation
}


def _extract_detail(orig_error: Any) -> str:
    detail_message = getattr(orig_error, "detail", None)
    if detail_message:
        return str(detail_message)
    raw_message = str(orig_error)
    if "DETAIL:" in raw_message:
        return raw_message.split("DETAIL:")[-1].strip()
    return "No additional details provided."


def handle_postgresql_error(
    error: IntegrityError,
) -> PostgresqlErrorHandlingResult:
    """
    Map a PostgreSQL IntegrityError onto a response. Unique and foreign-key
    violations are client errors; every other constraint failure is a server
    error reported to Sentry with a generic body.
    """
    orig_error = error.orig
    sqlstate = getattr(orig_error, "sqlstate", None)
    status_code = _CLIENT_INTEGRITY_ERRORS.get(sqlstate or "")

    if status_code is None:
        if sqlstate == "23502":  # not_null_violation
            logger.error(
                "NotNullViolation on column=%s | detail=%s",
                getattr(orig_error, "column_name", None),
                _extract_detail(orig_error),
            )
        return PostgresqlErrorHandlingResult(
            response=JSONResponse(
                status_code=500, content={"detail": UNEXPECTED_ERROR_DETAIL}
            ),
            send_to_sentry=True,
            is_server_error=True,
        )

    detail_message = _extract_detail(orig_error)
    if status_code == 409:
        # Report only the conflicting key name, never the value (may be an email)
        match = re.search(r"\(([^)]+)\)", detail_message)
        detail_message = f"Conflict on {match.group(1)}" if match else "Conflict"
    return PostgresqlErrorHandlingResult(
        response=JSONResponse(status_code=status_code, content={"detail": detail_message}),
        send_to_sentry=False,
        is_server_error=False,
    )
