from fastapi import Request
from fastapi.responses import JSONResponse

from src.core.errors.handlers import (
    format_error_response,
    format_log_message,
    response_logger,
)
from src.user.auth.exceptions import AccountLockedException


class AccountLockedExceptionHandler:
    async def __call__(
        self, request: Request, exc: AccountLockedException
    ) -> JSONResponse:
        error_type = "Unauthorized"
        log_msg = format_log_message(
            request, "Account locked", exc.message, exc.additional_info
        )
        response_logger.warning(log_msg)
        headers = {"WWW-Authenticate": "Bearer"}
        if exc.retry_after > 0:
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=401,
            content=format_error_response(error_type, exc.message),
            headers=headers,
        )
