from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from src.core.errors.exceptions import (
    CoreException,
    InfrastructureException,
    InstanceAlreadyExistsException,
    PermissionDeniedException,
    UnauthorizedException,
    UpstreamUnavailableException,
)
from src.core.errors.handlers import (
    CoreExceptionHandler,
    InfrastructureExceptionHandler,
    InstanceAlreadyExistsExceptionHandler,
    PermissionDeniedExceptionHandler,
    RequestValidationExceptionHandler,
    UnauthorizedExceptionHandler,
    UpstreamUnavailableExceptionHandler,
    ValidationErrorExceptionHandler,
    as_exception_handler,
)
from src.healthcheck import routers as healthcheck_routers
from src.user import routers as user_routers
from src.user.auth import routers as auth_routers
from src.user.auth.exceptions import AccountLockedException
from src.user.auth.handlers import AccountLockedExceptionHandler


def include_routers(app: FastAPI) -> None:
    """
    Includes API routers into the FastAPI application.

    Parameters:
        app (FastAPI): The FastAPI application instance to which routers will
        be added.
    """
    v1_router = APIRouter()
    v1_router.include_router(auth_routers.router, prefix="/auth", tags=["Auth"])
    v1_router.include_router(user_routers.router, prefix="/users", tags=["Users"])

    app.include_router(v1_router, prefix="/v1")
    app.include_router(healthcheck_routers.router, tags=["System"])


def include_exceptions_handlers(app: FastAPI) -> None:
    """
    Registers exception handlers for the custom exception families. Starlette
    picks the handler registered for the closest class in the exception's MRO,
    so subclasses (e.g. AccountLockedException) may have their own.

    Parameters:
        app (FastAPI): The FastAPI application instance to which the exception handlers
        will be added.
    """
    app.add_exception_handler(
        InfrastructureException, as_exception_handler(InfrastructureExceptionHandler())
    )
    app.add_exception_handler(
        UpstreamUnavailableException,
        as_exception_handler(UpstreamUnavailableExceptionHandler()),
    )
    app.add_exception_handler(
        RequestValidationError,
        as_exception_handler(RequestValidationExceptionHandler()),
    )
    app.add_exception_handler(
        ValidationError, as_exception_handler(ValidationErrorExceptionHandler())
    )
    app.add_exception_handler(
        InstanceAlreadyExistsException,
        as_exception_handler(InstanceAlreadyExistsExceptionHandler()),
    )
    app.add_exception_handler(
        CoreException,
        as_exception_handler(CoreExceptionHandler()),
    )
    app.add_exception_handler(
        UnauthorizedException, as_exception_handler(UnauthorizedExceptionHandler())
    )
    app.add_exception_handler(
        AccountLockedException, as_exception_handler(AccountLockedExceptionHandler())
    )
    app.add_exception_handler(
        PermissionDeniedException,
        as_exception_handler(PermissionDeniedExceptionHandler()),
    )
