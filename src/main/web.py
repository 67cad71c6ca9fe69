import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.asgi import SentryAsgiMiddleware

from loggers import get_logger
from src.core.middleware import register_middlewares
from src.main.config import Config, config
from src.main.lifespan import lifespan
from src.main.presentation import include_exceptions_handlers, include_routers
from src.main.route_logging import log_routes_summary

logging.getLogger("uvicorn.access").disabled = True
logger = get_logger(__name__)

# Clients read these to back off after a lockout or an expired token
AUTH_RESPONSE_HEADERS = ("Retry-After", "WWW-Authenticate")


def exposed_headers(settings: Config) -> list[str]:
    headers = list(settings.app.CORS_EXPOSE_HEADERS)
    if "*" in headers:
        return headers
    return headers + [h for h in AUTH_RESPONSE_HEADERS if h not in headers]


def get_application(settings: Config = config) -> FastAPI:
    application = FastAPI(
        title=settings.app.PROJECT_NAME,
        debug=settings.app.DEBUG,
        version=settings.app.VERSION,
        lifespan=lifespan,
    )

    # Request timing, security headers, storage error mapping
    register_middlewares(application)

    # CORS
    application.add_middleware(
        CORSMiddleware,  # noqa
        allow_origins=settings.app.CORS_ALLOWED_ORIGINS,
        allow_credentials=settings.app.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.app.CORS_ALLOWED_METHODS,
        allow_headers=settings.app.CORS_ALLOWED_HEADERS,
        expose_headers=exposed_headers(settings),
    )

    include_exceptions_handlers(application)

    include_routers(application)
    log_routes_summary(application, include_debug_list=settings.app.DEBUG)

    # Sentry middleware for error tracking
    application.add_middleware(SentryAsgiMiddleware)

    return application


app = get_application()
