import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from loggers import get_logger
from src.main.config import config

logger = get_logger(__name__)

_sentry_initialized = False

FILTERED = "[Filtered]"

# Request parts that carry credentials in this service
SCRUBBED_HEADERS = frozenset({"authorization", "cookie", "set-cookie"})
SCRUBBED_BODY_FIELDS = frozenset(
    {
        "password",
        "confirmPassword",
        "confirm_password",
        "refreshToken",
        "refresh_token",
        "accessToken",
        "access_token",
    }
)


def scrub_event(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """
    `before_send` hook: drop credentials and tokens from the request data
    attached to an event.
    """
    request = event.get("request")
    if not isinstance(request, dict):
        return event

    headers = request.get("headers")
    if isinstance(headers, dict):
        request["headers"] = {
            k: FILTERED if k.lower() in SCRUBBED_HEADERS else v
            for k, v in headers.items()
        }
    if "cookies" in request:
        request["cookies"] = FILTERED

    body = request.get("data")
    if isinstance(body, dict):
        request["data"] = {
            k: FILTERED if k in SCRUBBED_BODY_FIELDS else v for k, v in body.items()
        }
    return event


def init_sentry() -> None:
    """
    Initialize the Sentry client once using environment variables.
    """
    global _sentry_initialized

    if _sentry_initialized:
        return

    if config.app.DEBUG or config.app.TESTING:
        logger.info("DEBUG/TESTING enabled. Skipping Sentry initialization.")
        return

    if not config.sentry.SENTRY_ENABLED or not config.sentry.SENTRY_DSN:
        logger.info("Sentry disabled or DSN empty. Skipping Sentry initialization.")
        return

    sentry_sdk.init(
        dsn=config.sentry.SENTRY_DSN,
        environment=config.sentry.SENTRY_ENV,
        release=config.app.VERSION,
        send_default_pii=False,
        before_send=scrub_event,
        integrations=[
            LoggingIntegration(
                level=logging.INFO,  # breadcrumbs
                event_level=logging.CRITICAL,  # lower levels are captured explicitly
            ),
        ],
    )
    _sentry_initialized = True
    logger.info("Sentry initialized for %s.", config.sentry.SENTRY_ENV)
