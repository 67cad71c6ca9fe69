import logging
from logging import FileHandler, Handler, Logger, StreamHandler
import os
import re
from typing import Any

from src.main.config import config

LOG_DIR = os.path.join(str(config.project_root), "logs")
LOG_FILE = os.path.join(LOG_DIR, "debug.log")

logging_format = "%(asctime)s [%(levelname)s]|[%(process)d]| %(name)s: %(message)s"
time_logging_format = "%Y-%m-%d %H:%M:%S"

log_level = getattr(logging, config.app.LOG_LEVEL.upper(), logging.INFO)
file_log_level = getattr(logging, config.app.LOG_LEVEL_FILE.upper(), logging.WARNING)

# header.payload.signature, base64url segments as emitted by PyJWT
JWT_PATTERN = re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")
REDACTED_TOKEN = "<redacted-jwt>"


class RedactTokensFilter(logging.Filter):
    """Replaces anything that looks like a signed JWT in the final message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = JWT_PATTERN.sub(REDACTED_TOKEN, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _with_redaction(handler: Handler) -> Handler:
    handler.addFilter(RedactTokensFilter())
    return handler


def get_file_handler() -> FileHandler:
    os.makedirs(LOG_DIR, exist_ok=True)
    file_handler = logging.FileHandler(LOG_FILE, "a", "utf-8")
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(logging.Formatter(logging_format, time_logging_format))
    _with_redaction(file_handler)
    return file_handler


def get_stream_handler() -> StreamHandler:  # type: ignore
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(logging.Formatter(logging_format, time_logging_format))
    _with_redaction(stream_handler)
    return stream_handler


def get_logger(name: Any, *, plain_format: bool = False) -> Logger:
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(log_level)

    if plain_format:
        formatter = logging.Formatter(
            "%(asctime)s [%(process)d]| %(message)s", time_logging_format
        )
        stream_handler = StreamHandler()
        stream_handler.setLevel(log_level)
        stream_handler.setFormatter(formatter)
        logger.addHandler(_with_redaction(stream_handler))
    else:
        if config.app.LOG_TO_FILE:
            logger.addHandler(get_file_handler())
        logger.addHandler(get_stream_handler())

    logger.propagate = False
    return logger
