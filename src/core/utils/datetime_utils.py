from datetime import datetime
import re
from zoneinfo import ZoneInfo

from loggers import get_logger

logger = get_logger(__name__)

DURATION_UNITS: dict[str, int] = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
}
DURATION_PATTERN = re.compile(r"([0-9]+)([smhdw])")


def get_utc_now() -> datetime:
    """
    Get the current date and time in UTC.

    This function returns the current time with timezone information set to UTC,
    ensuring that the returned datetime object is offset-aware.

    Returns:
        datetime: The current date and time in UTC with tzinfo set to ZoneInfo("UTC").
    """
    return datetime.now(ZoneInfo("UTC"))


def parse_duration_to_seconds(value: str | None, default: int) -> int:
    """
    Convert a compact duration such as "15m" or "7d" to seconds.

    The last character is the unit (s, m, h, d, w) and the rest must be a
    non-negative integer. Anything else, including an empty value, yields
    `default`.

    >>> parse_duration_to_seconds("2h", 900)
    7200
    >>> parse_duration_to_seconds("15x", 900)
    900
    """
    if not value:
        return default

    match = DURATION_PATTERN.fullmatch(value.strip())
    if match is None:
        logger.warning(
            "[Duration] Unparseable duration %r, falling back to %ss", value, default
        )
        return default

    amount, unit = match.groups()
    return int(amount) * DURATION_UNITS[unit]


def seconds_until(expires_at: datetime | int | float, now: datetime | None = None) -> int:
    """
    Whole seconds left until `expires_at` (a datetime or a unix timestamp).
    Returns 0 once the moment has passed.
    """
    now = now or get_utc_now()
    if isinstance(expires_at, datetime):
        remaining = (expires_at - now).total_seconds()
    else:
        remaining = float(expires_at) - now.timestamp()
    return max(0, int(remaining))
