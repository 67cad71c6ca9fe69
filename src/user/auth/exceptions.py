from typing import Any

from src.core.errors.exceptions import (
    InstanceAlreadyExistsException,
    UnauthorizedException,
)
from src.user.auth.constants import (
    ACCOUNT_LOCKED_MESSAGE,
    DUPLICATE_EMAIL_MESSAGE,
    INVALID_CREDENTIALS_MESSAGE,
    INVALID_TOKEN_MESSAGE,
)


class InvalidCredentialsException(UnauthorizedException):
    def __init__(self, additional_info: dict[str, Any] | None = None):
        super().__init__(INVALID_CREDENTIALS_MESSAGE, additional_info)


class AccountLockedException(UnauthorizedException):
    def __init__(
        self, retry_after: int = 0, additional_info: dict[str, Any] | None = None
    ):
        super().__init__(ACCOUNT_LOCKED_MESSAGE, additional_info)
        self.retry_after = retry_after


class InvalidTokenException(UnauthorizedException):
    def __init__(self, additional_info: dict[str, Any] | None = None):
        super().__init__(INVALID_TOKEN_MESSAGE, additional_info)


class DuplicateEmailException(InstanceAlreadyExistsException):
    def __init__(self, additional_info: dict[str, Any] | None = None):
        super().__init__(DUPLICATE_EMAIL_MESSAGE, additional_info)
