from typing import Final

INVALID_CREDENTIALS_MESSAGE: Final = "Invalid credentials"
ACCOUNT_LOCKED_MESSAGE: Final = "Account temporarily locked"
INVALID_TOKEN_MESSAGE: Final = "Invalid or expired token"
DUPLICATE_EMAIL_MESSAGE: Final = "Email already registered"

TOKEN_TYPE: Final = "Bearer"

ACCESS_TOKEN_MODE: Final = "access_token"
REFRESH_TOKEN_MODE: Final = "refresh_token"

DEFAULT_ACCESS_TOKEN_SECONDS: Final = 15 * 60
DEFAULT_REFRESH_TOKEN_SECONDS: Final = 7 * 24 * 60 * 60
