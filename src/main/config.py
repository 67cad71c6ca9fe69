from functools import lru_cache
import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class RedisConfig(BaseModel):
    REDIS_HOST: str
    REDIS_PORT: int
    REDIS_PASSWORD: str = ""
    REDIS_DATABASE: str = "0"

    # Kept short so a stalled cache surfaces as an error instead of a hung request
    REDIS_SOCKET_TIMEOUT: float = Field(1.0, gt=0)
    REDIS_CONNECT_TIMEOUT: float = Field(1.0, gt=0)

    model_config = ConfigDict(extra="ignore")

    @property
    def dsn(self) -> str:
        return (
            f"redis://:"
            f"{self.REDIS_PASSWORD}@"
            f"{self.REDIS_HOST}:"
            f"{self.REDIS_PORT}/"
            f"{self.REDIS_DATABASE}"
        )


class SentryConfig(BaseModel):
    SENTRY_DSN: str | None = None
    SENTRY_ENV: str = "development"
    SENTRY_ENABLED: bool = False

    model_config = ConfigDict(extra="ignore")


class JWTConfig(BaseModel):
    JWT_ACCESS_SECRET_KEY: str = Field(min_length=16)
    JWT_REFRESH_SECRET_KEY: str = Field(min_length=16)

    ALGORITHM: str = "HS256"

    # Duration strings: <int><unit>, unit one of s, m, h, d, w
    ACCESS_TOKEN_EXPIRY: str = "15m"
    REFRESH_TOKEN_EXPIRY: str = "7d"

    # Seconds of clock skew tolerated on exp and iat between instances
    JWT_LEEWAY_SECONDS: int = Field(30, ge=0)

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def check_distinct_secrets(self) -> "JWTConfig":
        if self.JWT_ACCESS_SECRET_KEY == self.JWT_REFRESH_SECRET_KEY:
            raise ValueError("Access and refresh tokens must use different secrets")
        return self


class AuthConfig(BaseModel):
    LOGIN_MAX_ATTEMPTS: int = Field(5, gt=0)
    LOGIN_LOCKOUT_WINDOW_SECONDS: int = Field(300, gt=0)
    LOGIN_RESET_ON_SUCCESS: bool = True

    LOGIN_ATTEMPTS_PREFIX: str = "login:attempts"
    BLACKLIST_PREFIX: str = "token:blacklisted"

    model_config = ConfigDict(extra="ignore")


class PostgresConfig(BaseModel):
    DB_ECHO: bool = False

    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str
    POSTGRES_PORT: int
    POSTGRES_DB: str

    POOL_SIZE: int = Field(10, gt=0)
    MAX_OVERFLOW: int = Field(10, ge=0)
    POOL_TIMEOUT: float = Field(5.0, gt=0)

    # Seconds; asyncpg connect and per-statement timeouts
    POSTGRES_CONNECT_TIMEOUT: float = Field(3.0, gt=0)
    POSTGRES_COMMAND_TIMEOUT: float = Field(5.0, gt=0)

    model_config = ConfigDict(extra="ignore")

    @property
    def dsn_async(self) -> str:
        return (
            f"postgresql+asyncpg://"
            f"{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )


class AppConfig(BaseModel):
    VERSION: str
    DEBUG: bool = False
    TESTING: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_LEVEL_FILE: str = "WARNING"
    LOG_TO_FILE: bool = True

    CORS_ALLOWED_ORIGINS: list[str] = Field(["*"])
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOWED_METHODS: list[str] = Field(["*"])
    CORS_ALLOWED_HEADERS: list[str] = Field(["*"])
    CORS_EXPOSE_HEADERS: list[str] = Field(["*"])

    PROJECT_NAME: str

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "CORS_ALLOWED_ORIGINS",
        "CORS_ALLOWED_METHODS",
        "CORS_ALLOWED_HEADERS",
        "CORS_EXPOSE_HEADERS",
        mode="before",
    )
    @classmethod
    def parse_cors_list(cls, v: Any) -> list[str]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip().startswith("[") and v.strip().endswith("]"):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(item) for item in parsed]
            except json.JSONDecodeError:
                pass
        sep = "," if "," in v else ";"
        return [item.strip() for item in v.split(sep) if item.strip()]


class Config(BaseModel):
    app: AppConfig
    jwt: JWTConfig
    auth: AuthConfig
    redis: RedisConfig
    sentry: SentryConfig
    postgres: PostgresConfig

    model_config = ConfigDict(extra="ignore")

    @property
    def project_root(self) -> Path:
        return PROJECT_ROOT


def resolve_env_file(testing: bool, root: Path = PROJECT_ROOT) -> Path:
    """
    Pick the dotenv file for the current mode. Paths are resolved against the
    project root so the service starts the same way from any working directory.
    """
    return root / (".env.test" if testing else ".env")


@lru_cache
def get_settings() -> Config:
    """
    Cached settings factory. Override in tests via monkeypatching or dependency overrides.
    """
    env_file = resolve_env_file(os.getenv("TESTING") == "true")
    if not env_file.exists():
        logger.warning("Env file %s not found, using process environment only", env_file)
    env_file_values = dotenv_values(env_file)
    merged_env: dict[str, Any] = {
        k: v
        for k, v in {**env_file_values, **dict(os.environ)}.items()
        if v is not None
    }

    return Config(
        app=AppConfig(**merged_env),
        jwt=JWTConfig(**merged_env),
        auth=AuthConfig(**merged_env),
        redis=RedisConfig(**merged_env),
        sentry=SentryConfig(**merged_env),
        postgres=PostgresConfig(**merged_env),
    )


config = get_settings()
