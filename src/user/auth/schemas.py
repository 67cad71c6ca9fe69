from typing import Literal

from pydantic import EmailStr, Field, field_validator, model_validator

from src.core.schemas import (
    CamelModel,
    EmailNormalizationMixin,
    StrongPasswordValidationMixin,
)
from src.core.validations import DEVICE_ID_PATTERN, DISPLAY_NAME_PATTERN
from src.user.auth.constants import TOKEN_TYPE


class DeviceBoundModel(CamelModel):
    device_id: str = Field(min_length=1, max_length=128)

    @field_validator("device_id")
    @classmethod
    def validate_device_id(cls, value: str) -> str:
        if not DEVICE_ID_PATTERN.match(value):
            raise ValueError(
                "Device id may contain latin letters, digits, '_', '-', '.', ':' only"
            )
        return value


class RegisterUserModel(
    StrongPasswordValidationMixin, EmailNormalizationMixin, DeviceBoundModel
):
    email: EmailStr
    name: str = Field(min_length=1, max_length=100)
    password: str
    confirm_password: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = " ".join(value.split())
        if not DISPLAY_NAME_PATTERN.match(value):
            raise ValueError("Name contains unsupported characters")
        return value

    @model_validator(mode="after")
    def check_passwords_match(self) -> "RegisterUserModel":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginUserModel(EmailNormalizationMixin, DeviceBoundModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=256)


class RefreshTokenModel(DeviceBoundModel):
    refresh_token: str = Field(min_length=1)


class LogoutModel(DeviceBoundModel):
    pass


class TokenPairModel(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: Literal["Bearer"] = TOKEN_TYPE
