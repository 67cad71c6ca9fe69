from sqlalchemy import Boolean, Enum as SQLEnum, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from src.core.database.base import Base
from src.core.database.mixins import TimestampMixin, UUIDIDMixin
from src.core.utils.security import hash_password, is_password_hash
from src.user.enums import UserRole


class User(Base, UUIDIDMixin, TimestampMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100))
    password: Mapped[str] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, values_callable=lambda enum: [e.value for e in enum]),
        nullable=False,
        default=UserRole.USER,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @validates("password")
    def validate_password(self, _: str, value: str) -> str:
        """
        Hash a plaintext password on assignment. Values that already are an
        argon2 hash are stored as given.
        """
        if is_password_hash(value):
            return value
        return hash_password(value)

    def __repr__(self) -> str:
        return f"<User(id={str(self.id)}, role={self.role!r})>"
