from datetime import datetime
from uuid import UUID as PY_UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base
from src.core.database.mixins import TimestampMixin, UUID7IDMixin

ACTIVE_DEVICE_INDEX = "uq_refresh_tokens_active_device"


class RefreshToken(Base, UUID7IDMixin, TimestampMixin):
    """
    One issued refresh token. Rows are never deleted: a revoked row keeps
    `is_revoked=True` and the moment it was revoked.

    At most one non-revoked row may exist per (user_id, device_id); the partial
    unique index enforces that in the database.
    """

    __tablename__ = "refresh_tokens"
    __table_args__ = (
        Index(
            ACTIVE_DEVICE_INDEX,
            "user_id",
            "device_id",
            unique=True,
            postgresql_where=text("is_revoked = false"),
        ),
        Index("ix_refresh_tokens_token_value", "token_value"),
    )

    token_value: Mapped[str] = mapped_column(Text)
    user_id: Mapped[PY_UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    device_id: Mapped[str] = mapped_column(String(128))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    def __repr__(self) -> str:
        return (
            f"<RefreshToken(id={self.id}, user_id={self.user_id}, "
            f"device_id={self.device_id!r}, is_revoked={self.is_revoked})>"
        )
