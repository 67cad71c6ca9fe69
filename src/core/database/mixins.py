from datetime import datetime
import uuid
from uuid import UUID as PY_UUID

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column
import uuid6


class TimestampMixin:
    """
    Add columns to a mapped class
    created_at: DateTime, set by the database on insert
    updated_at: DateTime, refreshed on every update
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class UUIDIDMixin:
    """
    Add a UUID column to a mapped class
    id: UUID v4
    """

    __abstract__ = True

    id: Mapped[PY_UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )


class UUID7IDMixin:
    """
    Add a UUID v7 column to a mapped class
    id: UUID v7 (time-ordered)

    Suited to append-only tables: inserts stay clustered at the end of the
    primary key index.
    """

    __abstract__ = True

    id: Mapped[PY_UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid6.uuid7
    )
