"""
Base model with common fields.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from accredit.db.base import Base


def generate_id() -> str:
    """Generate a 15-character record ID."""
    return uuid.uuid4().hex[:15]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TimestampMixin:
    """Mixin for created/updated timestamps."""
    created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )


class BaseModel(Base, TimestampMixin):
    """Abstract base model with id and timestamps."""
    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(15),
        primary_key=True,
        default=generate_id
    )
