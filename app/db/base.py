from datetime import datetime, timezone
from typing import Any, Self

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models.

    Provides an auto-incrementing integer primary key and automatic
    created_at / updated_at timestamp columns.

    The same classes double as the entity type of the in-memory backend:
    ``from_record`` rebuilds a model instance from the JSON-compatible dict
    stored in a collection file.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        default=utcnow,
        onupdate=utcnow,
    )

    @classmethod
    def column_names(cls) -> list[str]:
        return [column.key for column in cls.__table__.columns]

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Self:
        """Build a transient (session-less) instance from a stored record."""
        values: dict[str, Any] = {}
        for name in cls.column_names():
            value = record.get(name)
            if name in ("created_at", "updated_at") and isinstance(value, str):
                value = datetime.fromisoformat(value)
            values[name] = value
        return cls(**values)
