"""SQLAlchemy declarative base and shared mixins."""
from datetime import datetime
from sqlalchemy import String, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class CreatedAtMixin:
    """Adds a created_at column."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class UserMixin:
    """Adds the anonymous user_id column. Users are tracked by a locally generated opaque id."""
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
