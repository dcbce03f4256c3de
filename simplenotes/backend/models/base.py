"""
Declarative base and the timestamp columns shared by every table.
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from simplenotes.backend.core.utils import utc_now

__all__ = ["Base", "TimestampMixin", "utc_now"]


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """
    created_at / updated_at, stamped by the application clock rather than
    the database's, so a row never reports updated_at < created_at.
    """

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )
