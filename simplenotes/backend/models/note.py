"""
Note Model.

Database model for the notes table.
"""

from sqlalchemy import JSON, String, Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from simplenotes.backend.models.base import Base, TimestampMixin

DEFAULT_NOTE_COLOR = "#ffffff"

# TEXT[] on Postgres; SQLite has no arrays, so labels are stored as JSON there.
LabelsType = ARRAY(Text).with_variant(JSON(), "sqlite")


class Note(TimestampMixin, Base):
    """
    Note database model.

    archived and is_pinned are independent flags: an archived note keeps
    its pin state and gets it back when unarchived.
    """

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
    )
    title: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    color: Mapped[str] = mapped_column(
        String(7),
        default=DEFAULT_NOTE_COLOR,
        nullable=False,
    )
    labels: Mapped[list[str]] = mapped_column(
        LabelsType,
        default=list,
        nullable=False,
    )
    is_pinned: Mapped[bool] = mapped_column(
        default=False,
        nullable=False,
    )
    archived: Mapped[bool] = mapped_column(
        default=False,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title={self.title!r}, archived={self.archived})>"
