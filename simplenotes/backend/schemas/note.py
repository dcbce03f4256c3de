"""
Note Schemas.

Pydantic schemas for note API request/response validation.

Request bodies use the client's field name ``isPinned``; responses use the
column names (``is_pinned``). Missing, null or empty fields fall back to the
defaults declared here, so handlers never fill in defaults themselves.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from simplenotes.backend.models.note import DEFAULT_NOTE_COLOR

HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}){1,2}$"

_EMPTY_DEFAULTS: dict[str, Any] = {
    "title": "",
    "content": "",
    "color": DEFAULT_NOTE_COLOR,
    "is_pinned": False,
    "archived": False,
}


class NoteCreate(BaseModel):
    """Schema for creating a new note."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(
        default="",
        description="Note title",
        examples=["Groceries"],
    )
    content: str = Field(
        default="",
        description="Note content",
        examples=["Milk, eggs, bread"],
    )
    color: str = Field(
        default=DEFAULT_NOTE_COLOR,
        pattern=HEX_COLOR_PATTERN,
        description="Background color as #rgb or #rrggbb",
        examples=["#fff475"],
    )
    labels: list[str] = Field(
        default_factory=list,
        description="Free-form labels",
        examples=[["shopping"]],
    )
    is_pinned: bool = Field(
        default=False,
        alias="isPinned",
        description="Whether the note is pinned",
    )

    @field_validator("title", "content", "color", "is_pinned", mode="before")
    @classmethod
    def _empty_to_default(cls, value: Any, info: Any) -> Any:
        if value is None or value == "":
            return _EMPTY_DEFAULTS[info.field_name]
        return value

    @field_validator("labels", mode="before")
    @classmethod
    def _null_labels(cls, value: Any) -> Any:
        return [] if value is None else value


class NoteUpdate(NoteCreate):
    """Schema for a full update of an existing note (PUT)."""

    archived: bool = Field(
        default=False,
        description="Archive status",
    )

    @field_validator("archived", mode="before")
    @classmethod
    def _null_archived(cls, value: Any) -> Any:
        return False if value is None or value == "" else value


class ArchiveUpdate(BaseModel):
    """Schema for archiving or unarchiving a note."""

    archived: bool = Field(description="New archive status")


class PinUpdate(BaseModel):
    """Schema for pinning or unpinning a note."""

    model_config = ConfigDict(populate_by_name=True)

    is_pinned: bool = Field(alias="isPinned", description="New pin status")


class NoteResponse(BaseModel):
    """Schema for note in API responses."""

    id: int = Field(description="Note identifier")
    title: str = Field(description="Note title")
    content: str = Field(description="Note content")
    color: str = Field(description="Background color")
    labels: list[str] = Field(description="Labels attached to the note")
    is_pinned: bool = Field(description="Whether the note is pinned")
    archived: bool = Field(description="Whether the note is archived")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)


class NoteDeleted(BaseModel):
    """Confirmation returned after a note is deleted."""

    message: str = "Note deleted successfully"
    id: int
