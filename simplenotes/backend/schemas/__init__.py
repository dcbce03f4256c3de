# Pydantic schemas package
from simplenotes.backend.schemas.base import ErrorResponse
from simplenotes.backend.schemas.note import (
    ArchiveUpdate,
    NoteCreate,
    NoteDeleted,
    NoteResponse,
    NoteUpdate,
    PinUpdate,
)

__all__ = [
    "ArchiveUpdate",
    "ErrorResponse",
    "NoteCreate",
    "NoteDeleted",
    "NoteResponse",
    "NoteUpdate",
    "PinUpdate",
]
