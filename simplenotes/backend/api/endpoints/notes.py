"""
Notes API Endpoints.

REST API endpoints for note management. Request bodies and path ids are
validated by FastAPI before the handler runs; errors raised by the service
are mapped to responses by core.exception_handlers.
"""

from typing import Annotated

from fastapi import APIRouter, Path

from simplenotes.backend.core.dependencies import NoteServiceDep
from simplenotes.backend.schemas.base import ErrorResponse
from simplenotes.backend.schemas.note import (
    ArchiveUpdate,
    NoteCreate,
    NoteDeleted,
    NoteResponse,
    NoteUpdate,
    PinUpdate,
)

router = APIRouter()

NoteId = Annotated[int, Path(ge=1, description="Note identifier")]

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Note not found"}}
_UNAVAILABLE = {503: {"model": ErrorResponse, "description": "Database unavailable"}}


@router.get(
    "",
    response_model=list[NoteResponse],
    summary="List notes",
    description="Non-archived notes, pinned first, then newest first.",
    responses=_UNAVAILABLE,
)
async def list_notes(service: NoteServiceDep) -> list[NoteResponse]:
    """List active notes."""
    notes = await service.list_active()
    return [NoteResponse.model_validate(note) for note in notes]


@router.get(
    "/archived",
    response_model=list[NoteResponse],
    summary="List archived notes",
    description="Archived notes, most recently updated first.",
    responses=_UNAVAILABLE,
)
async def list_archived_notes(service: NoteServiceDep) -> list[NoteResponse]:
    """List archived notes."""
    notes = await service.list_archived()
    return [NoteResponse.model_validate(note) for note in notes]


@router.post(
    "",
    response_model=NoteResponse,
    status_code=201,
    summary="Create a note",
    description="Create a new note. Omitted fields take their defaults.",
    responses=_UNAVAILABLE,
)
async def create_note(data: NoteCreate, service: NoteServiceDep) -> NoteResponse:
    """Create a new note."""
    note = await service.create_note(data)
    return NoteResponse.model_validate(note)


@router.put(
    "/{note_id}",
    response_model=NoteResponse,
    summary="Update a note",
    description="Replace all editable fields of a note.",
    responses={**_NOT_FOUND, **_UNAVAILABLE},
)
async def update_note(
    note_id: NoteId,
    data: NoteUpdate,
    service: NoteServiceDep,
) -> NoteResponse:
    """Update a note."""
    note = await service.update_note(note_id, data)
    return NoteResponse.model_validate(note)


@router.delete(
    "/{note_id}",
    response_model=NoteDeleted,
    summary="Delete a note",
    description="Permanently delete a note.",
    responses={**_NOT_FOUND, **_UNAVAILABLE},
)
async def delete_note(note_id: NoteId, service: NoteServiceDep) -> NoteDeleted:
    """Delete a note."""
    deleted_id = await service.delete_note(note_id)
    return NoteDeleted(id=deleted_id)


@router.patch(
    "/{note_id}/archive",
    response_model=NoteResponse,
    summary="Archive or unarchive a note",
    responses={**_NOT_FOUND, **_UNAVAILABLE},
)
async def set_archive_status(
    note_id: NoteId,
    data: ArchiveUpdate,
    service: NoteServiceDep,
) -> NoteResponse:
    """Set a note's archive status."""
    note = await service.set_archived(note_id, data.archived)
    return NoteResponse.model_validate(note)


@router.patch(
    "/{note_id}/pin",
    response_model=NoteResponse,
    summary="Pin or unpin a note",
    responses={**_NOT_FOUND, **_UNAVAILABLE},
)
async def set_pin_status(
    note_id: NoteId,
    data: PinUpdate,
    service: NoteServiceDep,
) -> NoteResponse:
    """Set a note's pin status."""
    note = await service.set_pinned(note_id, data.is_pinned)
    return NoteResponse.model_validate(note)
