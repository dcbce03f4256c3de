"""
Note Service.

Business logic layer for notes. Every operation is one repository call run
through the QueryExecutor; id-targeted writes that match no row raise
NotFoundError.
"""

from simplenotes.backend.core.exceptions import NotFoundError
from simplenotes.backend.models.note import Note
from simplenotes.backend.repositories.note import NoteRepository
from simplenotes.backend.schemas.note import NoteCreate, NoteUpdate
from simplenotes.backend.services.base import BaseService


class NoteService(BaseService):
    """
    Service for note business logic.

    Handles note listing, creation, updates and deletion with
    retry and error translation from BaseService.
    """

    async def list_active(self) -> list[Note]:
        """List non-archived notes, pinned first, newest first."""
        return await self._run_in_session(
            "list_active",
            lambda session: NoteRepository(session).get_all_active(),
        )

    async def list_archived(self) -> list[Note]:
        """List archived notes, most recently updated first."""
        return await self._run_in_session(
            "list_archived",
            lambda session: NoteRepository(session).get_archived(),
        )

    async def create_note(self, data: NoteCreate) -> Note:
        """
        Create a new note.

        Args:
            data: Note creation data, defaults already applied

        Returns:
            Created note
        """
        self._log_operation("Creating note", title=data.title)

        values = data.model_dump()
        return await self._run_in_session(
            "create_note",
            lambda session: NoteRepository(session).create(**values),
        )

    async def update_note(self, note_id: int, data: NoteUpdate) -> Note:
        """
        Replace every editable field of a note.

        Args:
            note_id: Note ID to update
            data: Full note body, defaults already applied

        Returns:
            Updated note

        Raises:
            NotFoundError: If note not found
        """
        self._log_operation("Updating note", note_id=note_id)

        values = data.model_dump()
        note = await self._run_in_session(
            "update_note",
            lambda session: NoteRepository(session).update(note_id, **values),
        )
        if note is None:
            raise NotFoundError("Note not found")
        return note

    async def delete_note(self, note_id: int) -> int:
        """
        Delete a note.

        Args:
            note_id: Note ID to delete

        Returns:
            The deleted note's ID

        Raises:
            NotFoundError: If note not found
        """
        self._log_operation("Deleting note", note_id=note_id)

        deleted_id = await self._run_in_session(
            "delete_note",
            lambda session: NoteRepository(session).delete(note_id),
        )
        if deleted_id is None:
            raise NotFoundError("Note not found")
        return deleted_id

    async def set_archived(self, note_id: int, archived: bool) -> Note:
        """
        Archive or unarchive a note.

        Raises:
            NotFoundError: If note not found
        """
        self._log_operation("Setting archive status", note_id=note_id, archived=archived)

        note = await self._run_in_session(
            "set_archived",
            lambda session: NoteRepository(session).set_archived(note_id, archived),
        )
        if note is None:
            raise NotFoundError("Note not found")
        return note

    async def set_pinned(self, note_id: int, is_pinned: bool) -> Note:
        """
        Pin or unpin a note.

        Raises:
            NotFoundError: If note not found
        """
        self._log_operation("Setting pin status", note_id=note_id, is_pinned=is_pinned)

        note = await self._run_in_session(
            "set_pinned",
            lambda session: NoteRepository(session).set_pinned(note_id, is_pinned),
        )
        if note is None:
            raise NotFoundError("Note not found")
        return note
