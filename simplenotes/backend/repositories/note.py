"""
Note Repository.

Queries over the ``notes`` table. Listing order is part of the API:
active notes pinned-first then newest-first, archived notes by last change.
"""

from sqlalchemy import select

from simplenotes.backend.models.note import Note
from simplenotes.backend.repositories.base import BaseRepository


class NoteRepository(BaseRepository[Note]):
    model = Note

    async def get_all_active(self) -> list[Note]:
        result = await self.session.execute(
            select(Note)
            .where(Note.archived == False)  # noqa: E712
            .order_by(Note.is_pinned.desc(), Note.created_at.desc(), Note.id.desc())
        )
        return list(result.scalars().all())

    async def get_archived(self) -> list[Note]:
        result = await self.session.execute(
            select(Note)
            .where(Note.archived == True)  # noqa: E712
            .order_by(Note.updated_at.desc(), Note.id.desc())
        )
        return list(result.scalars().all())

    async def set_archived(self, id: int, archived: bool) -> Note | None:
        """Set the archive flag, leaving is_pinned untouched."""
        return await self.update(id, archived=archived)

    async def set_pinned(self, id: int, is_pinned: bool) -> Note | None:
        """Set the pin flag, leaving archived untouched."""
        return await self.update(id, is_pinned=is_pinned)
