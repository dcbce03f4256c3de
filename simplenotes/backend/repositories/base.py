"""
Base Repository.

Each method issues exactly one SQL statement. A repository call is therefore
a single logical query, which the QueryExecutor may run a second time on a
fresh session after a connection failure.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from simplenotes.backend.models.base import Base, utc_now

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Single-statement writes shared by every table with an integer ``id``.

        class NoteRepository(BaseRepository[Note]):
            model = Note

    Id-targeted writes return None when no row matched; the service decides
    that this is a 404.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, **values: Any) -> ModelType:
        """INSERT a row and return it with its generated id and timestamps."""
        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return row

    async def update(self, id: int, **values: Any) -> ModelType | None:
        """
        UPDATE ... RETURNING the row with this id.

        updated_at is always stamped from the application clock, even when
        none of ``values`` changes.
        """
        result = await self.session.execute(
            update(self.model)
            .where(self.model.id == id)
            .values(**values, updated_at=utc_now())
            .returning(self.model)
        )
        return result.scalar_one_or_none()

    async def delete(self, id: int) -> int | None:
        """DELETE ... RETURNING id; None when no row had this id."""
        result = await self.session.execute(
            delete(self.model).where(self.model.id == id).returning(self.model.id)
        )
        return result.scalar_one_or_none()
