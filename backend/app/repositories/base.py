"""
Base repository shared by the order, product, customer and download
repositories.
"""
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository providing common database operations.

    Subclasses should set the `model` class attribute to the SQLAlchemy model.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def locked(stmt: Select[Any]) -> Select[Any]:
        """
        Add a row lock. Rows already in the session are re-read so the
        caller sees the committed state it waited for.
        """
        return stmt.with_for_update().execution_options(populate_existing=True)

    async def get_by_id(self, id: int, *, for_update: bool = False) -> ModelType | None:
        """Get a single record by its primary key."""
        if not for_update:
            return await self.session.get(self.model, id)
        stmt = self.locked(select(self.model).where(self.model.id == id))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
