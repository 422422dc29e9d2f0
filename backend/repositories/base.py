from __future__ import annotations

from typing import Generic, List, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from models.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Base repository holding the caller's session.

    No commits are performed here - commit responsibility is left to the
    service layer.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add_all(self, entities: List[T]) -> List[T]:
        """Add entities and flush so constraint violations surface here."""
        self.session.add_all(entities)
        await self.session.flush()
        return entities
