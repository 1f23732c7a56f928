"""Repository for lender lookups."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from autolend.core.exceptions import NotFoundError
from autolend.models.domain.lender import Lender
from autolend.repositories.base import BaseRepository


class LenderRepository(BaseRepository[Lender]):
    """Repository for Lender."""

    def __init__(self, db: AsyncSession):
        super().__init__(Lender, db)

    async def get_or_raise(self, id: UUID) -> Lender:
        """
        Retrieve a lender by ID.

        Raises:
            NotFoundError: If no such lender exists
        """
        lender = await self.get_by_id(id)
        if lender is None:
            raise NotFoundError("Lender", id)
        return lender
