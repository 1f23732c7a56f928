"""Shared plumbing for the SQL store adapters."""

from typing import Any, Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autolend.db.base import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic adapter over one mapped table.

    Repositories flush but never commit: the request's session owns the
    unit of work. The deployment ledger is the one exception and manages
    its own transactions.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def create(self, **values: Any) -> ModelType:
        """Add a row and flush so server defaults and the id are populated."""
        row = self.model(**values)
        self.db.add(row)
        await self.db.flush()
        return row

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        return result.unique().scalar_one_or_none()

    async def count(self, **filters: Any) -> int:
        """Count rows whose columns equal the given values."""
        stmt = select(func.count()).select_from(self.model).filter_by(**filters)
        return (await self.db.execute(stmt)).scalar_one()
