"""Repository for persisted auto-lending decisions."""

from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autolend.models.domain.decision import AutoLendingDecision
from autolend.repositories.base import BaseRepository
from autolend.services.rule_engine.base import Decision


class DecisionRepository(BaseRepository[AutoLendingDecision]):
    """Repository for AutoLendingDecision."""

    def __init__(self, db: AsyncSession):
        super().__init__(AutoLendingDecision, db)

    async def record(self, lender_id: UUID, decision: Decision) -> AutoLendingDecision:
        """Persist an engine decision for its loan."""
        return await self.create(
            loan_id=decision.loan_request_id,
            lender_id=lender_id,
            outcome=decision.outcome,
            reason=decision.reason,
            matched_rule_id=decision.matched_rule_id,
            message=decision.message,
            details=decision.details,
        )

    async def list_for_loan(self, loan_id: UUID) -> List[AutoLendingDecision]:
        stmt = (
            select(AutoLendingDecision)
            .where(AutoLendingDecision.loan_id == loan_id)
            .order_by(AutoLendingDecision.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
