"""Storage adapters for auto-lending rules and blacklist entries."""

from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autolend.core.enums import EntityType
from autolend.models.domain.lender import AutoLendingRule, BlacklistedEntity
from autolend.repositories.base import BaseRepository
from autolend.services.rule_engine.base import Rule


def to_rule(row: AutoLendingRule) -> Rule:
    """Convert a stored rule row, JSON columns included, into an engine Rule."""
    return Rule(
        id=row.id,
        lender_id=row.lender_id,
        name=row.rule_name,
        created_at=row.created_at,
        active=row.is_active,
        min_loan_amount=row.min_loan_amount,
        max_loan_amount=row.max_loan_amount,
        preferred_categories=frozenset(row.preferred_goods_categories or ()),
        preferred_regions=frozenset(row.preferred_regions or ()),
        min_credit_score=row.min_credit_score,
        daily_deployment_limit=row.daily_deployment_limit,
        risk_allocation=dict(row.risk_allocation or {}),
        auto_approve_trusted_suppliers=row.auto_approve_trusted_suppliers,
    )


class RuleRepository(BaseRepository[AutoLendingRule]):
    """
    Read access to a lender's auto-lending rules.

    Rows are returned in match order, ``created_at`` then ``id``, set
    explicitly in SQL so the result never depends on the database's
    default row order.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(AutoLendingRule, db)

    async def list_active_rules(self, lender_id: UUID) -> List[Rule]:
        stmt = (
            select(AutoLendingRule)
            .where(
                AutoLendingRule.lender_id == lender_id,
                AutoLendingRule.is_active.is_(True),
            )
            .order_by(AutoLendingRule.created_at, AutoLendingRule.id)
        )
        result = await self.db.execute(stmt)
        return [to_rule(row) for row in result.scalars().all()]


class BlacklistRepository(BaseRepository[BlacklistedEntity]):
    """Read access to a lender's active blacklist."""

    def __init__(self, db: AsyncSession):
        super().__init__(BlacklistedEntity, db)

    async def is_entity_blacklisted(
        self,
        lender_id: UUID,
        entity_type: EntityType,
        entity_id: str,
    ) -> bool:
        stmt = (
            select(BlacklistedEntity.id)
            .where(
                BlacklistedEntity.lender_id == lender_id,
                BlacklistedEntity.entity_type == entity_type,
                BlacklistedEntity.entity_id == entity_id,
                BlacklistedEntity.is_active.is_(True),
            )
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None
