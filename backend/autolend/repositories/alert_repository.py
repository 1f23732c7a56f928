"""Repositories for alert rules and alert records."""

from typing import Iterable, List
from uuid import UUID

from sqlalchemy import case, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from autolend.core.enums import AlertPriority
from autolend.models.domain.alert import Alert, LenderAlertRule
from autolend.repositories.base import BaseRepository
from autolend.services.rule_engine.base import AlertEvent, AlertRule


def to_alert_rule(row: LenderAlertRule) -> AlertRule:
    return AlertRule(
        id=row.id,
        lender_id=row.lender_id,
        name=row.rule_name,
        condition_type=row.condition_type,
        condition_value=row.condition_value,
        alert_type=row.alert_type,
        priority=row.priority,
        channels=tuple(row.notification_channels or ()),
        active=row.is_active,
    )


class AlertRuleRepository(BaseRepository[LenderAlertRule]):
    """Read access to a lender's alert rules."""

    def __init__(self, db: AsyncSession):
        super().__init__(LenderAlertRule, db)

    async def list_active_rules(self, lender_id: UUID) -> List[AlertRule]:
        stmt = (
            select(LenderAlertRule)
            .where(
                LenderAlertRule.lender_id == lender_id,
                LenderAlertRule.is_active.is_(True),
            )
            .order_by(LenderAlertRule.created_at, LenderAlertRule.id)
        )
        result = await self.db.execute(stmt)
        return [to_alert_rule(row) for row in result.scalars().all()]


class AlertRepository(BaseRepository[Alert]):
    """
    Alert records; doubles as the SQL alert log.

    ``record_new`` inserts with ``ON CONFLICT (dedup_key) DO NOTHING``, so two
    check runs racing on the same key both succeed and only one row lands.
    Events without a key never conflict.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Alert, db)

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(Alert)
        if dialect == "sqlite":
            return sqlite.insert(Alert)
        raise NotImplementedError(f"Alert log does not support the {dialect} dialect")

    async def record_new(self, events: Iterable[AlertEvent]) -> List[AlertEvent]:
        fresh: List[AlertEvent] = []
        for event in events:
            stmt = (
                self._insert()
                .values(
                    lender_id=event.lender_id,
                    alert_rule_id=event.alert_rule_id,
                    type=event.type,
                    priority=event.priority,
                    title=event.title,
                    message=event.message,
                    related_entity=event.related_entity,
                    amount=event.amount,
                    notification_channels=[c.value for c in event.channels],
                    dedup_key=event.dedup_key,
                )
                .on_conflict_do_nothing(index_elements=["dedup_key"])
                .returning(Alert.id)
            )
            result = await self.db.execute(stmt)
            if result.scalar_one_or_none() is not None:
                fresh.append(event)
        return fresh

    async def list_for_lender(self, lender_id: UUID, limit: int = 100) -> List[Alert]:
        """Alerts ordered by priority (critical first), then newest first."""
        priority_order = case(
            {priority: priority.rank for priority in AlertPriority},
            value=Alert.priority,
            else_=len(AlertPriority),
        )
        stmt = (
            select(Alert)
            .where(Alert.lender_id == lender_id)
            .order_by(priority_order, Alert.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
