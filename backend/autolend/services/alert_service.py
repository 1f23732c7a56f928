"""Alert service: runs a lender's alert rules and records new alerts."""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from autolend.config import settings
from autolend.core.clock import Clock, SystemClock, lender_calendar_day
from autolend.models.domain.alert import Alert
from autolend.repositories.alert_repository import AlertRepository, AlertRuleRepository
from autolend.repositories.lender_repository import LenderRepository
from autolend.repositories.loan_repository import LoanRepository
from autolend.services.alerts.evaluator import AlertRuleEvaluator
from autolend.services.alerts.publishers import AlertPublisher, LoggingAlertPublisher
from autolend.services.rule_engine.base import AlertEvent

logger = logging.getLogger(__name__)


class AlertService:
    """Service for scheduled alert checks and alert listing."""

    def __init__(
        self,
        db: AsyncSession,
        publisher: Optional[AlertPublisher] = None,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self.lender_repo = LenderRepository(db)
        self.rule_repo = AlertRuleRepository(db)
        self.alert_repo = AlertRepository(db)
        self.evaluator = AlertRuleEvaluator(LoanRepository(db), alert_log=self.alert_repo)
        self.publisher = publisher or LoggingAlertPublisher()
        self.clock = clock or SystemClock()

    async def check_rules(self, lender_id: UUID) -> List[AlertEvent]:
        """
        Evaluate the lender's active alert rules as of the lender-local day.

        Returns:
            Alerts raised by this run; repeats of today's alerts are skipped

        Raises:
            NotFoundError: If the lender does not exist
        """
        lender = await self.lender_repo.get_or_raise(lender_id)
        as_of = lender_calendar_day(
            self.clock.now(), lender.timezone or settings.DEFAULT_LENDER_TIMEZONE
        )
        rules = await self.rule_repo.list_active_rules(lender_id)

        events = await self.evaluator.check_rules(lender_id, rules, as_of)
        await self.db.commit()
        await self.publisher.publish(events)

        logger.info(
            "Alert rules checked",
            extra={
                "lender_id": str(lender_id),
                "as_of": as_of.isoformat(),
                "rules": len(rules),
                "alerts_raised": len(events),
            },
        )
        return events

    async def list_alerts(self, lender_id: UUID, limit: int = 100) -> List[Alert]:
        await self.lender_repo.get_or_raise(lender_id)
        return await self.alert_repo.list_for_lender(lender_id, limit=limit)
