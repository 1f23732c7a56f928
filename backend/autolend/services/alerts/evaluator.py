"""Alert rule evaluation against a lender's active portfolio."""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from autolend.core.enums import AlertConditionType
from autolend.services.alerts.log import AlertLog
from autolend.services.alerts.portfolio import PortfolioLoan, PortfolioSource
from autolend.services.rule_engine.base import AlertEvent, AlertRule

logger = logging.getLogger(__name__)

ConditionCheck = Callable[[AlertRule, PortfolioLoan, date], Optional[AlertEvent]]


class AlertRuleEvaluator:
    """
    Runs lender alert rules over the active portfolio.

    Read-only with respect to loans. Each event carries the key
    ``<rule_id>:<loan_id>:<day>``; when an alert log is configured, events
    already recorded under that key are dropped, so re-running a check on
    the same day raises nothing new.
    """

    def __init__(self, portfolio: PortfolioSource, alert_log: Optional[AlertLog] = None):
        self.portfolio = portfolio
        self.alert_log = alert_log
        self._checks: Dict[AlertConditionType, ConditionCheck] = {
            AlertConditionType.OVERDUE_DAYS: self._check_overdue,
            AlertConditionType.AMOUNT_THRESHOLD: self._check_amount,
            AlertConditionType.RISK_LEVEL: self._check_risk_level,
            AlertConditionType.COLLECTION_RATE: self._check_collection_rate,
        }

    async def check_rules(
        self,
        lender_id: uuid.UUID,
        rules: Iterable[AlertRule],
        as_of: date,
    ) -> List[AlertEvent]:
        """
        Evaluate every active rule of the lender.

        Args:
            lender_id: Lender whose portfolio is scanned
            rules: Alert rules; inactive and foreign rules are ignored
            as_of: Lender-local calendar day of the check

        Returns:
            Newly raised alert events, in rule order then loan order
        """
        active = [r for r in rules if r.active and r.lender_id == lender_id]
        if not active:
            return []

        loans = await self.portfolio.list_active_loans(lender_id)
        events: List[AlertEvent] = []
        for rule in active:
            events.extend(self.evaluate_rule(rule, loans, as_of))

        if self.alert_log is not None:
            fresh = await self.alert_log.record_new(events)
            if len(fresh) < len(events):
                logger.debug(
                    "Suppressed duplicate alerts",
                    extra={"lender_id": str(lender_id), "suppressed": len(events) - len(fresh)},
                )
            events = fresh
        return events

    def evaluate_rule(
        self,
        rule: AlertRule,
        loans: Iterable[PortfolioLoan],
        as_of: date,
    ) -> List[AlertEvent]:
        check = self._checks[rule.condition_type]
        return [event for event in (check(rule, loan, as_of) for loan in loans) if event]

    def _event(self, rule: AlertRule, loan: PortfolioLoan, as_of: date, title: str, message: str) -> AlertEvent:
        return AlertEvent(
            lender_id=rule.lender_id,
            type=rule.alert_type,
            priority=rule.priority,
            title=title,
            message=message,
            related_entity=loan.retailer_name,
            amount=loan.loan_amount,
            channels=rule.channels,
            alert_rule_id=rule.id,
            dedup_key=rule.dedup_key(loan.id, as_of),
        )

    def _check_overdue(self, rule: AlertRule, loan: PortfolioLoan, as_of: date) -> Optional[AlertEvent]:
        payment = loan.oldest_unreceived(as_of)
        if payment is None:
            return None
        days = (as_of - payment.payment_date).days
        if days < rule.threshold:
            return None
        return self._event(
            rule,
            loan,
            as_of,
            f"Payment Overdue: {rule.name}",
            f"Loan payment from {loan.retailer_name} is {days} days overdue",
        )

    def _check_amount(self, rule: AlertRule, loan: PortfolioLoan, as_of: date) -> Optional[AlertEvent]:
        if loan.loan_amount < rule.threshold:
            return None
        return self._event(
            rule,
            loan,
            as_of,
            f"Large Exposure: {rule.name}",
            f"Loan to {loan.retailer_name} of {loan.loan_amount} meets the "
            f"{rule.threshold} threshold",
        )

    def _check_risk_level(self, rule: AlertRule, loan: PortfolioLoan, as_of: date) -> Optional[AlertEvent]:
        tier = loan.effective_risk_tier
        if tier is None or tier.rank < rule.threshold.rank:
            return None
        return self._event(
            rule,
            loan,
            as_of,
            f"Risk Level: {rule.name}",
            f"Loan to {loan.retailer_name} is in risk tier {tier.value}",
        )

    def _check_collection_rate(self, rule: AlertRule, loan: PortfolioLoan, as_of: date) -> Optional[AlertEvent]:
        received, due = loan.collection_totals(as_of)
        if due == 0:
            return None
        rate = (received / due * Decimal("100")).quantize(Decimal("0.1"))
        if rate >= rule.threshold:
            return None
        return self._event(
            rule,
            loan,
            as_of,
            f"Low Collection Rate: {rule.name}",
            f"Collection rate for {loan.retailer_name} is {rate}% "
            f"(threshold {rule.threshold}%)",
        )
