"""Auto-lending service: evaluates a stored loan request and records the result."""

import logging
import time
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from autolend.config import settings
from autolend.core.clock import Clock, SystemClock
from autolend.core.enums import DecisionOutcome, LoanStatus
from autolend.core.exceptions import ValidationError
from autolend.logging_config import log_decision
from autolend.repositories.alert_repository import AlertRepository
from autolend.repositories.decision_repository import DecisionRepository
from autolend.repositories.lender_repository import LenderRepository
from autolend.repositories.loan_repository import LoanRepository, to_loan_request
from autolend.repositories.rule_repository import BlacklistRepository, RuleRepository
from autolend.services.alerts.publishers import AlertPublisher, LoggingAlertPublisher
from autolend.services.rule_engine.blacklist import BlacklistGuard
from autolend.services.rule_engine.ledger import DeploymentLedger
from autolend.services.rule_engine.orchestrator import DecisionOrchestrator, Evaluation

logger = logging.getLogger(__name__)

STATUS_BY_OUTCOME = {
    DecisionOutcome.APPROVED: LoanStatus.APPROVED,
    DecisionOutcome.DENIED: LoanStatus.DENIED,
    DecisionOutcome.DEFERRED: LoanStatus.PENDING_REVIEW,
}


class AutoLendingService:
    """
    Auto-lending service to evaluate pending loans without a human.

    This service:
    - Loads the loan request and its lender
    - Runs the decision orchestrator against the lender's rules and blacklist
    - Persists the decision and moves the loan to its new status
    - Records and publishes the alerts the decision raised
    """

    def __init__(
        self,
        db: AsyncSession,
        ledger: DeploymentLedger,
        publisher: Optional[AlertPublisher] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the auto-lending service.

        Args:
            db: Async database session for the caller's unit of work
            ledger: Deployment ledger; commits reservations on its own
            publisher: Alert delivery, logging only by default
            clock: Source of "now" for the lender's calendar day
        """
        self.db = db
        self.loan_repo = LoanRepository(db)
        self.lender_repo = LenderRepository(db)
        self.decision_repo = DecisionRepository(db)
        self.alert_repo = AlertRepository(db)
        self.orchestrator = DecisionOrchestrator(
            rule_source=RuleRepository(db),
            blacklist_guard=BlacklistGuard(BlacklistRepository(db)),
            ledger=ledger,
            clock=clock or SystemClock(),
            dependency_timeout=settings.DEPENDENCY_TIMEOUT_SECONDS,
            no_match_outcome=DecisionOutcome(settings.NO_MATCH_OUTCOME),
        )
        self.publisher = publisher or LoggingAlertPublisher()

    async def evaluate_loan(
        self,
        loan_request_id: UUID,
        no_match_outcome: Optional[DecisionOutcome] = None,
    ) -> Evaluation:
        """
        Evaluate a pending loan request.

        Args:
            loan_request_id: ID of the loan to evaluate
            no_match_outcome: denied or deferred when no rule fits;
                defaults to the NO_MATCH_OUTCOME setting

        Returns:
            The evaluation, with only the alerts that were newly recorded

        Raises:
            NotFoundError: If the loan or its lender does not exist
            ValidationError: If the loan is not pending or is malformed
            DependencyError: If a dependency failed; nothing is recorded
        """
        started = time.perf_counter()

        loan = await self.loan_repo.get_or_raise(loan_request_id, lock=True)
        if loan.status != LoanStatus.PENDING:
            raise ValidationError(
                f"Loan request {loan_request_id} is {loan.status.value}, only pending "
                f"loans can be evaluated"
            )
        lender = await self.lender_repo.get_or_raise(loan.lender_id)
        request = to_loan_request(loan)

        evaluation = await self.orchestrator.evaluate(
            request,
            no_match_outcome=no_match_outcome,
            lender_timezone=lender.timezone or settings.DEFAULT_LENDER_TIMEZONE,
        )
        decision = evaluation.decision

        await self.decision_repo.record(lender.id, decision)
        await self.loan_repo.set_status(loan, STATUS_BY_OUTCOME[decision.outcome])
        alerts = await self.alert_repo.record_new(evaluation.alerts)
        await self.db.commit()

        await self.publisher.publish(alerts)

        log_decision(
            loan_request_id=str(request.id),
            lender_id=str(lender.id),
            outcome=decision.outcome.value,
            reason=decision.reason.value,
            matched_rule_id=str(decision.matched_rule_id) if decision.matched_rule_id else None,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return Evaluation(decision=decision, alerts=alerts)
