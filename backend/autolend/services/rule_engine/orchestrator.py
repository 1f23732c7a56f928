"""Decision orchestrator: blacklist veto, rule selection, capital reservation."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, List, Optional, TypeVar

from autolend.core.clock import Clock, SystemClock, lender_calendar_day
from autolend.core.enums import AlertPriority, AlertType, DecisionOutcome, DecisionReason
from autolend.core.exceptions import EvaluationFailed, ValidationError
from autolend.services.rule_engine.base import AlertEvent, Decision, LoanRequest, Rule
from autolend.services.rule_engine.blacklist import BlacklistGuard, BlacklistHit
from autolend.services.rule_engine.ledger import (
    DAILY_LIMIT,
    DeploymentLedger,
    LimitExceeded,
)
from autolend.services.rule_engine.selector import RuleSelector, RuleTrace
from autolend.services.rule_engine.sources import RuleSource

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_MATCH_OUTCOMES = (DecisionOutcome.DENIED, DecisionOutcome.DEFERRED)


@dataclass
class Evaluation:
    """A decision plus the alert events emitted while reaching it."""

    decision: Decision
    alerts: List[AlertEvent] = field(default_factory=list)


class DecisionOrchestrator:
    """
    Evaluates one loan request end to end.

    Steps run in a fixed order and each is terminal on failure:

    1. Blacklist veto on the retailer, then the supplier
    2. First-match rule selection
    3. Capital reservation on the matched rule's ledger bucket
    4. Approval

    A read failure or timeout on the rule or blacklist source raises
    ``EvaluationFailed``; the orchestrator never approves on partial data.
    """

    def __init__(
        self,
        rule_source: RuleSource,
        blacklist_guard: BlacklistGuard,
        ledger: DeploymentLedger,
        clock: Optional[Clock] = None,
        selector: Optional[RuleSelector] = None,
        dependency_timeout: Optional[float] = None,
        no_match_outcome: DecisionOutcome = DecisionOutcome.DENIED,
    ):
        self.rule_source = rule_source
        self.blacklist_guard = blacklist_guard
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.selector = selector or RuleSelector()
        self.dependency_timeout = dependency_timeout
        self.no_match_outcome = _no_match_outcome(no_match_outcome)

    async def evaluate(
        self,
        request: LoanRequest,
        *,
        no_match_outcome: Optional[DecisionOutcome] = None,
        lender_timezone: str = "UTC",
    ) -> Evaluation:
        """
        Decide a loan request.

        Args:
            request: The loan request to decide
            no_match_outcome: Outcome when no rule fits; overrides the default
            lender_timezone: IANA zone that defines the lender's calendar day

        Returns:
            Evaluation with the decision and any alert events

        Raises:
            EvaluationFailed: If a rule or blacklist read fails or times out
            DependencyError: If the ledger cannot complete the reservation
        """
        outcome_on_no_match = (
            _no_match_outcome(no_match_outcome)
            if no_match_outcome is not None
            else self.no_match_outcome
        )

        hit = await self._read(request, self.blacklist_guard.check_request(request))
        if hit is not None:
            return self._blacklisted(request, hit)

        rules = await self._read(request, self.rule_source.list_active_rules(request.lender_id))
        traces = self.selector.explain(request, rules)
        trail = [trace.to_dict() for trace in traces]
        matched: Optional[RuleTrace] = traces[-1] if traces and traces[-1].matched else None

        if matched is None:
            return Evaluation(
                Decision(
                    loan_request_id=request.id,
                    outcome=outcome_on_no_match,
                    reason=DecisionReason.NO_MATCHING_RULE,
                    message="No matching auto-lending rules found",
                    details={"rules_evaluated": trail},
                )
            )

        rule = matched.rule
        calendar_day = lender_calendar_day(self.clock.now(), lender_timezone)
        result = await self.ledger.try_reserve(
            request.lender_id,
            rule.id,
            calendar_day,
            request.loan_amount,
            daily_limit=rule.daily_deployment_limit,
            risk_tier=request.effective_risk_tier,
            risk_allocation=rule.risk_allocation,
            loan_request_id=request.id,
        )

        if isinstance(result, LimitExceeded):
            return self._limit_exceeded(request, rule, result, calendar_day, trail)

        return Evaluation(
            Decision(
                loan_request_id=request.id,
                outcome=DecisionOutcome.APPROVED,
                reason=DecisionReason.RULE_MATCHED,
                matched_rule_id=rule.id,
                message=f"Approved by rule: {rule.name}",
                details={
                    "rules_evaluated": trail,
                    "trusted_supplier_bypass": matched.trusted_supplier_bypass,
                    "calendar_day": calendar_day.isoformat(),
                    "deployed_today": str(result.bucket_total),
                },
            ),
            alerts=[
                AlertEvent(
                    lender_id=request.lender_id,
                    type=AlertType.OPPORTUNITY,
                    priority=AlertPriority.MEDIUM,
                    title="Loan Auto-Approved",
                    message=(
                        f"Loan for {request.display_name} was automatically "
                        f"approved using rule: {rule.name}"
                    ),
                    related_entity=request.display_name,
                    amount=request.loan_amount,
                )
            ],
        )

    async def _read(self, request: LoanRequest, call: Awaitable[T]) -> T:
        """Await a dependency read, turning failures into EvaluationFailed."""
        try:
            if self.dependency_timeout is None:
                return await call
            return await asyncio.wait_for(call, timeout=self.dependency_timeout)
        except ValidationError:
            raise
        except asyncio.TimeoutError as e:
            logger.error(
                "Dependency read timed out",
                extra={"loan_request_id": str(request.id), "timeout": self.dependency_timeout},
            )
            raise EvaluationFailed(request.id, "dependency read timed out") from e
        except Exception as e:
            logger.error(
                "Dependency read failed",
                extra={"loan_request_id": str(request.id)},
                exc_info=True,
            )
            raise EvaluationFailed(request.id, str(e) or type(e).__name__) from e

    def _blacklisted(self, request: LoanRequest, hit: BlacklistHit) -> Evaluation:
        kind = hit.entity_type.value
        return Evaluation(
            Decision(
                loan_request_id=request.id,
                outcome=DecisionOutcome.DENIED,
                reason=DecisionReason.BLACKLISTED,
                message=f"{kind.capitalize()} {hit.entity_id} is blacklisted",
                details={"entity_type": kind, "entity_id": hit.entity_id},
            ),
            alerts=[
                AlertEvent(
                    lender_id=request.lender_id,
                    type=AlertType.RISK,
                    priority=AlertPriority.HIGH,
                    title="Blacklisted Entity Blocked",
                    message=(
                        f"Loan for {request.display_name} was denied: "
                        f"{kind} {hit.entity_id} is blacklisted"
                    ),
                    related_entity=hit.entity_id,
                    amount=request.loan_amount,
                )
            ],
        )

    def _limit_exceeded(
        self,
        request: LoanRequest,
        rule: Rule,
        result: LimitExceeded,
        calendar_day,
        trail: list,
    ) -> Evaluation:
        if result.scope == DAILY_LIMIT:
            reason = DecisionReason.DAILY_LIMIT_EXCEEDED
            message = (
                f"Rule {rule.name} matched but its daily deployment limit of "
                f"{result.limit} is exhausted ({result.current_total} deployed)"
            )
        else:
            reason = DecisionReason.RISK_ALLOCATION_EXCEEDED
            message = (
                f"Rule {rule.name} matched but tier {result.risk_tier.value} "
                f"exceeds its {result.limit}% daily allocation"
            )
        return Evaluation(
            Decision(
                loan_request_id=request.id,
                outcome=DecisionOutcome.DENIED,
                reason=reason,
                matched_rule_id=rule.id,
                message=message,
                details={
                    "rules_evaluated": trail,
                    "calendar_day": calendar_day.isoformat(),
                    "limit_scope": result.scope,
                    "limit": str(result.limit) if result.limit is not None else None,
                    "deployed_today": str(result.current_total),
                    "requested": str(result.requested),
                },
            )
        )


def _no_match_outcome(value) -> DecisionOutcome:
    try:
        outcome = DecisionOutcome(value)
    except ValueError as e:
        raise ValidationError(f"Unsupported no-match outcome: {value!r}") from e
    if outcome not in NO_MATCH_OUTCOMES:
        raise ValidationError(f"No-match outcome must be denied or deferred, got {outcome.value}")
    return outcome
