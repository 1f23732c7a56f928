"""Rule engine foundation: engine value types, check results and base evaluator."""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from autolend.core.enums import (
    AlertConditionType,
    AlertPriority,
    AlertType,
    DecisionOutcome,
    DecisionReason,
    EntityType,
    NotificationChannel,
    RiskTier,
)
from autolend.core.exceptions import ValidationError

# Lowest credit score that still lands in each tier
TIER_SCORE_FLOORS: dict[RiskTier, int] = {
    RiskTier.A: 750,
    RiskTier.B: 650,
    RiskTier.C: 550,
    RiskTier.D: 0,
}

MAX_CREDIT_SCORE = 1000


def tier_for_score(score: int) -> RiskTier:
    """Map a credit score onto its risk tier."""
    for tier, floor in TIER_SCORE_FLOORS.items():
        if score >= floor:
            return tier
    return RiskTier.D


def to_decimal(value: Any, field_name: str) -> Optional[Decimal]:
    """Coerce a numeric input to Decimal, rejecting garbage."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field_name} is not a number: {value!r}") from e


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _normalized(values) -> frozenset[str]:
    return frozenset(v.strip().lower() for v in values or () if v and v.strip())


@dataclass(frozen=True)
class Rule:
    """
    Lender-configured auto-approval rule.

    Empty ``preferred_categories``/``preferred_regions`` mean "no constraint".
    Match order is ``(created_at, id)``.

    Attributes:
        id: Rule identity
        lender_id: Owning lender
        name: Display name used in alerts
        active: Only active rules are evaluated
        min_loan_amount: Inclusive lower bound, if set
        max_loan_amount: Inclusive upper bound, if set
        preferred_categories: Allowed goods categories
        preferred_regions: Allowed regions
        min_credit_score: Minimum effective credit score, if set
        daily_deployment_limit: Capital cap per calendar day, if set
        risk_allocation: Max share (percent) of the day's reservations per tier
        auto_approve_trusted_suppliers: Trusted suppliers skip the credit check
        created_at: Creation instant, primary sort key
    """

    id: uuid.UUID
    lender_id: uuid.UUID
    name: str
    created_at: datetime
    active: bool = True
    min_loan_amount: Optional[Decimal] = None
    max_loan_amount: Optional[Decimal] = None
    preferred_categories: frozenset[str] = frozenset()
    preferred_regions: frozenset[str] = frozenset()
    min_credit_score: Optional[int] = None
    daily_deployment_limit: Optional[Decimal] = None
    risk_allocation: Mapping[RiskTier, Decimal] = field(default_factory=dict)
    auto_approve_trusted_suppliers: bool = False

    def __post_init__(self):
        """Normalize collections and validate the rule shape."""
        set_ = object.__setattr__
        set_(self, "created_at", _as_utc(self.created_at))
        set_(self, "preferred_categories", _normalized(self.preferred_categories))
        set_(self, "preferred_regions", _normalized(self.preferred_regions))

        for name in ("min_loan_amount", "max_loan_amount", "daily_deployment_limit"):
            value = to_decimal(getattr(self, name), name)
            if value is not None and value <= 0:
                raise ValidationError(f"Rule {self.name!r}: {name} must be positive")
            set_(self, name, value)

        if (
            self.min_loan_amount is not None
            and self.max_loan_amount is not None
            and self.min_loan_amount > self.max_loan_amount
        ):
            raise ValidationError(
                f"Rule {self.name!r}: min_loan_amount {self.min_loan_amount} "
                f"exceeds max_loan_amount {self.max_loan_amount}"
            )

        if self.min_credit_score is not None and not (
            0 <= self.min_credit_score <= MAX_CREDIT_SCORE
        ):
            raise ValidationError(
                f"Rule {self.name!r}: min_credit_score must be within 0-{MAX_CREDIT_SCORE}"
            )

        allocation: dict[RiskTier, Decimal] = {}
        for tier, percent in (self.risk_allocation or {}).items():
            try:
                tier = RiskTier(tier)
            except ValueError as e:
                raise ValidationError(f"Rule {self.name!r}: unknown risk tier {tier!r}") from e
            percent = to_decimal(percent, f"risk_allocation[{tier.value}]")
            if percent is None:
                continue
            if not Decimal("0") <= percent <= Decimal("100"):
                raise ValidationError(
                    f"Rule {self.name!r}: risk_allocation[{tier.value}] must be within 0-100"
                )
            allocation[tier] = percent
        set_(self, "risk_allocation", allocation)

    @property
    def sort_key(self) -> tuple[datetime, uuid.UUID]:
        return (self.created_at, self.id)


@dataclass(frozen=True)
class BlacklistEntry:
    """Active deny-list entry owned by a lender."""

    lender_id: uuid.UUID
    entity_type: EntityType
    entity_id: str
    active: bool = True


@dataclass(frozen=True)
class LoanRequest:
    """
    Immutable engine input describing a pending loan.

    The request may carry a ``credit_score``, a ``risk_tier`` or both; see
    ``effective_credit_score`` and ``effective_risk_tier``.
    """

    id: uuid.UUID
    lender_id: uuid.UUID
    retailer_id: str
    supplier_id: Optional[str]
    goods_category: str
    region: str
    loan_amount: Decimal
    requested_at: datetime
    credit_score: Optional[int] = None
    risk_tier: Optional[RiskTier] = None
    supplier_is_trusted: bool = False
    retailer_name: Optional[str] = None

    def __post_init__(self):
        amount = to_decimal(self.loan_amount, "loan_amount")
        if amount is None or amount <= 0:
            raise ValidationError(f"Loan request {self.id}: loan_amount must be positive")
        object.__setattr__(self, "loan_amount", amount)

        if not self.retailer_id:
            raise ValidationError(f"Loan request {self.id}: retailer_id is required")
        if self.credit_score is not None and not (
            0 <= self.credit_score <= MAX_CREDIT_SCORE
        ):
            raise ValidationError(
                f"Loan request {self.id}: credit_score must be within 0-{MAX_CREDIT_SCORE}"
            )
        if self.risk_tier is not None and not isinstance(self.risk_tier, RiskTier):
            try:
                object.__setattr__(self, "risk_tier", RiskTier(self.risk_tier))
            except ValueError as e:
                raise ValidationError(
                    f"Loan request {self.id}: unknown risk tier {self.risk_tier!r}"
                ) from e

    @property
    def effective_credit_score(self) -> Optional[int]:
        """Reported score, else the floor score of the reported tier."""
        if self.credit_score is not None:
            return self.credit_score
        if self.risk_tier is not None:
            return TIER_SCORE_FLOORS[self.risk_tier]
        return None

    @property
    def effective_risk_tier(self) -> Optional[RiskTier]:
        """Reported tier, else the tier derived from the score."""
        if self.risk_tier is not None:
            return self.risk_tier
        if self.credit_score is not None:
            return tier_for_score(self.credit_score)
        return None

    @property
    def display_name(self) -> str:
        return self.retailer_name or self.retailer_id


@dataclass(frozen=True)
class Decision:
    """Engine verdict for one loan request."""

    loan_request_id: uuid.UUID
    outcome: DecisionOutcome
    reason: DecisionReason
    matched_rule_id: Optional[uuid.UUID] = None
    message: Optional[str] = None
    details: dict = field(default_factory=dict)

    @property
    def approved(self) -> bool:
        return self.outcome == DecisionOutcome.APPROVED


@dataclass(frozen=True)
class AlertEvent:
    """Alert emitted for delivery by the notification collaborator."""

    lender_id: uuid.UUID
    type: AlertType
    priority: AlertPriority
    title: str
    message: str
    related_entity: Optional[str] = None
    amount: Optional[Decimal] = None
    channels: tuple[NotificationChannel, ...] = (NotificationChannel.DASHBOARD,)
    alert_rule_id: Optional[uuid.UUID] = None
    dedup_key: Optional[str] = None

    def to_payload(self) -> dict:
        """JSON-ready representation for webhooks and logs."""
        return {
            "lender_id": str(self.lender_id),
            "type": self.type.value,
            "priority": self.priority.value,
            "title": self.title,
            "message": self.message,
            "related_entity": self.related_entity,
            "amount": str(self.amount) if self.amount is not None else None,
            "channels": [c.value for c in self.channels],
            "alert_rule_id": str(self.alert_rule_id) if self.alert_rule_id else None,
            "dedup_key": self.dedup_key,
        }


@dataclass(frozen=True)
class AlertRule:
    """
    Lender-configured portfolio condition that raises alerts.

    ``condition_value`` is parsed per condition type on construction and
    exposed as ``threshold``.
    """

    id: uuid.UUID
    lender_id: uuid.UUID
    name: str
    condition_type: AlertConditionType
    condition_value: str
    alert_type: AlertType
    priority: AlertPriority
    channels: tuple[NotificationChannel, ...] = (NotificationChannel.DASHBOARD,)
    active: bool = True
    threshold: Any = field(init=False, default=None)

    def __post_init__(self):
        try:
            object.__setattr__(self, "condition_type", AlertConditionType(self.condition_type))
            object.__setattr__(self, "alert_type", AlertType(self.alert_type))
            object.__setattr__(self, "priority", AlertPriority(self.priority))
            channels = tuple(NotificationChannel(c) for c in self.channels)
        except ValueError as e:
            raise ValidationError(f"Alert rule {self.name!r}: {e}") from e
        object.__setattr__(self, "channels", channels or (NotificationChannel.DASHBOARD,))
        object.__setattr__(self, "threshold", self._parse_threshold())

    def _parse_threshold(self) -> Any:
        raw = (self.condition_value or "").strip()
        try:
            if self.condition_type == AlertConditionType.OVERDUE_DAYS:
                days = int(raw)
                if days < 0:
                    raise ValueError("days must not be negative")
                return days
            if self.condition_type == AlertConditionType.AMOUNT_THRESHOLD:
                amount = Decimal(raw)
                if amount <= 0:
                    raise ValueError("amount must be positive")
                return amount
            if self.condition_type == AlertConditionType.RISK_LEVEL:
                return RiskTier(raw.upper())
            if self.condition_type == AlertConditionType.COLLECTION_RATE:
                rate = Decimal(raw.rstrip("%"))
                if not Decimal("0") <= rate <= Decimal("100"):
                    raise ValueError("rate must be within 0-100")
                return rate
        except (ValueError, InvalidOperation) as e:
            raise ValidationError(
                f"Alert rule {self.name!r}: invalid {self.condition_type.value} "
                f"value {self.condition_value!r}"
            ) from e
        raise ValidationError(f"Alert rule {self.name!r}: unsupported condition")

    def dedup_key(self, entity_id: object, day: date) -> str:
        return f"{self.id}:{entity_id}:{day.isoformat()}"


@dataclass
class CheckResult:
    """
    Result of evaluating one rule constraint against a loan request.

    Attributes:
        passed: Whether the constraint is satisfied
        check: Name of the constraint ("amount", "category", ...)
        reason: Human-readable explanation of the result
        evidence: Structured data showing actual vs. required values
    """

    passed: bool
    check: str
    reason: Optional[str] = None
    evidence: dict = field(default_factory=dict)


class RuleEvaluator(ABC):
    """
    Abstract base class for rule constraint evaluators (Strategy pattern).

    Each concrete evaluator checks one constraint of a ``Rule``. A constraint
    that the rule does not configure passes.
    """

    check_name: str = ""

    @abstractmethod
    def applies(self, rule: Rule) -> bool:
        """Whether the rule configures this constraint at all."""
        pass

    @abstractmethod
    def evaluate(self, request: LoanRequest, rule: Rule) -> CheckResult:
        """
        Evaluate the constraint against the request.

        Args:
            request: Loan request under evaluation
            rule: Rule configuring the constraint

        Returns:
            CheckResult with pass/fail, reason and evidence
        """
        pass

    def _skipped(self) -> CheckResult:
        return CheckResult(passed=True, check=self.check_name, reason="Not configured")
