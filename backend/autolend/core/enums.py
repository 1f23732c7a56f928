"""Core enums for type safety across the application."""

from enum import Enum


class EntityType(str, Enum):
    """Counterparty kinds a lender can blacklist."""

    RETAILER = "retailer"
    SUPPLIER = "supplier"


class RiskTier(str, Enum):
    """Coarse credit-risk buckets, A is the safest."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"

    @property
    def rank(self) -> int:
        """Position from safest (0) to riskiest (3)."""
        return list(RiskTier).index(self)


class DecisionOutcome(str, Enum):
    """Verdict of an automated-lending evaluation."""

    APPROVED = "approved"
    DENIED = "denied"
    DEFERRED = "deferred"


class DecisionReason(str, Enum):
    """Machine-readable reason codes carried by a decision."""

    RULE_MATCHED = "rule_matched"
    BLACKLISTED = "blacklisted"
    NO_MATCHING_RULE = "no_matching_rule"
    DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
    RISK_ALLOCATION_EXCEEDED = "risk_allocation_exceeded"


class LoanStatus(str, Enum):
    """Loan lifecycle states."""

    PENDING = "pending"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    DENIED = "denied"
    ACTIVE = "active"
    REPAID = "repaid"
    DEFAULTED = "defaulted"


class AlertType(str, Enum):
    """Alert categories shown on the lender dashboard."""

    PAYMENT = "payment"
    RISK = "risk"
    OPPORTUNITY = "opportunity"
    SYSTEM = "system"


class AlertPriority(str, Enum):
    """Alert priority levels."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort position, most urgent first."""
        return list(AlertPriority).index(self)


class AlertConditionType(str, Enum):
    """Portfolio conditions an alert rule can watch."""

    OVERDUE_DAYS = "overdue_days"
    AMOUNT_THRESHOLD = "amount_threshold"
    RISK_LEVEL = "risk_level"
    COLLECTION_RATE = "collection_rate"


class NotificationChannel(str, Enum):
    """Delivery channels requested by an alert rule."""

    SMS = "sms"
    EMAIL = "email"
    PUSH = "push"
    DASHBOARD = "dashboard"
