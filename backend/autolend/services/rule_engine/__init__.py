"""Rule engine for automated loan approval."""

from .base import (
    AlertEvent,
    AlertRule,
    BlacklistEntry,
    CheckResult,
    Decision,
    LoanRequest,
    Rule,
    RuleEvaluator,
)
from .blacklist import BlacklistGuard, BlacklistHit
from .ledger import (
    DeploymentLedger,
    DeploymentLedgerEntry,
    InMemoryDeploymentLedger,
    LimitExceeded,
    Reserved,
    ReservationResult,
)
from .orchestrator import DecisionOrchestrator, Evaluation
from .selector import RuleSelector, RuleTrace
from .sources import BlacklistSource, RuleSource, StaticBlacklistSource, StaticRuleSource

__all__ = [
    "AlertEvent",
    "AlertRule",
    "BlacklistEntry",
    "BlacklistGuard",
    "BlacklistHit",
    "BlacklistSource",
    "CheckResult",
    "Decision",
    "DecisionOrchestrator",
    "DeploymentLedger",
    "DeploymentLedgerEntry",
    "Evaluation",
    "InMemoryDeploymentLedger",
    "LimitExceeded",
    "LoanRequest",
    "ReservationResult",
    "Reserved",
    "Rule",
    "RuleEvaluator",
    "RuleSelector",
    "RuleSource",
    "RuleTrace",
    "StaticBlacklistSource",
    "StaticRuleSource",
]
