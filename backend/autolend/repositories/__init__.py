from .base import BaseRepository
from .alert_repository import AlertRepository, AlertRuleRepository
from .decision_repository import DecisionRepository
from .ledger_repository import SqlDeploymentLedger
from .lender_repository import LenderRepository
from .loan_repository import LoanRepository
from .rule_repository import BlacklistRepository, RuleRepository

__all__ = [
    "BaseRepository",
    "AlertRepository",
    "AlertRuleRepository",
    "BlacklistRepository",
    "DecisionRepository",
    "LenderRepository",
    "LoanRepository",
    "RuleRepository",
    "SqlDeploymentLedger",
]
