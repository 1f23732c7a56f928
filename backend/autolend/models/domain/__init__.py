"""Domain models for the application."""

from autolend.models.domain.alert import Alert, LenderAlertRule
from autolend.models.domain.decision import AutoLendingDecision
from autolend.models.domain.ledger import DeploymentBucket, LedgerReservation
from autolend.models.domain.lender import (
    AutoLendingRule,
    BlacklistedEntity,
    Lender,
    Supplier,
)
from autolend.models.domain.loan import DailyPayment, Loan

__all__ = [
    "Alert",
    "AutoLendingDecision",
    "AutoLendingRule",
    "BlacklistedEntity",
    "DailyPayment",
    "DeploymentBucket",
    "LedgerReservation",
    "Lender",
    "LenderAlertRule",
    "Loan",
    "Supplier",
]
