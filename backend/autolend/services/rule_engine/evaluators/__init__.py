"""Rule evaluators for the individual auto-lending rule constraints."""

from .category_evaluator import CategoryEvaluator
from .credit_evaluator import CreditEvaluator
from .geographic_evaluator import RegionEvaluator
from .loan_evaluator import LoanAmountEvaluator

__all__ = [
    "CategoryEvaluator",
    "CreditEvaluator",
    "LoanAmountEvaluator",
    "RegionEvaluator",
]
