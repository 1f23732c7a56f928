"""Read-only portfolio snapshot consumed by the alert rule evaluator."""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Protocol, Tuple

from autolend.core.enums import RiskTier
from autolend.services.rule_engine.base import tier_for_score


@dataclass(frozen=True)
class PaymentRecord:
    """One scheduled daily payment of a loan."""

    payment_date: date
    amount: Decimal
    is_received: bool


@dataclass(frozen=True)
class PortfolioLoan:
    """An active loan with its payment schedule."""

    id: uuid.UUID
    lender_id: uuid.UUID
    retailer_name: str
    loan_amount: Decimal
    credit_score: Optional[int] = None
    risk_tier: Optional[RiskTier] = None
    payments: Tuple[PaymentRecord, ...] = ()

    @property
    def effective_risk_tier(self) -> Optional[RiskTier]:
        if self.risk_tier is not None:
            return self.risk_tier
        if self.credit_score is not None:
            return tier_for_score(self.credit_score)
        return None

    def oldest_unreceived(self, on_or_before: date) -> Optional[PaymentRecord]:
        """Oldest unpaid payment dated on or before the given day."""
        unpaid = [
            p for p in self.payments
            if not p.is_received and p.payment_date <= on_or_before
        ]
        return min(unpaid, key=lambda p: p.payment_date) if unpaid else None

    def collection_totals(self, as_of: date) -> Tuple[Decimal, Decimal]:
        """(received, due) payment amounts for payments dated up to ``as_of``."""
        due = [p for p in self.payments if p.payment_date <= as_of]
        received = sum((p.amount for p in due if p.is_received), Decimal("0"))
        return received, sum((p.amount for p in due), Decimal("0"))


class PortfolioSource(Protocol):
    """Access to a lender's active loans."""

    async def list_active_loans(self, lender_id: uuid.UUID) -> List[PortfolioLoan]:
        ...


class StaticPortfolioSource:
    """Portfolio source over a fixed collection of loans."""

    def __init__(self, loans: Iterable[PortfolioLoan] = ()):
        self._loans = list(loans)

    async def list_active_loans(self, lender_id: uuid.UUID) -> List[PortfolioLoan]:
        return [loan for loan in self._loans if loan.lender_id == lender_id]
