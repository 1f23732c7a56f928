"""Repository for loans: engine input loading and portfolio scans."""

from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from autolend.core.enums import LoanStatus
from autolend.core.exceptions import NotFoundError
from autolend.models.domain.loan import Loan
from autolend.repositories.base import BaseRepository
from autolend.services.alerts.portfolio import PaymentRecord, PortfolioLoan
from autolend.services.rule_engine.base import LoanRequest


def to_loan_request(loan: Loan) -> LoanRequest:
    """Build the engine's immutable request from a loan row and its supplier."""
    supplier = loan.supplier
    return LoanRequest(
        id=loan.id,
        lender_id=loan.lender_id,
        retailer_id=loan.retailer_id,
        supplier_id=str(loan.supplier_id) if loan.supplier_id else None,
        goods_category=loan.goods_category,
        region=loan.region,
        loan_amount=loan.loan_amount,
        requested_at=loan.requested_at,
        credit_score=loan.credit_score,
        risk_tier=loan.risk_tier,
        supplier_is_trusted=bool(supplier and supplier.is_preferred),
        retailer_name=loan.retailer_name,
    )


def to_portfolio_loan(loan: Loan) -> PortfolioLoan:
    return PortfolioLoan(
        id=loan.id,
        lender_id=loan.lender_id,
        retailer_name=loan.retailer_name or loan.retailer_id,
        loan_amount=loan.loan_amount,
        credit_score=loan.credit_score,
        risk_tier=loan.risk_tier,
        payments=tuple(
            PaymentRecord(
                payment_date=p.payment_date,
                amount=p.amount,
                is_received=p.is_received,
            )
            for p in loan.payments
        ),
    )


class LoanRepository(BaseRepository[Loan]):
    """Repository for Loan with the queries the engine and alerting need."""

    def __init__(self, db: AsyncSession):
        super().__init__(Loan, db)

    async def get_or_raise(self, id: UUID, lock: bool = False) -> Loan:
        """
        Retrieve a loan (supplier joined) by ID.

        Args:
            id: Loan ID
            lock: Take a row lock on the loan until the transaction ends

        Raises:
            NotFoundError: If the loan does not exist
        """
        stmt = select(Loan).where(Loan.id == id)
        if lock:
            stmt = stmt.with_for_update(of=Loan)
        result = await self.db.execute(stmt)
        loan = result.unique().scalar_one_or_none()
        if loan is None:
            raise NotFoundError("Loan request", id)
        return loan

    async def set_status(self, loan: Loan, status: LoanStatus) -> Loan:
        loan.status = status
        await self.db.flush()
        return loan

    async def list_active_loans(self, lender_id: UUID) -> List[PortfolioLoan]:
        """
        Active loans of a lender with their payment schedules.

        Payments are loaded in one extra query to avoid N+1 lookups.
        """
        stmt = (
            select(Loan)
            .where(Loan.lender_id == lender_id, Loan.status == LoanStatus.ACTIVE)
            .options(selectinload(Loan.payments))
            .order_by(Loan.created_at, Loan.id)
        )
        result = await self.db.execute(stmt)
        return [to_portfolio_loan(loan) for loan in result.unique().scalars().all()]
