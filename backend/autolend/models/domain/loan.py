"""Loan and repayment models."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autolend.core.enums import LoanStatus, RiskTier
from autolend.db.base import BaseModel, utcnow


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Loan(BaseModel):
    """Loan request raised by a retailer, and its lifecycle afterwards."""

    __tablename__ = "loans"

    lender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("lenders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    retailer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    retailer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    supplier_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    goods_category: Mapped[str] = mapped_column(String(100), nullable=False)
    region: Mapped[str] = mapped_column(String(100), nullable=False)
    loan_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    daily_payment: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)

    credit_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    risk_tier: Mapped[Optional[RiskTier]] = mapped_column(
        SQLEnum(RiskTier, name="risk_tier", values_callable=_enum_values),
        nullable=True,
    )

    status: Mapped[LoanStatus] = mapped_column(
        SQLEnum(LoanStatus, name="loan_status", values_callable=_enum_values),
        default=LoanStatus.PENDING,
        nullable=False,
        index=True,
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    supplier: Mapped[Optional["Supplier"]] = relationship("Supplier", lazy="joined")
    payments: Mapped[list["DailyPayment"]] = relationship(
        "DailyPayment",
        back_populates="loan",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<Loan(id={self.id}, retailer={self.retailer_id!r}, "
            f"amount={self.loan_amount}, status={self.status.value})>"
        )


class DailyPayment(BaseModel):
    """Scheduled daily repayment for an active loan."""

    __tablename__ = "daily_payments"

    loan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("loans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    is_received: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    loan: Mapped["Loan"] = relationship("Loan", back_populates="payments")

    def __repr__(self) -> str:
        return (
            f"<DailyPayment(loan_id={self.loan_id}, date={self.payment_date}, "
            f"received={self.is_received})>"
        )
