"""Deployment ledger models: versioned daily counters and the reservation journal."""

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, Integer, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from autolend.db.base import BaseModel, JSONType

# Bucket rule_id for capital reserved without a rule. A real value rather than
# NULL so the unique constraint covers it on every backend.
UNASSIGNED_RULE_ID = uuid.UUID(int=0)


def bucket_rule_id(rule_id: Optional[uuid.UUID]) -> uuid.UUID:
    return UNASSIGNED_RULE_ID if rule_id is None else rule_id


class DeploymentBucket(BaseModel):
    """
    Running total of capital reserved per lender, rule and calendar day.

    Exactly one row exists per (lender_id, rule_id, calendar_day). Writes are
    guarded twice: the row is read ``FOR UPDATE`` where the backend supports
    row locks, and every UPDATE matches on ``version`` so a write based on a
    stale read changes nothing and is retried.
    """

    __tablename__ = "deployment_buckets"
    __table_args__ = (
        UniqueConstraint("lender_id", "rule_id", "calendar_day", name="uq_deployment_bucket"),
    )

    lender_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    rule_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    calendar_day: Mapped[date] = mapped_column(Date, nullable=False)
    amount_reserved: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    # {"A": "45000.00", "C": "10000.00"}; key "-" holds reservations with no tier
    tier_amounts: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<DeploymentBucket(lender_id={self.lender_id}, rule_id={self.rule_id}, "
            f"day={self.calendar_day}, reserved={self.amount_reserved}, v{self.version})>"
        )


class LedgerReservation(BaseModel):
    """Append-only journal row written for every successful reservation."""

    __tablename__ = "deployment_ledger_entries"

    lender_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    rule_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    risk_tier: Mapped[Optional[str]] = mapped_column(String(1), nullable=True)
    calendar_day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount_reserved: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    loan_request_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<LedgerReservation(rule_id={self.rule_id}, day={self.calendar_day}, "
            f"tier={self.risk_tier}, amount={self.amount_reserved})>"
        )
