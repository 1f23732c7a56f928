"""Persisted automated-lending decisions."""

import uuid
from typing import Optional

from sqlalchemy import Enum as SQLEnum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from autolend.core.enums import DecisionOutcome, DecisionReason
from autolend.db.base import BaseModel, JSONType


class AutoLendingDecision(BaseModel):
    """Decision recorded once per evaluated loan request."""

    __tablename__ = "auto_lending_decisions"

    loan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("loans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lender_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    outcome: Mapped[DecisionOutcome] = mapped_column(
        SQLEnum(
            DecisionOutcome,
            name="decision_outcome",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        index=True,
    )
    reason: Mapped[DecisionReason] = mapped_column(
        SQLEnum(
            DecisionReason,
            name="decision_reason",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    matched_rule_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("auto_lending_rules.id", ondelete="SET NULL"),
        nullable=True,
    )
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Per-rule check trail for operators
    details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True, default=dict)

    def __repr__(self) -> str:
        return (
            f"<AutoLendingDecision(loan_id={self.loan_id}, outcome={self.outcome.value}, "
            f"reason={self.reason.value})>"
        )
