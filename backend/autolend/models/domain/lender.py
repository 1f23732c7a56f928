"""Lender, supplier and auto-lending policy models."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autolend.core.enums import EntityType
from autolend.db.base import BaseModel, JSONType


class Lender(BaseModel):
    """Lender owning auto-lending rules, blacklist entries and alert rules."""

    __tablename__ = "lenders"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    # IANA zone used to cut the deployment ledger into calendar days
    timezone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    rules: Mapped[list["AutoLendingRule"]] = relationship(
        "AutoLendingRule",
        back_populates="lender",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Lender(id={self.id}, name={self.name!r}, active={self.active})>"


class Supplier(BaseModel):
    """Goods supplier; preferred suppliers count as trusted."""

    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    is_preferred: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    rating: Mapped[Optional[Decimal]] = mapped_column(Numeric(3, 2), nullable=True)

    def __repr__(self) -> str:
        return f"<Supplier(id={self.id}, name={self.name!r}, preferred={self.is_preferred})>"


class AutoLendingRule(BaseModel):
    """Lender-configured constraint set for auto-approving loan requests."""

    __tablename__ = "auto_lending_rules"

    lender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("lenders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rule_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Amount bounds (closed interval)
    min_loan_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    max_loan_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)

    # e.g. ["Electronics", "Groceries"]; empty or null means any category
    preferred_goods_categories: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    preferred_regions: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)

    min_credit_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    daily_deployment_limit: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2), nullable=True
    )

    # e.g. {"A": 50, "B": 30, "C": 15, "D": 5}
    risk_allocation: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    auto_approve_trusted_suppliers: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    lender: Mapped["Lender"] = relationship("Lender", back_populates="rules")

    def __repr__(self) -> str:
        return (
            f"<AutoLendingRule(id={self.id}, name={self.rule_name!r}, "
            f"active={self.is_active})>"
        )


class BlacklistedEntity(BaseModel):
    """Per-lender deny-list entry for a retailer or supplier."""

    __tablename__ = "blacklisted_entities"

    lender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("lenders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[EntityType] = mapped_column(
        SQLEnum(EntityType, name="entity_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    blacklist_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    blacklisted_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<BlacklistedEntity(lender_id={self.lender_id}, "
            f"{self.entity_type.value}={self.entity_id!r}, active={self.is_active})>"
        )
