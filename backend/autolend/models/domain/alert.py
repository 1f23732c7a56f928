"""Alert rule configuration and alert record models."""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Enum as SQLEnum,
    ForeignKey,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from autolend.core.enums import AlertConditionType, AlertPriority, AlertType
from autolend.db.base import BaseModel, JSONType


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class LenderAlertRule(BaseModel):
    """Condition -> alert rule configured by a lender."""

    __tablename__ = "alert_rules"

    lender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("lenders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rule_name: Mapped[str] = mapped_column(String(255), nullable=False)
    condition_type: Mapped[AlertConditionType] = mapped_column(
        SQLEnum(AlertConditionType, name="alert_condition_type", values_callable=_enum_values),
        nullable=False,
    )
    # Raw threshold as entered: "7", "250000", "C", "80"
    condition_value: Mapped[str] = mapped_column(String(64), nullable=False)
    alert_type: Mapped[AlertType] = mapped_column(
        SQLEnum(AlertType, name="alert_type", values_callable=_enum_values),
        nullable=False,
    )
    priority: Mapped[AlertPriority] = mapped_column(
        SQLEnum(AlertPriority, name="alert_priority", values_callable=_enum_values),
        nullable=False,
    )
    notification_channels: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<LenderAlertRule(id={self.id}, name={self.rule_name!r}, "
            f"condition={self.condition_type.value}:{self.condition_value})>"
        )


class Alert(BaseModel):
    """Alert record emitted by the engine or the alert rule evaluator."""

    __tablename__ = "alerts"

    lender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("lenders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    alert_rule_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    type: Mapped[AlertType] = mapped_column(
        SQLEnum(AlertType, name="alert_type", values_callable=_enum_values),
        nullable=False,
    )
    priority: Mapped[AlertPriority] = mapped_column(
        SQLEnum(AlertPriority, name="alert_priority", values_callable=_enum_values),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_entity: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    notification_channels: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    # "<rule_id>:<entity_id>:<day>"; NULL for engine-emitted alerts
    dedup_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Alert(id={self.id}, type={self.type.value}, "
            f"priority={self.priority.value}, title={self.title!r})>"
        )
