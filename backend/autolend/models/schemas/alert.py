"""Pydantic schemas for alerts."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from autolend.core.enums import AlertPriority, AlertType, NotificationChannel
from autolend.services.rule_engine.base import AlertEvent


class AlertEventResponse(BaseModel):
    """Schema for an alert raised by an evaluation or an alert check."""

    type: AlertType
    priority: AlertPriority
    title: str
    message: str
    related_entity: Optional[str] = None
    amount: Optional[Decimal] = None
    notification_channels: list[NotificationChannel] = []
    alert_rule_id: Optional[UUID] = None

    @classmethod
    def from_event(cls, event: AlertEvent) -> "AlertEventResponse":
        return cls(
            type=event.type,
            priority=event.priority,
            title=event.title,
            message=event.message,
            related_entity=event.related_entity,
            amount=event.amount,
            notification_channels=list(event.channels),
            alert_rule_id=event.alert_rule_id,
        )


class AlertCheckResponse(BaseModel):
    """Schema for the result of running a lender's alert rules."""

    lender_id: UUID
    alerts: list[AlertEventResponse] = []


class AlertResponse(BaseModel):
    """Schema for a stored alert."""

    id: UUID
    lender_id: UUID
    alert_rule_id: Optional[UUID] = None
    type: AlertType
    priority: AlertPriority
    title: str
    message: str
    related_entity: Optional[str] = None
    amount: Optional[Decimal] = None
    notification_channels: Optional[list[str]] = None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
