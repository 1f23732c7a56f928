"""Pydantic schemas for auto-lending decisions."""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from autolend.core.enums import DecisionOutcome, DecisionReason
from autolend.models.schemas.alert import AlertEventResponse
from autolend.services.rule_engine.orchestrator import Evaluation


class DecisionResponse(BaseModel):
    """Schema for the result of evaluating a loan request."""

    loan_request_id: UUID
    outcome: DecisionOutcome
    reason: DecisionReason
    matched_rule_id: Optional[UUID] = None
    message: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    alerts: list[AlertEventResponse] = []

    @classmethod
    def from_evaluation(cls, evaluation: Evaluation) -> "DecisionResponse":
        decision = evaluation.decision
        return cls(
            loan_request_id=decision.loan_request_id,
            outcome=decision.outcome,
            reason=decision.reason,
            matched_rule_id=decision.matched_rule_id,
            message=decision.message,
            details=decision.details,
            alerts=[AlertEventResponse.from_event(event) for event in evaluation.alerts],
        )
