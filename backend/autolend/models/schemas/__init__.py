"""Pydantic schemas for API validation and serialization."""

from autolend.models.schemas.alert import AlertCheckResponse, AlertEventResponse, AlertResponse
from autolend.models.schemas.decision import DecisionResponse

__all__ = [
    "AlertCheckResponse",
    "AlertEventResponse",
    "AlertResponse",
    "DecisionResponse",
]
