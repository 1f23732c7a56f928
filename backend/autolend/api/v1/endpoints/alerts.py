"""Alert endpoints: scheduled rule checks and the lender alert feed."""

import logging
from typing import Annotated, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from autolend.core.clock import Clock
from autolend.core.exceptions import NotFoundError, ValidationError
from autolend.deps import get_alert_publisher, get_clock, get_session
from autolend.models.schemas.alert import AlertCheckResponse, AlertEventResponse, AlertResponse
from autolend.services.alert_service import AlertService
from autolend.services.alerts.publishers import AlertPublisher

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/check/{lender_id}",
    response_model=AlertCheckResponse,
    summary="Run a lender's alert rules",
    description="Evaluate active alert rules against the lender's active loans",
)
async def check_alert_rules(
    lender_id: UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    publisher: Annotated[AlertPublisher, Depends(get_alert_publisher)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AlertCheckResponse:
    """
    Run the lender's alert rules.

    Safe to call repeatedly: an alert already raised today for the same rule
    and loan is not raised again.
    """
    try:
        service = AlertService(db, publisher=publisher, clock=clock)
        events = await service.check_rules(lender_id)
        return AlertCheckResponse(
            lender_id=lender_id,
            alerts=[AlertEventResponse.from_event(event) for event in events],
        )

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        logger.warning(f"Invalid alert rule for lender {lender_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.get(
    "/{lender_id}",
    response_model=List[AlertResponse],
    summary="List a lender's alerts",
    description="Alerts ordered by priority, most urgent first, then newest first",
)
async def list_alerts(
    lender_id: UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> List[AlertResponse]:
    try:
        service = AlertService(db)
        alerts = await service.list_alerts(lender_id, limit=limit)
        return [AlertResponse.model_validate(alert) for alert in alerts]

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
