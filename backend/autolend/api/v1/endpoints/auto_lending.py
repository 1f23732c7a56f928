"""Auto-lending endpoints for evaluating pending loan requests."""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from autolend.core.clock import Clock
from autolend.core.enums import DecisionOutcome
from autolend.core.exceptions import DependencyError, NotFoundError, ValidationError
from autolend.deps import get_alert_publisher, get_clock, get_ledger, get_session
from autolend.models.schemas.decision import DecisionResponse
from autolend.services.alerts.publishers import AlertPublisher
from autolend.services.auto_lending_service import AutoLendingService
from autolend.services.rule_engine.ledger import DeploymentLedger

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/evaluate/{loan_request_id}",
    response_model=DecisionResponse,
    summary="Evaluate a pending loan request",
    description="Run the loan through the lender's blacklist, rules and daily deployment limits",
)
async def evaluate_loan(
    loan_request_id: UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    ledger: Annotated[DeploymentLedger, Depends(get_ledger)],
    publisher: Annotated[AlertPublisher, Depends(get_alert_publisher)],
    clock: Annotated[Clock, Depends(get_clock)],
    no_match: Annotated[
        Optional[DecisionOutcome],
        Query(description="Outcome when no rule fits: denied or deferred"),
    ] = None,
) -> DecisionResponse:
    """
    Evaluate a pending loan request.

    The decision is one of:
    - approved: a rule matched and the day's capital budget had room
    - denied: blacklisted, no matching rule, or a daily limit was exhausted
    - deferred: no rule matched and the caller asked for manual review

    Denials are successful responses; the reason field tells them apart.
    """
    try:
        service = AutoLendingService(db, ledger=ledger, publisher=publisher, clock=clock)
        evaluation = await service.evaluate_loan(loan_request_id, no_match_outcome=no_match)
        return DecisionResponse.from_evaluation(evaluation)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        logger.warning(f"Rejected evaluation of loan {loan_request_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except DependencyError as e:
        logger.error(f"Evaluation of loan {loan_request_id} failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except Exception as e:
        logger.error(f"Error evaluating loan {loan_request_id}: {str(e)}", exc_info=True)
        raise
