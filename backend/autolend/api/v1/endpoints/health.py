"""Liveness and store reachability."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from autolend.config import settings
from autolend.deps import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> dict:
    """Report whether the relational store backing rules and the ledger answers."""
    database = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Store health check failed", extra={"error": str(exc)})
        database = f"unhealthy: {exc}"

    return {
        "status": "healthy" if database == "healthy" else "degraded",
        "api": "healthy",
        "database": database,
        "environment": settings.ENVIRONMENT,
        "no_match_outcome": settings.NO_MATCH_OUTCOME,
    }
