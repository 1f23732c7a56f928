"""Dependency injection for FastAPI endpoints."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from autolend.core.clock import Clock, SystemClock
from autolend.db.session import SessionLocal, get_db
from autolend.repositories.ledger_repository import SqlDeploymentLedger
from autolend.services.alerts.publishers import AlertPublisher, build_publisher
from autolend.services.rule_engine.ledger import DeploymentLedger

__all__ = ["get_alert_publisher", "get_clock", "get_db", "get_ledger", "get_session"]


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session dependency.

    This is an alias for get_db for clarity in endpoint signatures.
    """
    async for session in get_db():
        yield session


def get_ledger() -> DeploymentLedger:
    """Provide the deployment ledger; it opens its own sessions."""
    return SqlDeploymentLedger(SessionLocal)


def get_alert_publisher() -> AlertPublisher:
    """Provide the alert publisher configured for this process."""
    return build_publisher()


def get_clock() -> Clock:
    return SystemClock()
