"""Pytest fixtures for testing"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_JSON", "false")

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from autolend.core.clock import FixedClock
from autolend.db.base import Base
from autolend.models import domain  # noqa: F401  registers every table
from autolend.services.rule_engine.base import LoanRequest, Rule

LENDER_ID = uuid.UUID("00000000-0000-0000-0000-00000000a001")
NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def lender_id() -> uuid.UUID:
    return LENDER_ID


@pytest.fixture
def clock() -> FixedClock:
    """Clock pinned to 2026-03-02 15:00 UTC"""
    return FixedClock(NOW)


@pytest.fixture
def make_rule():
    """Factory for engine rules owned by the test lender"""

    def _make(**overrides) -> Rule:
        values = {
            "id": uuid.uuid4(),
            "lender_id": LENDER_ID,
            "name": "Electronics up to 50k",
            "created_at": NOW,
        }
        values.update(overrides)
        return Rule(**values)

    return _make


@pytest.fixture
def make_request():
    """Factory for loan requests against the test lender"""

    def _make(**overrides) -> LoanRequest:
        values = {
            "id": uuid.uuid4(),
            "lender_id": LENDER_ID,
            "retailer_id": "retailer-1",
            "supplier_id": "supplier-1",
            "goods_category": "Electronics",
            "region": "Nairobi",
            "loan_amount": Decimal("45000"),
            "requested_at": NOW,
            "credit_score": 720,
            "retailer_name": "Mama Mboga Stores",
        }
        values.update(overrides)
        return LoanRequest(**values)

    return _make


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite engine so the ledger and the service use separate connections"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'autolend.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
