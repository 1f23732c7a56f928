"""Fixtures seeding the relational store for repository and API tests"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from autolend.core.enums import AlertPriority, AlertType, LoanStatus
from autolend.models.domain import (
    AutoLendingRule,
    BlacklistedEntity,
    DailyPayment,
    Lender,
    LenderAlertRule,
    Loan,
    Supplier,
)


@pytest.fixture
def seed(session_factory):
    """Insert rows in their own committed transaction and return them"""

    async def _seed(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows[0] if len(rows) == 1 else rows

    return _seed


@pytest.fixture
async def lender(seed, lender_id) -> Lender:
    return await seed(Lender(id=lender_id, name="Acme Capital", timezone="Africa/Nairobi"))


@pytest.fixture
async def trusted_supplier(seed) -> Supplier:
    return await seed(Supplier(name="Trusted Wholesale", is_preferred=True))


@pytest.fixture
def rule_row(lender_id, clock):
    """Factory for stored auto-lending rules"""

    def _make(**overrides) -> AutoLendingRule:
        values = {
            "lender_id": lender_id,
            "rule_name": "Electronics up to 100k",
            "min_loan_amount": Decimal("5000"),
            "max_loan_amount": Decimal("100000"),
            "preferred_goods_categories": ["Electronics"],
            "daily_deployment_limit": Decimal("100000"),
            "created_at": clock.now() - timedelta(days=30),
        }
        values.update(overrides)
        return AutoLendingRule(**values)

    return _make


@pytest.fixture
def loan_row(lender_id, clock):
    """Factory for stored loans, pending by default"""

    def _make(**overrides) -> Loan:
        values = {
            "lender_id": lender_id,
            "retailer_id": "retailer-1",
            "retailer_name": "Mama Mboga Stores",
            "goods_category": "Electronics",
            "region": "Nairobi",
            "loan_amount": Decimal("45000"),
            "credit_score": 720,
            "status": LoanStatus.PENDING,
            "requested_at": clock.now(),
        }
        values.update(overrides)
        return Loan(**values)

    return _make


@pytest.fixture
def active_loan_row(loan_row):
    """Factory for active loans with one 1000 payment per day from ``start``"""

    def _make(start: date, received, **overrides) -> Loan:
        loan = loan_row(status=LoanStatus.ACTIVE, **overrides)
        loan.payments = [
            DailyPayment(
                payment_date=start + timedelta(days=i),
                amount=Decimal("1000"),
                is_received=flag,
            )
            for i, flag in enumerate(received)
        ]
        return loan

    return _make


@pytest.fixture
def blacklist_row(lender_id):
    def _make(entity_type, entity_id: str, **overrides) -> BlacklistedEntity:
        values = {
            "lender_id": lender_id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "blacklist_reason": "Fraud investigation",
        }
        values.update(overrides)
        return BlacklistedEntity(**values)

    return _make


@pytest.fixture
def alert_rule_row(lender_id):
    def _make(condition_type, condition_value: str, **overrides) -> LenderAlertRule:
        values = {
            "lender_id": lender_id,
            "rule_name": "Watch",
            "condition_type": condition_type,
            "condition_value": condition_value,
            "alert_type": AlertType.PAYMENT,
            "priority": AlertPriority.HIGH,
            "notification_channels": ["dashboard", "sms"],
        }
        values.update(overrides)
        return LenderAlertRule(**values)

    return _make
