"""Unit tests for the in-memory deployment ledger and the reservation policy"""

import asyncio
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest

from autolend.core.enums import RiskTier
from autolend.core.exceptions import ValidationError
from autolend.services.rule_engine.ledger import (
    DAILY_LIMIT,
    RISK_ALLOCATION,
    InMemoryDeploymentLedger,
    LimitExceeded,
    Reserved,
    check_reservation,
)

DAY = date(2026, 3, 2)
LIMIT = Decimal("100000")


@pytest.fixture
def ledger() -> InMemoryDeploymentLedger:
    return InMemoryDeploymentLedger()


@pytest.fixture
def rule_id() -> uuid.UUID:
    return uuid.uuid4()


async def test_reserve_within_limit(ledger, lender_id, rule_id):
    result = await ledger.try_reserve(lender_id, rule_id, DAY, Decimal("45000"), daily_limit=LIMIT)

    assert result == Reserved(amount=Decimal("45000"), bucket_total=Decimal("45000"))
    assert await ledger.reserved_total(lender_id, rule_id, DAY) == Decimal("45000")


async def test_reserve_up_to_exact_limit(ledger, lender_id, rule_id):
    await ledger.try_reserve(lender_id, rule_id, DAY, Decimal("60000"), daily_limit=LIMIT)
    result = await ledger.try_reserve(lender_id, rule_id, DAY, Decimal("40000"), daily_limit=LIMIT)

    assert isinstance(result, Reserved)
    assert result.bucket_total == LIMIT


async def test_over_limit_is_rejected_without_mutation(ledger, lender_id, rule_id):
    await ledger.try_reserve(lender_id, rule_id, DAY, Decimal("45000"), daily_limit=LIMIT)

    result = await ledger.try_reserve(lender_id, rule_id, DAY, Decimal("60000"), daily_limit=LIMIT)

    assert isinstance(result, LimitExceeded)
    assert result.scope == DAILY_LIMIT
    assert result.current_total == Decimal("45000")
    assert await ledger.reserved_total(lender_id, rule_id, DAY) == Decimal("45000")
    assert len(ledger.entries) == 1


async def test_no_limit_means_unbounded(ledger, lender_id, rule_id):
    for _ in range(5):
        result = await ledger.try_reserve(lender_id, rule_id, DAY, Decimal("1000000"))
        assert isinstance(result, Reserved)

    assert await ledger.reserved_total(lender_id, rule_id, DAY) == Decimal("5000000")


async def test_buckets_are_independent_per_day_rule_and_lender(ledger, lender_id, rule_id):
    await ledger.try_reserve(lender_id, rule_id, DAY, LIMIT, daily_limit=LIMIT)

    next_day = await ledger.try_reserve(lender_id, rule_id, date(2026, 3, 3), LIMIT, daily_limit=LIMIT)
    other_rule = await ledger.try_reserve(lender_id, uuid.uuid4(), DAY, LIMIT, daily_limit=LIMIT)
    other_lender = await ledger.try_reserve(uuid.uuid4(), rule_id, DAY, LIMIT, daily_limit=LIMIT)
    unassigned = await ledger.try_reserve(lender_id, None, DAY, LIMIT, daily_limit=LIMIT)

    assert all(isinstance(r, Reserved) for r in (next_day, other_rule, other_lender, unassigned))


async def test_unknown_bucket_total_is_zero(ledger, lender_id, rule_id):
    assert await ledger.reserved_total(lender_id, rule_id, DAY) == Decimal("0")


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
async def test_non_positive_amount_is_rejected(ledger, lender_id, rule_id, amount):
    with pytest.raises(ValidationError):
        await ledger.try_reserve(lender_id, rule_id, DAY, amount, daily_limit=LIMIT)


async def test_concurrent_reservations_never_overshoot(ledger, lender_id, rule_id):
    """30 concurrent 7000 reservations against a 100000 cap admit exactly 14"""
    results = await asyncio.gather(
        *(
            ledger.try_reserve(lender_id, rule_id, DAY, Decimal("7000"), daily_limit=LIMIT)
            for _ in range(30)
        )
    )

    reserved = [r for r in results if isinstance(r, Reserved)]
    assert sum(r.amount for r in reserved) <= LIMIT
    assert len(reserved) == 14
    assert await ledger.reserved_total(lender_id, rule_id, DAY) == Decimal("98000")


def test_threaded_reservations_never_overshoot(ledger, lender_id, rule_id):
    """Reservations from many threads respect the cap"""

    def reserve(amount: Decimal):
        return asyncio.run(
            ledger.try_reserve(lender_id, rule_id, DAY, amount, daily_limit=LIMIT)
        )

    amounts = [Decimal(str(3000 + (i % 7) * 1000)) for i in range(80)]
    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(reserve, amounts))

    reserved_sum = sum(r.amount for r in results if isinstance(r, Reserved))
    total = asyncio.run(ledger.reserved_total(lender_id, rule_id, DAY))
    assert reserved_sum == total
    assert total <= LIMIT
    assert sum(e.amount_reserved for e in ledger.entries) == total


async def test_journal_records_tier_and_request(ledger, lender_id, rule_id):
    request_id = uuid.uuid4()

    await ledger.try_reserve(
        lender_id, rule_id, DAY, Decimal("1000"), risk_tier=RiskTier.B, loan_request_id=request_id
    )

    entry = ledger.entries[0]
    assert entry.risk_tier is RiskTier.B
    assert entry.loan_request_id == request_id
    assert entry.calendar_day == DAY


# Risk allocation: admit iff tier_before <= share% of the day's total after the reservation


def test_allocation_admits_first_loan_of_a_tier():
    verdict = check_reservation(
        Decimal("0"), {}, Decimal("45000"), risk_tier=RiskTier.A, risk_allocation={RiskTier.A: Decimal("50")}
    )

    assert verdict is None


def test_allocation_rejects_tier_already_over_share():
    verdict = check_reservation(
        Decimal("45000"),
        {"A": Decimal("45000")},
        Decimal("10000"),
        risk_tier=RiskTier.A,
        risk_allocation={RiskTier.A: Decimal("50")},
    )

    assert verdict.scope == RISK_ALLOCATION
    assert verdict.limit == Decimal("50")
    assert verdict.risk_tier is RiskTier.A


def test_allocation_admits_once_other_tiers_catch_up():
    verdict = check_reservation(
        Decimal("90000"),
        {"A": Decimal("45000"), "B": Decimal("45000")},
        Decimal("5000"),
        risk_tier=RiskTier.A,
        risk_allocation={RiskTier.A: Decimal("50")},
    )

    assert verdict is None


def test_zero_share_is_never_admitted():
    verdict = check_reservation(
        Decimal("0"), {}, Decimal("100"), risk_tier=RiskTier.D, risk_allocation={RiskTier.D: Decimal("0")}
    )

    assert verdict.scope == RISK_ALLOCATION


def test_tier_missing_from_allocation_is_unconstrained():
    verdict = check_reservation(
        Decimal("1000"),
        {"C": Decimal("1000")},
        Decimal("50000"),
        risk_tier=RiskTier.C,
        risk_allocation={RiskTier.A: Decimal("50")},
    )

    assert verdict is None


def test_request_without_tier_is_unconstrained_by_allocation():
    verdict = check_reservation(
        Decimal("1000"), {}, Decimal("50000"), risk_tier=None, risk_allocation={RiskTier.A: Decimal("0")}
    )

    assert verdict is None


def test_daily_limit_is_checked_before_allocation():
    verdict = check_reservation(
        Decimal("95000"),
        {"D": Decimal("95000")},
        Decimal("10000"),
        daily_limit=LIMIT,
        risk_tier=RiskTier.D,
        risk_allocation={RiskTier.D: Decimal("0")},
    )

    assert verdict.scope == DAILY_LIMIT


async def test_ledger_enforces_allocation_across_reservations(ledger, lender_id, rule_id):
    allocation = {RiskTier.A: Decimal("50"), RiskTier.C: Decimal("20")}

    async def reserve(amount, tier):
        return await ledger.try_reserve(
            lender_id, rule_id, DAY, Decimal(amount), risk_tier=tier, risk_allocation=allocation
        )

    assert isinstance(await reserve("40000", RiskTier.A), Reserved)
    # A already holds 40000 > 50% of 50000
    assert isinstance(await reserve("10000", RiskTier.A), LimitExceeded)
    assert isinstance(await reserve("40000", RiskTier.B), Reserved)
    # 40000 <= 50% of 90000
    assert isinstance(await reserve("10000", RiskTier.A), Reserved)
    assert isinstance(await reserve("5000", RiskTier.C), Reserved)
    # C holds 5000 <= 20% of 100000
    assert isinstance(await reserve("5000", RiskTier.C), Reserved)
    # C holds 10000 <= 20% of 101000
    assert isinstance(await reserve("1000", RiskTier.C), Reserved)
    assert await ledger.reserved_total(lender_id, rule_id, DAY) == Decimal("101000")
