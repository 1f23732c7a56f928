"""Repository tests against a SQLite-backed session"""

import asyncio
import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from autolend.core.enums import (
    AlertConditionType,
    AlertPriority,
    AlertType,
    DecisionOutcome,
    DecisionReason,
    EntityType,
    LoanStatus,
    RiskTier,
)
from autolend.core.exceptions import ConcurrencyConflict, DependencyError, NotFoundError
from autolend.models.domain import Alert, DeploymentBucket, LedgerReservation
from autolend.models.domain.ledger import UNASSIGNED_RULE_ID
from autolend.repositories import (
    AlertRepository,
    AlertRuleRepository,
    BlacklistRepository,
    DecisionRepository,
    LenderRepository,
    LoanRepository,
    RuleRepository,
    SqlDeploymentLedger,
)
from autolend.repositories.loan_repository import to_loan_request
from autolend.services.alert_service import AlertService
from autolend.services.rule_engine.base import AlertEvent, Decision
from autolend.services.rule_engine.ledger import LimitExceeded, Reserved

DAY = date(2026, 3, 2)


# Rules and blacklist


async def test_rules_come_back_in_match_order(db, seed, lender, rule_row, clock):
    newer = rule_row(rule_name="newer", created_at=clock.now() - timedelta(days=1))
    older = rule_row(rule_name="older", created_at=clock.now() - timedelta(days=10))
    inactive = rule_row(rule_name="inactive", is_active=False, created_at=clock.now() - timedelta(days=20))
    await seed(newer, older, inactive)

    rules = await RuleRepository(db).list_active_rules(lender.id)

    assert [r.name for r in rules] == ["older", "newer"]


async def test_rule_json_columns_map_to_engine_values(db, seed, lender, rule_row):
    await seed(
        rule_row(
            preferred_goods_categories=["Electronics", "Groceries"],
            preferred_regions=["Nairobi"],
            risk_allocation={"A": 50, "B": 30},
            min_credit_score=600,
            auto_approve_trusted_suppliers=True,
        )
    )

    [rule] = await RuleRepository(db).list_active_rules(lender.id)

    assert rule.preferred_categories == frozenset({"electronics", "groceries"})
    assert rule.preferred_regions == frozenset({"nairobi"})
    assert rule.risk_allocation == {RiskTier.A: Decimal("50"), RiskTier.B: Decimal("30")}
    assert rule.daily_deployment_limit == Decimal("100000")
    assert rule.auto_approve_trusted_suppliers
    assert rule.created_at.tzinfo is not None


async def test_rules_of_other_lenders_are_not_listed(db, seed, lender, rule_row):
    await seed(rule_row(lender_id=uuid.uuid4()))

    assert await RuleRepository(db).list_active_rules(lender.id) == []


async def test_blacklist_lookup(db, seed, lender, blacklist_row):
    await seed(
        blacklist_row(EntityType.RETAILER, "retailer-9"),
        blacklist_row(EntityType.SUPPLIER, "supplier-9", is_active=False),
    )
    repo = BlacklistRepository(db)

    assert await repo.is_entity_blacklisted(lender.id, EntityType.RETAILER, "retailer-9")
    assert not await repo.is_entity_blacklisted(lender.id, EntityType.SUPPLIER, "retailer-9")
    assert not await repo.is_entity_blacklisted(lender.id, EntityType.SUPPLIER, "supplier-9")
    assert not await repo.is_entity_blacklisted(uuid.uuid4(), EntityType.RETAILER, "retailer-9")


# Lenders and loans


async def test_missing_lender_raises(db):
    with pytest.raises(NotFoundError, match="Lender"):
        await LenderRepository(db).get_or_raise(uuid.uuid4())


async def test_missing_loan_raises(db):
    with pytest.raises(NotFoundError, match="Loan request"):
        await LoanRepository(db).get_or_raise(uuid.uuid4(), lock=True)


async def test_loan_maps_to_engine_request(db, seed, lender, trusted_supplier, loan_row):
    loan = await seed(loan_row(supplier_id=trusted_supplier.id, risk_tier=RiskTier.B))

    stored = await LoanRepository(db).get_or_raise(loan.id)
    request = to_loan_request(stored)

    assert request.id == loan.id
    assert request.supplier_id == str(trusted_supplier.id)
    assert request.supplier_is_trusted
    assert request.loan_amount == Decimal("45000")
    assert request.risk_tier is RiskTier.B
    assert request.display_name == "Mama Mboga Stores"


async def test_loan_without_supplier_is_not_trusted(db, seed, lender, loan_row):
    loan = await seed(loan_row())

    request = to_loan_request(await LoanRepository(db).get_or_raise(loan.id))

    assert request.supplier_id is None
    assert not request.supplier_is_trusted


async def test_list_active_loans_includes_payments(db, seed, lender, loan_row, active_loan_row):
    active = active_loan_row(date(2026, 2, 25), [True, False, True])
    await seed(active, loan_row(), active_loan_row(date(2026, 2, 25), [], lender_id=uuid.uuid4()))

    [portfolio_loan] = await LoanRepository(db).list_active_loans(lender.id)

    assert portfolio_loan.id == active.id
    assert [p.is_received for p in sorted(portfolio_loan.payments, key=lambda p: p.payment_date)] == [
        True,
        False,
        True,
    ]


async def test_set_status(db, seed, lender, loan_row):
    loan = await seed(loan_row())
    repo = LoanRepository(db)

    stored = await repo.get_or_raise(loan.id, lock=True)
    await repo.set_status(stored, LoanStatus.PENDING_REVIEW)
    await db.commit()

    assert (await repo.get_or_raise(loan.id)).status == LoanStatus.PENDING_REVIEW


# Decisions


async def test_decision_is_recorded(db, seed, lender, loan_row):
    loan = await seed(loan_row())
    decision = Decision(
        loan_request_id=loan.id,
        outcome=DecisionOutcome.DENIED,
        reason=DecisionReason.NO_MATCHING_RULE,
        message="No matching auto-lending rules found",
        details={"rules_evaluated": []},
    )
    repo = DecisionRepository(db)

    await repo.record(lender.id, decision)
    await db.commit()

    [stored] = await repo.list_for_loan(loan.id)
    assert stored.outcome == DecisionOutcome.DENIED
    assert stored.reason == DecisionReason.NO_MATCHING_RULE
    assert stored.details == {"rules_evaluated": []}


# Deployment ledger


@pytest.fixture
def sql_ledger(session_factory) -> SqlDeploymentLedger:
    return SqlDeploymentLedger(session_factory, max_attempts=3, backoff_seconds=0)


async def test_sql_ledger_reserves_until_limit(sql_ledger, lender_id):
    rule_id = uuid.uuid4()
    limit = Decimal("100000")

    first = await sql_ledger.try_reserve(lender_id, rule_id, DAY, Decimal("45000"), daily_limit=limit)
    second = await sql_ledger.try_reserve(lender_id, rule_id, DAY, Decimal("60000"), daily_limit=limit)
    third = await sql_ledger.try_reserve(lender_id, rule_id, DAY, Decimal("55000"), daily_limit=limit)

    assert isinstance(first, Reserved)
    assert isinstance(second, LimitExceeded)
    assert second.current_total == Decimal("45000")
    assert isinstance(third, Reserved)
    assert third.bucket_total == limit
    assert await sql_ledger.reserved_total(lender_id, rule_id, DAY) == limit


async def test_sql_ledger_journals_successful_reservations_only(sql_ledger, session_factory, lender_id):
    rule_id = uuid.uuid4()
    request_id = uuid.uuid4()

    await sql_ledger.try_reserve(
        lender_id,
        rule_id,
        DAY,
        Decimal("30000"),
        daily_limit=Decimal("50000"),
        risk_tier=RiskTier.A,
        loan_request_id=request_id,
    )
    await sql_ledger.try_reserve(lender_id, rule_id, DAY, Decimal("30000"), daily_limit=Decimal("50000"))

    async with session_factory() as session:
        entries = (await session.execute(select(LedgerReservation))).scalars().all()
        buckets = (await session.execute(select(DeploymentBucket))).scalars().all()

    assert len(entries) == 1
    assert entries[0].risk_tier == "A"
    assert entries[0].loan_request_id == request_id
    assert len(buckets) == 1
    assert Decimal(buckets[0].tier_amounts["A"]) == Decimal("30000")


async def test_sql_ledger_enforces_risk_allocation(sql_ledger, lender_id):
    rule_id = uuid.uuid4()
    allocation = {RiskTier.C: Decimal("20")}

    first = await sql_ledger.try_reserve(
        lender_id, rule_id, DAY, Decimal("10000"), risk_tier=RiskTier.C, risk_allocation=allocation
    )
    second = await sql_ledger.try_reserve(
        lender_id, rule_id, DAY, Decimal("10000"), risk_tier=RiskTier.C, risk_allocation=allocation
    )

    assert isinstance(first, Reserved)
    assert isinstance(second, LimitExceeded)
    assert second.scope == "risk_allocation"


async def test_sql_ledger_keeps_days_and_rules_apart(sql_ledger, lender_id):
    rule_id = uuid.uuid4()
    limit = Decimal("1000")

    await sql_ledger.try_reserve(lender_id, rule_id, DAY, limit, daily_limit=limit)
    next_day = await sql_ledger.try_reserve(lender_id, rule_id, DAY + timedelta(days=1), limit, daily_limit=limit)
    unassigned = await sql_ledger.try_reserve(lender_id, None, DAY, limit, daily_limit=limit)

    assert isinstance(next_day, Reserved)
    assert isinstance(unassigned, Reserved)
    assert await sql_ledger.reserved_total(lender_id, None, DAY) == limit


async def test_sql_ledger_unknown_bucket_is_empty(sql_ledger, lender_id):
    assert await sql_ledger.reserved_total(lender_id, uuid.uuid4(), DAY) == Decimal("0")


@pytest.fixture
def contended_ledger(session_factory) -> SqlDeploymentLedger:
    """Enough attempts for every loser of a write race to catch up"""
    return SqlDeploymentLedger(session_factory, max_attempts=50, backoff_seconds=0)


async def test_sql_ledger_never_overshoots_under_concurrency(contended_ledger, session_factory, lender_id):
    rule_id = uuid.uuid4()
    limit = Decimal("100000")
    await contended_ledger.try_reserve(lender_id, rule_id, DAY, Decimal("1"), daily_limit=limit)

    results = await asyncio.gather(
        *(
            contended_ledger.try_reserve(lender_id, rule_id, DAY, Decimal("7000"), daily_limit=limit)
            for _ in range(30)
        )
    )

    reserved = [r for r in results if isinstance(r, Reserved)]
    assert len(reserved) == 14
    assert all(isinstance(r, LimitExceeded) for r in results if not isinstance(r, Reserved))
    assert await contended_ledger.reserved_total(lender_id, rule_id, DAY) == Decimal("98001")
    async with session_factory() as session:
        entries = (await session.execute(select(LedgerReservation))).scalars().all()
    assert sum(Decimal(e.amount_reserved) for e in entries) == Decimal("98001")


async def test_sql_ledger_stale_write_is_a_conflict(sql_ledger, session_factory, lender_id):
    rule_id = uuid.uuid4()
    await sql_ledger.try_reserve(lender_id, rule_id, DAY, Decimal("100"))

    async with session_factory() as session:
        [bucket] = (await session.execute(select(DeploymentBucket))).scalars().all()
        await sql_ledger.try_reserve(lender_id, rule_id, DAY, Decimal("100"))
        bucket.amount_reserved = Decimal("999")
        with pytest.raises(StaleDataError):
            await session.commit()

    assert await sql_ledger.reserved_total(lender_id, rule_id, DAY) == Decimal("200")


async def test_sql_ledger_unassigned_bucket_is_a_single_row(contended_ledger, session_factory, lender_id):
    await asyncio.gather(
        *(contended_ledger.try_reserve(lender_id, None, DAY, Decimal("100")) for _ in range(5))
    )

    async with session_factory() as session:
        buckets = (await session.execute(select(DeploymentBucket))).scalars().all()
    assert [b.rule_id for b in buckets] == [UNASSIGNED_RULE_ID]
    assert await contended_ledger.reserved_total(lender_id, None, DAY) == Decimal("500")


async def test_sql_ledger_retries_conflicts(sql_ledger, lender_id, monkeypatch):
    calls = []
    reserve_once = sql_ledger._reserve_once

    async def flaky(*args, **kwargs):
        calls.append(1)
        if len(calls) < 3:
            raise ConcurrencyConflict("could not serialize access")
        return await reserve_once(*args, **kwargs)

    monkeypatch.setattr(sql_ledger, "_reserve_once", flaky)

    result = await sql_ledger.try_reserve(lender_id, uuid.uuid4(), DAY, Decimal("100"))

    assert isinstance(result, Reserved)
    assert len(calls) == 3


async def test_sql_ledger_gives_up_after_max_attempts(sql_ledger, lender_id, monkeypatch):
    async def always_conflicts(*args, **kwargs):
        raise ConcurrencyConflict("lock timeout")

    monkeypatch.setattr(sql_ledger, "_reserve_once", always_conflicts)

    with pytest.raises(DependencyError, match="after 3 attempts"):
        await sql_ledger.try_reserve(lender_id, uuid.uuid4(), DAY, Decimal("100"))


# Alerts


def _event(lender_id, dedup_key=None, priority=AlertPriority.MEDIUM, title="Alert"):
    return AlertEvent(
        lender_id=lender_id,
        type=AlertType.PAYMENT,
        priority=priority,
        title=title,
        message="message",
        amount=Decimal("1000"),
        dedup_key=dedup_key,
    )


async def test_alert_rules_are_parsed(db, seed, lender, alert_rule_row):
    await seed(
        alert_rule_row(AlertConditionType.OVERDUE_DAYS, "7"),
        alert_rule_row(AlertConditionType.RISK_LEVEL, "C", is_active=False),
    )

    [rule] = await AlertRuleRepository(db).list_active_rules(lender.id)

    assert rule.threshold == 7
    assert [c.value for c in rule.channels] == ["dashboard", "sms"]


async def test_alert_repository_skips_known_dedup_keys(db, lender):
    repo = AlertRepository(db)

    first = await repo.record_new([_event(lender.id, "k1"), _event(lender.id, "k2"), _event(lender.id)])
    await db.commit()
    second = await repo.record_new([_event(lender.id, "k1"), _event(lender.id, "k3")])
    await db.commit()

    assert len(first) == 3
    assert [e.dedup_key for e in second] == ["k3"]
    assert await repo.count(lender_id=lender.id) == 4


async def test_alert_repository_drops_duplicates_within_a_batch(db, lender):
    fresh = await AlertRepository(db).record_new([_event(lender.id, "same"), _event(lender.id, "same")])

    assert len(fresh) == 1


async def test_alerts_listed_by_priority_then_newest(db, lender, clock):
    db.add_all(
        [
            Alert(
                lender_id=lender.id,
                type=AlertType.PAYMENT,
                priority=priority,
                title=title,
                message="m",
                created_at=clock.now() + timedelta(minutes=offset),
            )
            for title, priority, offset in [
                ("low", AlertPriority.LOW, 5),
                ("critical-old", AlertPriority.CRITICAL, 0),
                ("medium", AlertPriority.MEDIUM, 3),
                ("critical-new", AlertPriority.CRITICAL, 10),
                ("high", AlertPriority.HIGH, 1),
            ]
        ]
    )
    await db.commit()

    alerts = await AlertRepository(db).list_for_lender(lender.id)

    assert [a.title for a in alerts] == ["critical-new", "critical-old", "high", "medium", "low"]
    assert len(await AlertRepository(db).list_for_lender(lender.id, limit=2)) == 2


async def test_concurrent_alert_checks_record_each_alert_once(
    session_factory, seed, lender, alert_rule_row, active_loan_row, clock
):
    await seed(
        alert_rule_row(AlertConditionType.OVERDUE_DAYS, "3"),
        active_loan_row(date(2026, 2, 24), [True, False, False]),
    )

    async with session_factory() as first, session_factory() as second:
        results = await asyncio.gather(
            AlertService(first, clock=clock).check_rules(lender.id),
            AlertService(second, clock=clock).check_rules(lender.id),
        )

    assert sorted(len(events) for events in results) == [0, 1]
    async with session_factory() as session:
        assert await AlertRepository(session).count(lender_id=lender.id) == 1
