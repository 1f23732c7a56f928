"""
SqlDeploymentLedger -- capital reservation via versioned bucket rows.

Each (lender_id, rule_id, calendar_day) has exactly one row in
``deployment_buckets``. A reservation runs in its own short transaction:

1. Read the bucket row (creating it first if missing), ``FOR UPDATE`` where
   the backend has row locks
2. Check the daily cap and risk allocation against the read totals
3. Write the new totals with ``UPDATE ... WHERE version = :read_version``
   and append a ``deployment_ledger_entries`` journal row
4. Commit

The version match makes the write a compare-and-set: if another
reservation committed between the read and the write, the UPDATE matches
no row, nothing is written, and the reservation is retried against the
fresh totals. On PostgreSQL the row lock means this never fires; on SQLite,
which ignores ``FOR UPDATE``, it is what keeps the cap intact.

A rejected reservation rolls back, so nothing is written. The running
total is never computed by aggregating the journal; the bucket row is the
only source of truth.

Failure modes:
    - IntegrityError on bucket creation: another transaction created the
      row first; the row is simply re-read.
    - Stale version, IntegrityError or OperationalError during the
      reservation (lock timeout, serialization failure, deadlock):
      ``ConcurrencyConflict``, retried with exponential backoff up to
      ``max_attempts``, then raised as ``DependencyError``.
"""

import asyncio
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Mapping, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from autolend.config import settings
from autolend.core.enums import RiskTier
from autolend.core.exceptions import ConcurrencyConflict, DependencyError
from autolend.models.domain.ledger import DeploymentBucket, LedgerReservation, bucket_rule_id
from autolend.services.rule_engine.ledger import (
    ReservationResult,
    Reserved,
    check_reservation,
    tier_key,
    validate_amount,
)

logger = logging.getLogger(__name__)


def _bucket_filter(lender_id: UUID, rule_id: Optional[UUID], calendar_day: date):
    return (
        DeploymentBucket.lender_id == lender_id,
        DeploymentBucket.rule_id == bucket_rule_id(rule_id),
        DeploymentBucket.calendar_day == calendar_day,
    )


def _tier_amounts(bucket: DeploymentBucket) -> Dict[str, Decimal]:
    return {tier: Decimal(str(amount)) for tier, amount in (bucket.tier_amounts or {}).items()}


class SqlDeploymentLedger:
    """
    Deployment ledger backed by the relational store.

    Takes a session factory rather than a session: every reservation
    commits independently of the caller's unit of work, so the lock is held
    only for the read-check-write itself.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.max_attempts = settings.LEDGER_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.backoff_seconds = (
            settings.LEDGER_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )

    async def try_reserve(
        self,
        lender_id: UUID,
        rule_id: Optional[UUID],
        calendar_day: date,
        amount: Decimal,
        *,
        daily_limit: Optional[Decimal] = None,
        risk_tier: Optional[RiskTier] = None,
        risk_allocation: Optional[Mapping[RiskTier, Decimal]] = None,
        loan_request_id: Optional[UUID] = None,
    ) -> ReservationResult:
        """
        Atomically reserve ``amount`` if the bucket has room.

        Returns:
            Reserved, or LimitExceeded with nothing written

        Raises:
            DependencyError: If contention persists past the retry budget
        """
        amount = validate_amount(amount)
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._reserve_once(
                    lender_id,
                    rule_id,
                    calendar_day,
                    amount,
                    daily_limit=daily_limit,
                    risk_tier=risk_tier,
                    risk_allocation=risk_allocation,
                    loan_request_id=loan_request_id,
                )
            except ConcurrencyConflict as e:
                if attempt >= self.max_attempts:
                    logger.error(
                        "Deployment ledger contention not resolved",
                        extra={
                            "lender_id": str(lender_id),
                            "rule_id": str(rule_id) if rule_id else None,
                            "calendar_day": calendar_day.isoformat(),
                            "attempts": attempt,
                        },
                    )
                    raise DependencyError(
                        f"Deployment ledger unavailable after {attempt} attempts: {e}"
                    ) from e
                backoff = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "Deployment ledger conflict, retrying",
                    extra={"attempt": attempt, "backoff_seconds": backoff},
                )
                await asyncio.sleep(backoff)

    async def _reserve_once(
        self,
        lender_id: UUID,
        rule_id: Optional[UUID],
        calendar_day: date,
        amount: Decimal,
        *,
        daily_limit: Optional[Decimal],
        risk_tier: Optional[RiskTier],
        risk_allocation: Optional[Mapping[RiskTier, Decimal]],
        loan_request_id: Optional[UUID],
    ) -> ReservationResult:
        async with self.session_factory() as session:
            try:
                bucket = await self._locked_bucket(session, lender_id, rule_id, calendar_day)
                if bucket is None:
                    await session.rollback()
                    await self._create_bucket(lender_id, rule_id, calendar_day)
                    bucket = await self._locked_bucket(session, lender_id, rule_id, calendar_day)
                    if bucket is None:
                        raise ConcurrencyConflict("deployment bucket vanished after creation")

                current = Decimal(str(bucket.amount_reserved))
                tiers = _tier_amounts(bucket)
                verdict = check_reservation(
                    current,
                    tiers,
                    amount,
                    daily_limit=daily_limit,
                    risk_tier=risk_tier,
                    risk_allocation=risk_allocation,
                )
                if verdict is not None:
                    await session.rollback()
                    return verdict

                key = tier_key(risk_tier)
                tiers[key] = tiers.get(key, Decimal("0")) + amount
                bucket.amount_reserved = current + amount
                # JSON columns are not mutation-tracked; assign a new dict
                bucket.tier_amounts = {tier: str(value) for tier, value in tiers.items()}
                session.add(
                    LedgerReservation(
                        lender_id=lender_id,
                        rule_id=rule_id,
                        risk_tier=risk_tier.value if risk_tier else None,
                        calendar_day=calendar_day,
                        amount_reserved=amount,
                        loan_request_id=loan_request_id,
                    )
                )
                await session.commit()
            except StaleDataError as e:
                await session.rollback()
                raise ConcurrencyConflict("deployment bucket changed since it was read") from e
            except (IntegrityError, OperationalError) as e:
                await session.rollback()
                raise ConcurrencyConflict(str(e.orig) if e.orig else str(e)) from e

        logger.debug(
            "Capital reserved",
            extra={
                "lender_id": str(lender_id),
                "rule_id": str(rule_id) if rule_id else None,
                "calendar_day": calendar_day.isoformat(),
                "amount": str(amount),
                "bucket_total": str(current + amount),
            },
        )
        return Reserved(amount=amount, bucket_total=current + amount)

    async def _locked_bucket(
        self,
        session: AsyncSession,
        lender_id: UUID,
        rule_id: Optional[UUID],
        calendar_day: date,
    ) -> Optional[DeploymentBucket]:
        stmt = (
            select(DeploymentBucket)
            .where(*_bucket_filter(lender_id, rule_id, calendar_day))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _create_bucket(
        self,
        lender_id: UUID,
        rule_id: Optional[UUID],
        calendar_day: date,
    ) -> None:
        """Insert an empty bucket; losing a creation race is fine."""
        async with self.session_factory() as session:
            session.add(
                DeploymentBucket(
                    lender_id=lender_id,
                    rule_id=bucket_rule_id(rule_id),
                    calendar_day=calendar_day,
                    amount_reserved=Decimal("0"),
                    tier_amounts={},
                )
            )
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.debug(
                    "Deployment bucket created concurrently",
                    extra={"lender_id": str(lender_id), "calendar_day": calendar_day.isoformat()},
                )

    async def reserved_total(
        self,
        lender_id: UUID,
        rule_id: Optional[UUID],
        calendar_day: date,
    ) -> Decimal:
        async with self.session_factory() as session:
            stmt = select(DeploymentBucket.amount_reserved).where(
                *_bucket_filter(lender_id, rule_id, calendar_day)
            )
            result = await session.execute(stmt)
            total = result.scalar_one_or_none()
        return Decimal(str(total)) if total is not None else Decimal("0")
