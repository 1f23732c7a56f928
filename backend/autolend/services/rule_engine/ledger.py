"""
Deployment ledger: capital reserved per lender, rule and calendar day.

Every increment goes through ``try_reserve``, which reads the bucket, checks
the rule's daily cap and risk allocation, and writes, as one atomic unit. A
rejected reservation writes nothing.

Risk allocation policy: for a request of tier ``T`` whose rule allots ``p``
percent to ``T``, the reservation is admitted only if the tier's amount
reserved so far today is at most ``p`` percent of the day's total *after*
this reservation. A tier may therefore overshoot its share by at most the
loan being admitted. A tier allotted 0 percent is never admitted; tiers the
rule does not mention, and requests with no resolvable tier, are only bound
by the daily cap.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Protocol, Tuple, Union

from autolend.core.enums import RiskTier
from autolend.core.exceptions import ValidationError

DAILY_LIMIT = "daily_limit"
RISK_ALLOCATION = "risk_allocation"

# Bucket key for reservations that carry no risk tier
UNTIERED = "-"

BucketKey = Tuple[uuid.UUID, Optional[uuid.UUID], date]


@dataclass(frozen=True)
class Reserved:
    """Reservation accepted; ``bucket_total`` includes it."""

    amount: Decimal
    bucket_total: Decimal


@dataclass(frozen=True)
class LimitExceeded:
    """Reservation rejected without any state change."""

    scope: str
    requested: Decimal
    current_total: Decimal
    limit: Optional[Decimal] = None
    risk_tier: Optional[RiskTier] = None


ReservationResult = Union[Reserved, LimitExceeded]


@dataclass(frozen=True)
class DeploymentLedgerEntry:
    """Journal line for one successful reservation."""

    lender_id: uuid.UUID
    rule_id: Optional[uuid.UUID]
    risk_tier: Optional[RiskTier]
    calendar_day: date
    amount_reserved: Decimal
    loan_request_id: Optional[uuid.UUID] = None


def tier_key(risk_tier: Optional[RiskTier]) -> str:
    return risk_tier.value if risk_tier is not None else UNTIERED


def check_reservation(
    current_total: Decimal,
    tier_amounts: Mapping[str, Decimal],
    amount: Decimal,
    daily_limit: Optional[Decimal] = None,
    risk_tier: Optional[RiskTier] = None,
    risk_allocation: Optional[Mapping[RiskTier, Decimal]] = None,
) -> Optional[LimitExceeded]:
    """
    Decide whether a reservation fits the bucket.

    Pure function shared by every ledger implementation; callers must hold
    the bucket lock while calling it and applying the result.

    Returns:
        None when the reservation fits, otherwise the LimitExceeded verdict
    """
    total_after = current_total + amount

    if daily_limit is not None and total_after > daily_limit:
        return LimitExceeded(
            scope=DAILY_LIMIT,
            requested=amount,
            current_total=current_total,
            limit=daily_limit,
            risk_tier=risk_tier,
        )

    if risk_allocation and risk_tier is not None and risk_tier in risk_allocation:
        share = risk_allocation[risk_tier]
        tier_before = Decimal(str(tier_amounts.get(tier_key(risk_tier), 0)))
        tier_cap = share / Decimal("100") * total_after
        if share == 0 or tier_before > tier_cap:
            return LimitExceeded(
                scope=RISK_ALLOCATION,
                requested=amount,
                current_total=current_total,
                limit=share,
                risk_tier=risk_tier,
            )

    return None


def validate_amount(amount: Decimal) -> Decimal:
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ValidationError(f"Reservation amount must be positive, got {amount}")
    return amount


class DeploymentLedger(Protocol):
    """Atomic reserve-if-room counter per (lender, rule, calendar day)."""

    async def try_reserve(
        self,
        lender_id: uuid.UUID,
        rule_id: Optional[uuid.UUID],
        calendar_day: date,
        amount: Decimal,
        *,
        daily_limit: Optional[Decimal] = None,
        risk_tier: Optional[RiskTier] = None,
        risk_allocation: Optional[Mapping[RiskTier, Decimal]] = None,
        loan_request_id: Optional[uuid.UUID] = None,
    ) -> ReservationResult:
        ...

    async def reserved_total(
        self,
        lender_id: uuid.UUID,
        rule_id: Optional[uuid.UUID],
        calendar_day: date,
    ) -> Decimal:
        ...


@dataclass
class _Bucket:
    total: Decimal = Decimal("0")
    tier_amounts: Dict[str, Decimal] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)


class InMemoryDeploymentLedger:
    """
    In-process ledger with one lock per bucket.

    The critical section never awaits, so it is safe under asyncio and under
    threads alike. Buckets for different lenders, rules or days never
    contend.
    """

    def __init__(self):
        self._buckets: Dict[BucketKey, _Bucket] = {}
        self._registry_lock = threading.Lock()
        self.entries: List[DeploymentLedgerEntry] = []

    def _bucket(self, key: BucketKey) -> _Bucket:
        with self._registry_lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = _Bucket()
            return bucket

    async def try_reserve(
        self,
        lender_id: uuid.UUID,
        rule_id: Optional[uuid.UUID],
        calendar_day: date,
        amount: Decimal,
        *,
        daily_limit: Optional[Decimal] = None,
        risk_tier: Optional[RiskTier] = None,
        risk_allocation: Optional[Mapping[RiskTier, Decimal]] = None,
        loan_request_id: Optional[uuid.UUID] = None,
    ) -> ReservationResult:
        amount = validate_amount(amount)
        bucket = self._bucket((lender_id, rule_id, calendar_day))

        with bucket.lock:
            verdict = check_reservation(
                bucket.total,
                bucket.tier_amounts,
                amount,
                daily_limit=daily_limit,
                risk_tier=risk_tier,
                risk_allocation=risk_allocation,
            )
            if verdict is not None:
                return verdict

            key = tier_key(risk_tier)
            bucket.total += amount
            bucket.tier_amounts[key] = bucket.tier_amounts.get(key, Decimal("0")) + amount
            self.entries.append(
                DeploymentLedgerEntry(
                    lender_id=lender_id,
                    rule_id=rule_id,
                    risk_tier=risk_tier,
                    calendar_day=calendar_day,
                    amount_reserved=amount,
                    loan_request_id=loan_request_id,
                )
            )
            return Reserved(amount=amount, bucket_total=bucket.total)

    async def reserved_total(
        self,
        lender_id: uuid.UUID,
        rule_id: Optional[uuid.UUID],
        calendar_day: date,
    ) -> Decimal:
        bucket = self._buckets.get((lender_id, rule_id, calendar_day))
        if bucket is None:
            return Decimal("0")
        with bucket.lock:
            return bucket.total
