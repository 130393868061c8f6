"""
Payout store and status state machine.

Statuses only move forward:
    computing -> pending_validation -> validated -> paid
with computing -> validated allowed directly. A recompute refreshes the
numbers of a payout but never touches its status.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.models import (
    AuditAction,
    CommissionPayout,
    DealCommissionDetail,
    PayoutStatus,
)
from src.services.commission import CommissionBreakdown, CommissionLine
from src.services.errors import NotFoundError, StateConflictError
from src.utils.audit import log_action

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[PayoutStatus, FrozenSet[PayoutStatus]] = {
    PayoutStatus.COMPUTING: frozenset({PayoutStatus.PENDING_VALIDATION, PayoutStatus.VALIDATED}),
    PayoutStatus.PENDING_VALIDATION: frozenset({PayoutStatus.VALIDATED}),
    PayoutStatus.VALIDATED: frozenset({PayoutStatus.PAID}),
    PayoutStatus.PAID: frozenset(),
}

# Statuses picked up by "validate all"
READY_FOR_VALIDATION = (PayoutStatus.COMPUTING, PayoutStatus.PENDING_VALIDATION)

# Numeric payout columns written by a recompute
COMPUTED_FIELDS = (
    "nb_deals_standard",
    "nb_deals_premium",
    "commission_standard",
    "commission_premium",
    "bonus_volume",
    "bonus_objective",
    "bonus_sla",
    "bonus_special",
    "total_commission",
)


def can_transition(current: PayoutStatus, target: PayoutStatus) -> bool:
    """Whether a payout may move from current to target (same status counts as allowed)."""
    return current == target or target in ALLOWED_TRANSITIONS[current]


def make_deal_number(year: int, month: int, prospect_id: int) -> str:
    """Human-readable deal reference, e.g. 202603-42."""
    return f"{year}{month:02d}-{prospect_id}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Reads ─────────────────────────────────────────────────


async def get_payout(db: AsyncSession, payout_id: int) -> CommissionPayout:
    """Get a payout by id, raising NotFoundError when absent."""
    payout = await db.get(CommissionPayout, payout_id)
    if payout is None:
        raise NotFoundError(f"Payout {payout_id} not found")
    return payout


async def find_payout(
    db: AsyncSession,
    seller_id: int,
    month: int,
    year: int,
    for_update: bool = False,
) -> Optional[CommissionPayout]:
    """Get the payout of a seller for a period, optionally row-locked."""
    query = select(CommissionPayout).where(
        CommissionPayout.seller_id == seller_id,
        CommissionPayout.month == month,
        CommissionPayout.year == year,
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_payouts_for_month(db: AsyncSession, month: int, year: int) -> List[CommissionPayout]:
    """All payouts of a month with their seller, highest commission first."""
    result = await db.execute(
        select(CommissionPayout)
        .options(selectinload(CommissionPayout.seller))
        .where(
            CommissionPayout.month == month,
            CommissionPayout.year == year,
        )
        .order_by(CommissionPayout.total_commission.desc(), CommissionPayout.id)
    )
    return list(result.scalars().all())


async def list_seller_payouts(db: AsyncSession, seller_id: int) -> List[CommissionPayout]:
    """A seller's payouts, most recent period first."""
    result = await db.execute(
        select(CommissionPayout)
        .where(CommissionPayout.seller_id == seller_id)
        .order_by(CommissionPayout.year.desc(), CommissionPayout.month.desc())
    )
    return list(result.scalars().all())


async def get_payout_details(db: AsyncSession, payout_id: int) -> List[DealCommissionDetail]:
    """Detail lines of a payout with the prospect loaded."""
    await get_payout(db, payout_id)
    result = await db.execute(
        select(DealCommissionDetail)
        .options(selectinload(DealCommissionDetail.prospect))
        .where(DealCommissionDetail.payout_id == payout_id)
        .order_by(DealCommissionDetail.close_date, DealCommissionDetail.id)
    )
    return list(result.scalars().all())


# ── Recompute writes ──────────────────────────────────────


async def _ensure_payout_row(db: AsyncSession, seller_id: int, month: int, year: int) -> None:
    """Insert an empty computing payout unless one already exists for the period."""
    insert = sqlite_insert if db.get_bind().dialect.name == "sqlite" else pg_insert
    stmt = insert(CommissionPayout).values(
        seller_id=seller_id,
        month=month,
        year=year,
        status=PayoutStatus.COMPUTING,
    ).on_conflict_do_nothing(
        index_elements=["seller_id", "month", "year"]
    )
    await db.execute(stmt)


async def upsert_payout(
    db: AsyncSession,
    seller_id: int,
    month: int,
    year: int,
    rule_id: Optional[int],
    breakdown: CommissionBreakdown,
) -> CommissionPayout:
    """
    Insert or refresh a seller's payout for a period.

    New payouts start as computing. Existing ones get their numbers
    overwritten and keep their status. The row is inserted with ON CONFLICT
    DO NOTHING and then locked, so concurrent passes over the same period
    queue on the lock instead of failing on the unique constraint.
    """
    await _ensure_payout_row(db, seller_id, month, year)
    payout = await find_payout(db, seller_id, month, year, for_update=True)
    if payout.status in (PayoutStatus.VALIDATED, PayoutStatus.PAID):
        logger.info(
            f"Payout {payout.id} is {payout.status.value}: refreshing numbers, keeping status"
        )

    payout.rule_id = rule_id
    payout.total_revenue_closed = breakdown.total_revenue
    for name in COMPUTED_FIELDS:
        setattr(payout, name, getattr(breakdown, name))

    await db.flush()
    return payout


async def replace_details(
    db: AsyncSession,
    payout: CommissionPayout,
    lines: Sequence[CommissionLine],
) -> List[DealCommissionDetail]:
    """
    Replace all detail lines of a payout (delete then insert).

    Must run in the same transaction as the row lock taken by upsert_payout.
    """
    await db.execute(
        delete(DealCommissionDetail).where(DealCommissionDetail.payout_id == payout.id)
    )
    details = [
        DealCommissionDetail(
            payout_id=payout.id,
            prospect_id=line.prospect_id,
            deal_number=make_deal_number(payout.year, payout.month, line.prospect_id),
            deal_value=line.deal_value,
            deal_plan=line.deal_plan,
            close_date=line.close_date,
            commission_rate=line.commission_rate,
            commission_amount=line.commission_amount,
        )
        for line in lines
    ]
    db.add_all(details)
    await db.flush()
    return details


# ── Status transitions ────────────────────────────────────


async def update_payout_status(
    db: AsyncSession,
    payout_id: int,
    new_status: PayoutStatus,
    actor_id: int,
    timestamp: Optional[datetime] = None,
) -> CommissionPayout:
    """
    Move one payout to new_status.

    Re-applying the current status is a no-op.

    Raises:
        NotFoundError: unknown payout
        StateConflictError: transition would move the payout backwards
    """
    payout = await get_payout(db, payout_id)
    current = payout.status

    if not can_transition(current, new_status):
        raise StateConflictError(
            f"Payout {payout_id} cannot move from {current.value} to {new_status.value}"
        )
    if current == new_status:
        return payout

    timestamp = timestamp or _now()
    payout.status = new_status
    if new_status == PayoutStatus.VALIDATED:
        payout.validated_by = actor_id
        payout.validated_at = timestamp
    elif new_status == PayoutStatus.PAID:
        payout.paid_at = timestamp

    await db.flush()
    logger.info(
        f"Payout {payout_id} moved {current.value} -> {new_status.value} by user {actor_id}"
    )
    return payout


async def bulk_update_status(
    db: AsyncSession,
    month: int,
    year: int,
    from_statuses: Iterable[PayoutStatus],
    to_status: PayoutStatus,
    actor_id: int,
    timestamp: Optional[datetime] = None,
    seller_id: Optional[int] = None,
) -> int:
    """
    Move every payout of a period in from_statuses to to_status.

    Runs as one conditional UPDATE. Returns the number of rows changed.
    """
    from_statuses = tuple(from_statuses)
    for status in from_statuses:
        if not can_transition(status, to_status) or status == to_status:
            raise StateConflictError(
                f"Payouts cannot move from {status.value} to {to_status.value}"
            )

    timestamp = timestamp or _now()
    values = {"status": to_status}
    if to_status == PayoutStatus.VALIDATED:
        values.update(validated_by=actor_id, validated_at=timestamp)
    elif to_status == PayoutStatus.PAID:
        values.update(paid_at=timestamp)

    stmt = (
        update(CommissionPayout)
        .where(
            CommissionPayout.month == month,
            CommissionPayout.year == year,
            CommissionPayout.status.in_(from_statuses),
        )
        .values(**values)
        .execution_options(synchronize_session="evaluate")
    )
    if seller_id is not None:
        stmt = stmt.where(CommissionPayout.seller_id == seller_id)

    result = await db.execute(stmt)
    return result.rowcount or 0


async def mark_pending_validation(db: AsyncSession, payout_id: int, actor_id: int) -> CommissionPayout:
    """Submit a computed payout for director validation."""
    payout = await update_payout_status(db, payout_id, PayoutStatus.PENDING_VALIDATION, actor_id)
    await log_action(
        db,
        user_id=actor_id,
        action=AuditAction.MARK_PENDING_VALIDATION,
        target_type="payout",
        target_id=payout_id,
    )
    return payout


async def validate_payout(
    db: AsyncSession,
    payout_id: int,
    actor_id: int,
    timestamp: Optional[datetime] = None,
) -> CommissionPayout:
    """Validate one payout. Idempotent on already-validated payouts."""
    payout = await update_payout_status(db, payout_id, PayoutStatus.VALIDATED, actor_id, timestamp)
    await log_action(
        db,
        user_id=actor_id,
        action=AuditAction.VALIDATE_PAYOUT,
        target_type="payout",
        target_id=payout_id,
        action_metadata={"total_commission": str(payout.total_commission)},
    )
    return payout


async def validate_all_payouts(
    db: AsyncSession,
    month: int,
    year: int,
    actor_id: int,
    timestamp: Optional[datetime] = None,
) -> int:
    """Validate every computing or pending payout of a month. Paid payouts are untouched."""
    count = await bulk_update_status(
        db,
        month,
        year,
        READY_FOR_VALIDATION,
        PayoutStatus.VALIDATED,
        actor_id,
        timestamp,
    )
    await log_action(
        db,
        user_id=actor_id,
        action=AuditAction.VALIDATE_ALL_PAYOUTS,
        target_type="payout",
        action_metadata={"month": month, "year": year, "validated": count},
    )
    logger.info(f"Validated {count} payouts for {month:02d}/{year} by user {actor_id}")
    return count
