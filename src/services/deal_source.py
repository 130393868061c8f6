"""
Deal source: sellers and their won deals, read from the pipeline tables.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import PipelineStage, Prospect, User, UserRole


@dataclass(frozen=True)
class SellerRef:
    """Plain snapshot of a seller, safe to use across sessions."""

    id: int
    display_name: str
    role: str


def month_bounds(month: int, year: int) -> Tuple[datetime, datetime]:
    """Return the UTC [start, end) datetimes of a calendar month."""
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


async def list_active_sellers(db: AsyncSession, roles: Sequence[str]) -> List[SellerRef]:
    """List active users whose role earns a monthly payout."""
    wanted = [UserRole(r) for r in roles]
    result = await db.execute(
        select(User.id, User.full_name, User.role)
        .where(
            User.role.in_(wanted),
            User.is_active.is_(True),
        )
        .order_by(User.id)
    )
    return [
        SellerRef(id=row.id, display_name=row.full_name, role=row.role.value)
        for row in result.all()
    ]


async def get_won_deals(
    db: AsyncSession,
    seller_id: int,
    period_start: datetime,
    period_end: datetime,
) -> List[Prospect]:
    """
    Won prospects of a seller closed within [period_start, period_end).

    Prospects without a chosen plan are not commissionable and are left out.
    """
    result = await db.execute(
        select(Prospect)
        .where(
            Prospect.assigned_to == seller_id,
            Prospect.pipeline_stage == PipelineStage.WON,
            Prospect.chosen_plan.is_not(None),
            Prospect.close_date >= period_start,
            Prospect.close_date < period_end,
        )
        .order_by(Prospect.close_date, Prospect.id)
    )
    return list(result.scalars().all())
