"""
Sale-level commission track.

Directors register sales with a commission percentage; the commission
amount is derived here. Sale statuses move:
    pending -> confirmed -> paid
with pending or confirmed -> cancelled. Confirmed sales are what a
commission payment settles.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, FrozenSet, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.models import AuditAction, Prospect, Sale, SaleStatus, User
from src.services.commission import to_decimal
from src.services.errors import NotFoundError, RuleValidationError, StateConflictError
from src.utils.audit import log_action

logger = logging.getLogger(__name__)

SALE_TRANSITIONS: Dict[SaleStatus, FrozenSet[SaleStatus]] = {
    SaleStatus.PENDING: frozenset({SaleStatus.CONFIRMED, SaleStatus.CANCELLED}),
    SaleStatus.CONFIRMED: frozenset({SaleStatus.PAID, SaleStatus.CANCELLED}),
    SaleStatus.PAID: frozenset(),
    SaleStatus.CANCELLED: frozenset(),
}


@dataclass
class SalesStats:
    """Sale and commission totals, commission split by status."""

    total_sales: Decimal
    total_commission: Decimal
    nb_sales: int
    confirmed: Decimal
    pending: Decimal
    paid: Decimal

    @property
    def average_sale(self) -> Decimal:
        if not self.nb_sales:
            return Decimal("0")
        return (self.total_sales / self.nb_sales).quantize(settings.money_quantum, rounding=ROUND_HALF_UP)


def commission_for(sale_amount: Decimal, commission_percentage: Decimal) -> Decimal:
    """Commission of a sale, rounded half-up to the money quantum."""
    amount = sale_amount * commission_percentage / Decimal("100")
    return amount.quantize(settings.money_quantum, rounding=ROUND_HALF_UP)


async def get_sale(db: AsyncSession, sale_id: int) -> Sale:
    sale = await db.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


async def create_sale(
    db: AsyncSession,
    seller_id: int,
    sale_amount: Decimal,
    commission_percentage: Decimal,
    actor_id: int,
    sale_date: Optional[date] = None,
    status: SaleStatus = SaleStatus.PENDING,
    prospect_id: Optional[int] = None,
    product_name: Optional[str] = None,
    order_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> Sale:
    """
    Register a sale for a seller.

    Raises:
        RuleValidationError: negative amount, percentage above 100,
            or a sale registered directly as paid
        NotFoundError: unknown seller or prospect
    """
    amount = to_decimal("sale_amount", sale_amount)
    percentage = to_decimal("commission_percentage", commission_percentage)
    if percentage > Decimal("100"):
        raise RuleValidationError(
            "commission_percentage must be between 0 and 100", details=str(percentage)
        )
    if status == SaleStatus.PAID:
        raise RuleValidationError("Sales are marked paid by a commission payment")

    if await db.get(User, seller_id) is None:
        raise NotFoundError(f"Seller {seller_id} not found")
    if prospect_id is not None and await db.get(Prospect, prospect_id) is None:
        raise NotFoundError(f"Prospect {prospect_id} not found")

    sale = Sale(
        seller_id=seller_id,
        prospect_id=prospect_id,
        product_name=product_name,
        order_number=order_number,
        sale_amount=amount,
        commission_percentage=percentage,
        commission_amount=commission_for(amount, percentage),
        status=status,
        sale_date=sale_date or date.today(),
        notes=notes,
        created_by=actor_id,
    )
    db.add(sale)
    await db.flush()

    await log_action(
        db,
        user_id=actor_id,
        action=AuditAction.CREATE_SALE,
        target_type="sale",
        target_id=sale.id,
        action_metadata={
            "seller_id": seller_id,
            "sale_amount": str(amount),
            "commission_amount": str(sale.commission_amount),
        },
    )
    logger.info(f"Sale {sale.id} of {amount} registered for seller {seller_id}")
    return sale


async def update_sale_status(
    db: AsyncSession,
    sale_id: int,
    new_status: SaleStatus,
    actor_id: int,
) -> Sale:
    """
    Move a sale to a new status.

    Setting the current status again is a no-op. Paid and cancelled
    sales are final.

    Raises:
        NotFoundError: unknown sale
        StateConflictError: transition not allowed
    """
    sale = await get_sale(db, sale_id)
    if sale.status == new_status:
        return sale

    if new_status not in SALE_TRANSITIONS[sale.status]:
        raise StateConflictError(
            f"Sale {sale_id} cannot move from {sale.status.value} to {new_status.value}"
        )

    previous = sale.status
    sale.status = new_status
    await db.flush()

    await log_action(
        db,
        user_id=actor_id,
        action=AuditAction.UPDATE_SALE_STATUS,
        target_type="sale",
        target_id=sale.id,
        action_metadata={"from": previous.value, "to": new_status.value},
    )
    logger.info(f"Sale {sale_id}: {previous.value} -> {new_status.value}")
    return sale


async def get_sales_stats(
    db: AsyncSession,
    seller_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> SalesStats:
    """Totals over sales, optionally for one seller and an inclusive date range."""
    query = select(
        Sale.status,
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.sale_amount), 0),
        func.coalesce(func.sum(Sale.commission_amount), 0),
    ).group_by(Sale.status)
    if seller_id is not None:
        query = query.where(Sale.seller_id == seller_id)
    if date_from is not None:
        query = query.where(Sale.sale_date >= date_from)
    if date_to is not None:
        query = query.where(Sale.sale_date <= date_to)

    result = await db.execute(query)

    by_status = {s: Decimal("0") for s in SaleStatus}
    total_sales = Decimal("0")
    nb_sales = 0
    for sale_status, count, amount, commission in result.all():
        nb_sales += count
        total_sales += Decimal(str(amount))
        by_status[sale_status] = Decimal(str(commission))

    return SalesStats(
        total_sales=total_sales,
        total_commission=sum(by_status.values(), Decimal("0")),
        nb_sales=nb_sales,
        confirmed=by_status[SaleStatus.CONFIRMED],
        pending=by_status[SaleStatus.PENDING],
        paid=by_status[SaleStatus.PAID],
    )
