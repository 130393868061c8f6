"""
Commission payment processing.

A payment settles both status tracks of a seller for a period:
- sale-level: confirmed sales in the period become paid
- payout-level: validated payouts of months inside the period become paid
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import (
    AuditAction,
    CommissionPayment,
    CommissionPayout,
    PaymentStatus,
    PayoutStatus,
    Sale,
    SaleStatus,
    User,
)
from src.services.commission import to_decimal
from src.services.errors import NotFoundError, RuleValidationError
from src.utils.audit import log_action

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    """A recorded payment and how many records it settled."""

    payment: CommissionPayment
    sales_paid: int
    payouts_paid: int


def months_in_period(period_start: date, period_end: date) -> List[Tuple[int, int]]:
    """(month, year) pairs whose first day..last day fully lies in [period_start, period_end]."""
    months = []
    year, month = period_start.year, period_start.month
    if period_start.day != 1:
        month, year = (1, year + 1) if month == 12 else (month + 1, year)

    while True:
        next_month, next_year = (1, year + 1) if month == 12 else (month + 1, year)
        last_day = date(next_year, next_month, 1).toordinal() - 1
        if last_day > period_end.toordinal():
            break
        months.append((month, year))
        month, year = next_month, next_year
    return months


async def process_payment(
    db: AsyncSession,
    seller_id: int,
    period_start: date,
    period_end: date,
    total_commission: Decimal,
    payment_method: str,
    notes: Optional[str],
    actor_id: int,
    payment_date: Optional[date] = None,
) -> PaymentResult:
    """
    Record a commission payment and mark the settled records as paid.

    The caller commits; all writes belong to one transaction.

    Raises:
        RuleValidationError: inverted period or invalid amount
        NotFoundError: unknown seller
    """
    if period_start > period_end:
        raise RuleValidationError("period_start must not be after period_end")
    amount = to_decimal("total_commission", total_commission)

    seller = await db.get(User, seller_id)
    if seller is None:
        raise NotFoundError(f"Seller {seller_id} not found")

    in_period = (
        Sale.seller_id == seller_id,
        Sale.status == SaleStatus.CONFIRMED,
        Sale.sale_date >= period_start,
        Sale.sale_date <= period_end,
    )

    total_sales = await db.scalar(
        select(func.coalesce(func.sum(Sale.sale_amount), Decimal("0"))).where(*in_period)
    )

    payment = CommissionPayment(
        seller_id=seller_id,
        period_start=period_start,
        period_end=period_end,
        total_sales=total_sales or Decimal("0"),
        total_commission=amount,
        status=PaymentStatus.PAID,
        payment_date=payment_date or date.today(),
        payment_method=payment_method,
        notes=notes,
        created_by=actor_id,
    )
    db.add(payment)

    # Sale-level track
    sales_result = await db.execute(
        update(Sale)
        .where(*in_period)
        .values(status=SaleStatus.PAID)
        .execution_options(synchronize_session="evaluate")
    )
    sales_paid = sales_result.rowcount or 0

    # Payout-level track
    payouts_paid = 0
    months = months_in_period(period_start, period_end)
    if months:
        payout_result = await db.execute(
            update(CommissionPayout)
            .where(
                CommissionPayout.seller_id == seller_id,
                CommissionPayout.status == PayoutStatus.VALIDATED,
                or_(*[
                    and_(CommissionPayout.month == month, CommissionPayout.year == year)
                    for month, year in months
                ]),
            )
            .values(status=PayoutStatus.PAID, paid_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="evaluate")
        )
        payouts_paid = payout_result.rowcount or 0

    await db.flush()
    await log_action(
        db,
        user_id=actor_id,
        action=AuditAction.PROCESS_PAYMENT,
        target_type="payment",
        target_id=payment.id,
        action_metadata={
            "seller_id": seller_id,
            "total_commission": str(amount),
            "sales_paid": sales_paid,
            "payouts_paid": payouts_paid,
        },
    )
    logger.info(
        f"Payment {payment.id} of {amount} to seller {seller_id} "
        f"({period_start} - {period_end}): {sales_paid} sales, {payouts_paid} payouts settled"
    )
    return PaymentResult(payment=payment, sales_paid=sales_paid, payouts_paid=payouts_paid)
