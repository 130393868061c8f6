"""
Tests for the sale-level commission track.

Covers:
- Registering sales and deriving their commission
- Forward-only status changes
- Per-status commission totals
- Confirmed sales settled by a payment
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from src.models import AuditAction, AuditLog, SaleStatus, UserRole
from src.services.errors import NotFoundError, RuleValidationError, StateConflictError
from src.services.payments import process_payment
from src.services.sales import commission_for, create_sale, get_sales_stats, update_sale_status

from factories import create_user


async def _people(db):
    director = await create_user(db, role=UserRole.DIRECTOR, name="Dana Director")
    seller = await create_user(db, name="Alice Seller")
    return director, seller


def test_commission_for_rounds_half_up():
    assert commission_for(Decimal("1000"), Decimal("20")) == Decimal("200.00")
    assert commission_for(Decimal("10.05"), Decimal("50")) == Decimal("5.03")


# ── Registering sales ─────────────────────────────────────


class TestCreateSale:
    @pytest.mark.asyncio
    async def test_derives_commission_and_records_actor(self, db_session):
        director, seller = await _people(db_session)

        sale = await create_sale(
            db_session,
            seller_id=seller.id,
            sale_amount=Decimal("2500"),
            commission_percentage=Decimal("12.5"),
            actor_id=director.id,
            sale_date=date(2026, 3, 10),
            product_name="Premium plan",
        )

        assert sale.status == SaleStatus.PENDING
        assert sale.commission_amount == Decimal("312.50")
        assert sale.created_by == director.id

        [entry] = (await db_session.execute(select(AuditLog))).scalars().all()
        assert entry.action == AuditAction.CREATE_SALE
        assert entry.target_id == sale.id

    @pytest.mark.asyncio
    async def test_percentage_above_100_rejected(self, db_session):
        director, seller = await _people(db_session)
        with pytest.raises(RuleValidationError):
            await create_sale(db_session, seller.id, Decimal("100"), Decimal("120"), actor_id=director.id)

    @pytest.mark.asyncio
    async def test_negative_amount_rejected(self, db_session):
        director, seller = await _people(db_session)
        with pytest.raises(RuleValidationError):
            await create_sale(db_session, seller.id, Decimal("-1"), Decimal("10"), actor_id=director.id)

    @pytest.mark.asyncio
    async def test_cannot_register_as_paid(self, db_session):
        director, seller = await _people(db_session)
        with pytest.raises(RuleValidationError):
            await create_sale(
                db_session, seller.id, Decimal("100"), Decimal("10"),
                actor_id=director.id, status=SaleStatus.PAID,
            )

    @pytest.mark.asyncio
    async def test_unknown_seller(self, db_session):
        director, _ = await _people(db_session)
        with pytest.raises(NotFoundError):
            await create_sale(db_session, 999, Decimal("100"), Decimal("10"), actor_id=director.id)


# ── Status changes ────────────────────────────────────────


class TestUpdateSaleStatus:
    @pytest.mark.asyncio
    async def test_confirm_pending_sale(self, db_session):
        director, seller = await _people(db_session)
        sale = await create_sale(db_session, seller.id, Decimal("100"), Decimal("10"), actor_id=director.id)

        result = await update_sale_status(db_session, sale.id, SaleStatus.CONFIRMED, actor_id=director.id)

        assert result.status == SaleStatus.CONFIRMED
        actions = (await db_session.execute(select(AuditLog.action))).scalars().all()
        assert AuditAction.UPDATE_SALE_STATUS in actions

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, db_session):
        director, seller = await _people(db_session)
        sale = await create_sale(db_session, seller.id, Decimal("100"), Decimal("10"), actor_id=director.id)

        result = await update_sale_status(db_session, sale.id, SaleStatus.PENDING, actor_id=director.id)

        assert result.status == SaleStatus.PENDING
        actions = (await db_session.execute(select(AuditLog.action))).scalars().all()
        assert actions == [AuditAction.CREATE_SALE]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [SaleStatus.PENDING, SaleStatus.CONFIRMED, SaleStatus.CANCELLED])
    async def test_paid_sale_is_final(self, db_session, target):
        director, seller = await _people(db_session)
        sale = await create_sale(db_session, seller.id, Decimal("100"), Decimal("10"), actor_id=director.id)
        await update_sale_status(db_session, sale.id, SaleStatus.CONFIRMED, actor_id=director.id)
        await update_sale_status(db_session, sale.id, SaleStatus.PAID, actor_id=director.id)

        with pytest.raises(StateConflictError):
            await update_sale_status(db_session, sale.id, target, actor_id=director.id)
        assert sale.status == SaleStatus.PAID

    @pytest.mark.asyncio
    async def test_cancelled_sale_cannot_be_confirmed(self, db_session):
        director, seller = await _people(db_session)
        sale = await create_sale(db_session, seller.id, Decimal("100"), Decimal("10"), actor_id=director.id)
        await update_sale_status(db_session, sale.id, SaleStatus.CANCELLED, actor_id=director.id)

        with pytest.raises(StateConflictError):
            await update_sale_status(db_session, sale.id, SaleStatus.CONFIRMED, actor_id=director.id)

    @pytest.mark.asyncio
    async def test_pending_sale_cannot_jump_to_paid(self, db_session):
        director, seller = await _people(db_session)
        sale = await create_sale(db_session, seller.id, Decimal("100"), Decimal("10"), actor_id=director.id)

        with pytest.raises(StateConflictError):
            await update_sale_status(db_session, sale.id, SaleStatus.PAID, actor_id=director.id)

    @pytest.mark.asyncio
    async def test_unknown_sale(self, db_session):
        with pytest.raises(NotFoundError):
            await update_sale_status(db_session, 404, SaleStatus.CONFIRMED, actor_id=1)


# ── Stats and settlement ──────────────────────────────────


class TestSalesStats:
    @pytest.mark.asyncio
    async def test_commission_split_by_status(self, db_session):
        director, seller = await _people(db_session)
        other = await create_user(db_session, name="Bob Seller")
        march = date(2026, 3, 5)

        confirmed = await create_sale(db_session, seller.id, Decimal("1000"), Decimal("10"), director.id, march)
        await update_sale_status(db_session, confirmed.id, SaleStatus.CONFIRMED, actor_id=director.id)
        await create_sale(db_session, seller.id, Decimal("500"), Decimal("20"), director.id, march)
        await create_sale(db_session, seller.id, Decimal("300"), Decimal("10"), director.id, date(2026, 4, 2))
        await create_sale(db_session, other.id, Decimal("9000"), Decimal("10"), director.id, march)

        stats = await get_sales_stats(
            db_session, seller_id=seller.id, date_from=date(2026, 3, 1), date_to=date(2026, 3, 31)
        )

        assert stats.nb_sales == 2
        assert stats.total_sales == Decimal("1500")
        assert stats.total_commission == Decimal("200")
        assert stats.confirmed == Decimal("100")
        assert stats.pending == Decimal("100")
        assert stats.paid == Decimal("0")
        assert stats.average_sale == Decimal("750.00")

    @pytest.mark.asyncio
    async def test_no_sales(self, db_session):
        stats = await get_sales_stats(db_session)
        assert stats.nb_sales == 0
        assert stats.total_commission == Decimal("0")
        assert stats.average_sale == Decimal("0")

    @pytest.mark.asyncio
    async def test_confirmed_sales_are_settled_by_payment(self, db_session):
        director, seller = await _people(db_session)
        confirmed = await create_sale(
            db_session, seller.id, Decimal("1000"), Decimal("10"), director.id, date(2026, 3, 5)
        )
        pending = await create_sale(
            db_session, seller.id, Decimal("400"), Decimal("10"), director.id, date(2026, 3, 6)
        )
        await update_sale_status(db_session, confirmed.id, SaleStatus.CONFIRMED, actor_id=director.id)

        result = await process_payment(
            db_session,
            seller_id=seller.id,
            period_start=date(2026, 3, 1),
            period_end=date(2026, 3, 31),
            total_commission=Decimal("100"),
            payment_method="bank_transfer",
            notes=None,
            actor_id=director.id,
        )

        assert result.sales_paid == 1
        assert result.payment.total_sales == Decimal("1000")
        assert confirmed.status == SaleStatus.PAID
        assert pending.status == SaleStatus.PENDING

        stats = await get_sales_stats(db_session, seller_id=seller.id)
        assert stats.paid == Decimal("100")
        assert stats.pending == Decimal("40")
