"""
Tests for the payout store and status state machine.

Covers:
- Allowed transitions (forward-only)
- Single payout submit / validate
- Bulk validation of a month
- Read helpers and response building
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from src.models import AuditAction, AuditLog, CommissionPayout, PayoutStatus, UserRole
from src.schemas.commission import PayoutResponse
from src.services import payouts as payout_store
from src.services.errors import NotFoundError, StateConflictError
from src.services.payouts import can_transition, make_deal_number

from factories import create_user


async def _payout(db, seller, status=PayoutStatus.COMPUTING, total="100", month=3, year=2026):
    payout = CommissionPayout(
        seller_id=seller.id,
        month=month,
        year=year,
        status=status,
        total_commission=Decimal(total),
    )
    db.add(payout)
    await db.flush()
    return payout


# ── Transition table ──────────────────────────────────────


class TestCanTransition:
    @pytest.mark.parametrize(
        "current, target",
        [
            (PayoutStatus.COMPUTING, PayoutStatus.PENDING_VALIDATION),
            (PayoutStatus.COMPUTING, PayoutStatus.VALIDATED),
            (PayoutStatus.PENDING_VALIDATION, PayoutStatus.VALIDATED),
            (PayoutStatus.VALIDATED, PayoutStatus.PAID),
            (PayoutStatus.PAID, PayoutStatus.PAID),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (PayoutStatus.VALIDATED, PayoutStatus.COMPUTING),
            (PayoutStatus.VALIDATED, PayoutStatus.PENDING_VALIDATION),
            (PayoutStatus.PAID, PayoutStatus.VALIDATED),
            (PayoutStatus.PENDING_VALIDATION, PayoutStatus.COMPUTING),
            (PayoutStatus.COMPUTING, PayoutStatus.PAID),
        ],
    )
    def test_rejected(self, current, target):
        assert not can_transition(current, target)


def test_make_deal_number():
    assert make_deal_number(2026, 3, 42) == "202603-42"
    assert make_deal_number(2025, 12, 7) == "202512-7"


# ── Single payout ─────────────────────────────────────────


class TestSinglePayoutTransitions:
    @pytest.mark.asyncio
    async def test_mark_pending_validation(self, db_session):
        director = await create_user(db_session, role=UserRole.DIRECTOR, name="Dana Director")
        seller = await create_user(db_session)
        payout = await _payout(db_session, seller)

        result = await payout_store.mark_pending_validation(db_session, payout.id, actor_id=director.id)

        assert result.status == PayoutStatus.PENDING_VALIDATION
        assert result.validated_by is None

    @pytest.mark.asyncio
    async def test_validate_records_actor(self, db_session):
        director = await create_user(db_session, role=UserRole.DIRECTOR, name="Dana Director")
        seller = await create_user(db_session)
        payout = await _payout(db_session, seller, PayoutStatus.PENDING_VALIDATION)

        result = await payout_store.validate_payout(db_session, payout.id, actor_id=director.id)
        await db_session.flush()

        assert result.status == PayoutStatus.VALIDATED
        assert result.validated_by == director.id
        assert result.validated_at is not None

        entries = (await db_session.execute(select(AuditLog))).scalars().all()
        assert [e.action for e in entries] == [AuditAction.VALIDATE_PAYOUT]
        assert entries[0].target_id == payout.id

    @pytest.mark.asyncio
    async def test_validate_directly_from_computing(self, db_session):
        director = await create_user(db_session, role=UserRole.DIRECTOR, name="Dana Director")
        seller = await create_user(db_session)
        payout = await _payout(db_session, seller)

        result = await payout_store.validate_payout(db_session, payout.id, actor_id=director.id)
        assert result.status == PayoutStatus.VALIDATED

    @pytest.mark.asyncio
    async def test_validate_is_idempotent(self, db_session):
        director = await create_user(db_session, role=UserRole.DIRECTOR, name="Dana Director")
        other = await create_user(db_session, role=UserRole.DIRECTOR, name="Other Director")
        seller = await create_user(db_session)
        payout = await _payout(db_session, seller)

        first = await payout_store.validate_payout(db_session, payout.id, actor_id=director.id)
        validated_at = first.validated_at
        second = await payout_store.validate_payout(db_session, payout.id, actor_id=other.id)

        assert second.status == PayoutStatus.VALIDATED
        assert second.validated_by == director.id
        assert second.validated_at == validated_at

    @pytest.mark.asyncio
    async def test_validate_paid_payout_conflicts(self, db_session):
        director = await create_user(db_session, role=UserRole.DIRECTOR, name="Dana Director")
        seller = await create_user(db_session)
        payout = await _payout(db_session, seller, PayoutStatus.PAID)

        with pytest.raises(StateConflictError):
            await payout_store.validate_payout(db_session, payout.id, actor_id=director.id)
        assert payout.status == PayoutStatus.PAID

    @pytest.mark.asyncio
    async def test_submit_validated_payout_conflicts(self, db_session):
        director = await create_user(db_session, role=UserRole.DIRECTOR, name="Dana Director")
        seller = await create_user(db_session)
        payout = await _payout(db_session, seller, PayoutStatus.VALIDATED)

        with pytest.raises(StateConflictError):
            await payout_store.mark_pending_validation(db_session, payout.id, actor_id=director.id)

    @pytest.mark.asyncio
    async def test_unknown_payout(self, db_session):
        with pytest.raises(NotFoundError):
            await payout_store.validate_payout(db_session, 999, actor_id=1)

    @pytest.mark.asyncio
    async def test_paid_sets_paid_at(self, db_session):
        director = await create_user(db_session, role=UserRole.DIRECTOR, name="Dana Director")
        seller = await create_user(db_session)
        payout = await _payout(db_session, seller, PayoutStatus.VALIDATED)

        result = await payout_store.update_payout_status(
            db_session, payout.id, PayoutStatus.PAID, actor_id=director.id
        )
        assert result.paid_at is not None


# ── Bulk validation ───────────────────────────────────────


class TestValidateAll:
    @pytest.mark.asyncio
    async def test_validates_ready_payouts_and_skips_paid(self, db_session):
        director = await create_user(db_session, role=UserRole.DIRECTOR, name="Dana Director")
        sellers = [await create_user(db_session, name=f"Seller {i}") for i in range(5)]
        computing = await _payout(db_session, sellers[0], PayoutStatus.COMPUTING)
        pending = await _payout(db_session, sellers[1], PayoutStatus.PENDING_VALIDATION)
        validated = await _payout(db_session, sellers[2], PayoutStatus.VALIDATED)
        paid = await _payout(db_session, sellers[3], PayoutStatus.PAID)
        other_month = await _payout(db_session, sellers[4], PayoutStatus.COMPUTING, month=4)

        count = await payout_store.validate_all_payouts(db_session, 3, 2026, actor_id=director.id)
        await db_session.flush()

        assert count == 2
        for payout in (computing, pending, validated, paid, other_month):
            await db_session.refresh(payout)
        assert computing.status == PayoutStatus.VALIDATED
        assert computing.validated_by == director.id
        assert pending.status == PayoutStatus.VALIDATED
        assert validated.status == PayoutStatus.VALIDATED
        assert paid.status == PayoutStatus.PAID
        assert other_month.status == PayoutStatus.COMPUTING

    @pytest.mark.asyncio
    async def test_empty_month(self, db_session):
        director = await create_user(db_session, role=UserRole.DIRECTOR, name="Dana Director")
        count = await payout_store.validate_all_payouts(db_session, 1, 2026, actor_id=director.id)
        assert count == 0

    @pytest.mark.asyncio
    async def test_backward_bulk_transition_rejected(self, db_session):
        with pytest.raises(StateConflictError):
            await payout_store.bulk_update_status(
                db_session,
                3,
                2026,
                [PayoutStatus.VALIDATED],
                PayoutStatus.COMPUTING,
                actor_id=1,
            )

    @pytest.mark.asyncio
    async def test_bulk_restricted_to_seller(self, db_session):
        director = await create_user(db_session, role=UserRole.DIRECTOR, name="Dana Director")
        alice = await create_user(db_session, name="Alice")
        bob = await create_user(db_session, name="Bob")
        mine = await _payout(db_session, alice, PayoutStatus.VALIDATED)
        theirs = await _payout(db_session, bob, PayoutStatus.VALIDATED)

        count = await payout_store.bulk_update_status(
            db_session,
            3,
            2026,
            [PayoutStatus.VALIDATED],
            PayoutStatus.PAID,
            actor_id=director.id,
            seller_id=alice.id,
        )

        assert count == 1
        await db_session.refresh(mine)
        await db_session.refresh(theirs)
        assert mine.status == PayoutStatus.PAID
        assert mine.paid_at is not None
        assert theirs.status == PayoutStatus.VALIDATED


# ── Reads ─────────────────────────────────────────────────


class TestPayoutReads:
    @pytest.mark.asyncio
    async def test_month_listing_orders_by_total(self, db_session, session_factory):
        low = await create_user(db_session, name="Low Seller")
        high = await create_user(db_session, name="High Seller")
        await _payout(db_session, low, total="50")
        await _payout(db_session, high, total="900")
        await db_session.commit()

        async with session_factory() as db:
            payouts = await payout_store.list_payouts_for_month(db, 3, 2026)

        assert [p.seller_id for p in payouts] == [high.id, low.id]
        response = PayoutResponse.from_payout(payouts[0])
        assert response.seller_name == "High Seller"
        assert response.total_commission == Decimal("900")

    @pytest.mark.asyncio
    async def test_seller_listing_most_recent_first(self, db_session):
        seller = await create_user(db_session)
        await _payout(db_session, seller, month=11, year=2025)
        await _payout(db_session, seller, month=2, year=2026)
        await _payout(db_session, seller, month=12, year=2025)

        payouts = await payout_store.list_seller_payouts(db_session, seller.id)
        assert [(p.month, p.year) for p in payouts] == [(2, 2026), (12, 2025), (11, 2025)]

    @pytest.mark.asyncio
    async def test_details_of_unknown_payout(self, db_session):
        with pytest.raises(NotFoundError):
            await payout_store.get_payout_details(db_session, 404)
