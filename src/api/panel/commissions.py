"""Seller panel commission endpoints: a seller only ever sees their own payouts."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.errors import to_http_exception
from src.auth.dependencies import require_seller
from src.db import get_db
from src.models import User
from src.schemas.commission import PayoutDetailResponse, PayoutResponse
from src.services import payouts as payout_store
from src.services.errors import CommissionError

router = APIRouter(prefix="/commissions")


@router.get("/payouts", response_model=List[PayoutResponse])
async def my_payouts(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_seller),
):
    """Current seller's payouts, most recent month first."""
    payouts = await payout_store.list_seller_payouts(db, current_user.id)
    return [PayoutResponse.from_payout(p) for p in payouts]


@router.get("/payouts/{payout_id}/details", response_model=List[PayoutDetailResponse])
async def my_payout_details(
    payout_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_seller),
):
    """Per-deal lines of one of the current seller's payouts."""
    try:
        payout = await payout_store.get_payout(db, payout_id)
        if payout.seller_id != current_user.id:
            # Other sellers' payouts answer like missing ones
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Payout {payout_id} not found",
            )
        details = await payout_store.get_payout_details(db, payout_id)
    except CommissionError as e:
        raise to_http_exception(e)
    return [PayoutDetailResponse.from_detail(d) for d in details]
