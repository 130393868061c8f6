"""Director commission API endpoints."""

from datetime import date
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.errors import to_http_exception
from src.auth.dependencies import require_director
from src.db import get_db, get_session_factory
from src.models import User
from src.schemas.commission import (
    BreakdownResponse,
    BulkValidationResponse,
    CommissionRuleIn,
    CommissionRuleResponse,
    PaymentResponse,
    PayoutDetailResponse,
    PayoutResponse,
    ProcessPaymentRequest,
    RecomputeResponse,
    SaleCreate,
    SaleResponse,
    SalesStatsResponse,
    SaleStatusUpdate,
    SellerFailure,
    SimulationRequest,
)
from src.services import payouts as payout_store
from src.services import rules as rule_store
from src.services import sales as sale_store
from src.services.commission import calculate_commission
from src.services.errors import CommissionError
from src.services.orchestrator import PayoutOrchestrator
from src.services.payments import process_payment

router = APIRouter(prefix="/commissions")

Month = Annotated[int, Path(ge=1, le=12)]
Year = Annotated[int, Path(ge=2000, le=2100)]


# ── Rules ─────────────────────────────────────────────────


@router.get("/rules/{year}/{month}", response_model=CommissionRuleResponse)
async def get_rule(
    year: Year,
    month: Month,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Get the commission rule of a month."""
    rule = await rule_store.get_rule(db, month, year)
    if rule is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No commission rule for {month:02d}/{year}",
        )
    return rule


@router.put("/rules", response_model=CommissionRuleResponse)
async def save_rule(
    data: CommissionRuleIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Create or update the rule of a month."""
    rule = await rule_store.save_rule(db, data, actor_id=current_user.id)
    await db.commit()
    await db.refresh(rule)
    return rule


@router.post(
    "/rules/{year}/{month}/duplicate",
    response_model=CommissionRuleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_rule(
    year: Year,
    month: Month,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Copy a month's rule into the following month."""
    try:
        rule = await rule_store.duplicate_rule_to_next_month(db, month, year, actor_id=current_user.id)
    except CommissionError as e:
        raise to_http_exception(e)
    await db.commit()
    await db.refresh(rule)
    return rule


# ── Period operations ─────────────────────────────────────


@router.post("/periods/{year}/{month}/recompute", response_model=RecomputeResponse)
async def recompute_period(
    year: Year,
    month: Month,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    current_user: User = Depends(require_director),
):
    """Recompute every active seller's payout for a month."""
    orchestrator = PayoutOrchestrator(session_factory)
    try:
        report = await orchestrator.recompute(month, year, actor_id=current_user.id)
    except CommissionError as e:
        raise to_http_exception(e)

    return RecomputeResponse(
        month=month,
        year=year,
        processed=report.processed,
        total=report.total,
        failures=[
            SellerFailure(seller_id=f.seller_id, seller_name=f.seller_name, reason=f.reason)
            for f in report.failures
        ],
        summary=report.summary,
    )


@router.get("/periods/{year}/{month}/payouts", response_model=List[PayoutResponse])
async def list_period_payouts(
    year: Year,
    month: Month,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """List a month's payouts, highest commission first."""
    payouts = await payout_store.list_payouts_for_month(db, month, year)
    return [PayoutResponse.from_payout(p) for p in payouts]


@router.post("/periods/{year}/{month}/validate", response_model=BulkValidationResponse)
async def validate_period(
    year: Year,
    month: Month,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Validate every computing or pending payout of a month."""
    try:
        count = await payout_store.validate_all_payouts(db, month, year, actor_id=current_user.id)
    except CommissionError as e:
        raise to_http_exception(e)
    return BulkValidationResponse(month=month, year=year, validated=count)


# ── Single payout ─────────────────────────────────────────


@router.get("/payouts/{payout_id}/details", response_model=List[PayoutDetailResponse])
async def get_payout_details(
    payout_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Per-deal commission lines of a payout."""
    try:
        details = await payout_store.get_payout_details(db, payout_id)
    except CommissionError as e:
        raise to_http_exception(e)
    return [PayoutDetailResponse.from_detail(d) for d in details]


@router.post("/payouts/{payout_id}/submit", response_model=PayoutResponse)
async def submit_payout(
    payout_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Move a computed payout to pending validation."""
    try:
        payout = await payout_store.mark_pending_validation(db, payout_id, actor_id=current_user.id)
    except CommissionError as e:
        raise to_http_exception(e)
    return PayoutResponse.from_payout(payout)


@router.post("/payouts/{payout_id}/validate", response_model=PayoutResponse)
async def validate_payout(
    payout_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Validate one payout."""
    try:
        payout = await payout_store.validate_payout(db, payout_id, actor_id=current_user.id)
    except CommissionError as e:
        raise to_http_exception(e)
    return PayoutResponse.from_payout(payout)


# ── Sales ─────────────────────────────────────────────────


@router.post("/sales", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def create_sale(
    data: SaleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Register a sale and derive its commission."""
    try:
        sale = await sale_store.create_sale(
            db,
            seller_id=data.seller_id,
            sale_amount=data.sale_amount,
            commission_percentage=data.commission_percentage,
            actor_id=current_user.id,
            sale_date=data.sale_date,
            status=data.status,
            prospect_id=data.prospect_id,
            product_name=data.product_name,
            order_number=data.order_number,
            notes=data.notes,
        )
    except CommissionError as e:
        raise to_http_exception(e)
    await db.commit()
    return sale


@router.post("/sales/{sale_id}/status", response_model=SaleResponse)
async def update_sale_status(
    sale_id: int,
    data: SaleStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Confirm or cancel a sale."""
    try:
        sale = await sale_store.update_sale_status(db, sale_id, data.status, actor_id=current_user.id)
    except CommissionError as e:
        raise to_http_exception(e)
    await db.commit()
    return sale


@router.get("/sales/stats", response_model=SalesStatsResponse)
async def get_sales_stats(
    seller_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Sale totals, optionally for one seller and a date range."""
    stats = await sale_store.get_sales_stats(db, seller_id, date_from, date_to)
    return SalesStatsResponse(
        total_sales=stats.total_sales,
        total_commission=stats.total_commission,
        nb_sales=stats.nb_sales,
        average_sale=stats.average_sale,
        confirmed=stats.confirmed,
        pending=stats.pending,
        paid=stats.paid,
    )


# ── Payments & simulation ─────────────────────────────────


@router.post("/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: ProcessPaymentRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_director),
):
    """Pay a seller's commissions for a period."""
    try:
        result = await process_payment(
            db,
            seller_id=data.seller_id,
            period_start=data.period_start,
            period_end=data.period_end,
            total_commission=data.total_commission,
            payment_method=data.payment_method,
            notes=data.notes,
            actor_id=current_user.id,
        )
    except CommissionError as e:
        raise to_http_exception(e)

    payment = result.payment
    return PaymentResponse(
        id=payment.id,
        seller_id=payment.seller_id,
        period_start=payment.period_start,
        period_end=payment.period_end,
        total_sales=payment.total_sales,
        total_commission=payment.total_commission,
        payment_date=payment.payment_date,
        payment_method=payment.payment_method,
        sales_paid=result.sales_paid,
        payouts_paid=result.payouts_paid,
    )


@router.post("/simulate", response_model=BreakdownResponse)
async def simulate(
    data: SimulationRequest,
    current_user: User = Depends(require_director),
):
    """Run a rule against hypothetical deals without persisting anything."""
    try:
        breakdown = calculate_commission(data.rule, data.deals).quantized()
    except CommissionError as e:
        raise to_http_exception(e)

    return BreakdownResponse(
        total_revenue=breakdown.total_revenue,
        nb_deals_standard=breakdown.nb_deals_standard,
        nb_deals_premium=breakdown.nb_deals_premium,
        commission_standard=breakdown.commission_standard,
        commission_premium=breakdown.commission_premium,
        bonus_volume=breakdown.bonus_volume,
        bonus_objective=breakdown.bonus_objective,
        bonus_sla=breakdown.bonus_sla,
        bonus_special=breakdown.bonus_special,
        total_commission=breakdown.total_commission,
        objective_pct=breakdown.objective_pct,
    )
