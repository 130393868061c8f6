"""
Commission schemas: rule input, payout views, recompute, sales and payment.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, model_validator

from src.models.commission import PayoutStatus
from src.models.prospect import PlanTier
from src.models.sale import SaleStatus

Percent = Annotated[Decimal, Field(ge=0, le=100)]
Amount = Annotated[Decimal, Field(ge=0)]

# Rule columns copied on save/duplicate (everything but period and audit)
RULE_VALUE_FIELDS = (
    "standard_commission_pct",
    "standard_volume_bonus_pct",
    "standard_volume_threshold",
    "premium_commission_pct",
    "premium_volume_bonus_pct",
    "premium_volume_threshold",
    "objective_amount",
    "bonus_100_110",
    "bonus_111_125",
    "bonus_above_125",
    "sla_threshold_pct",
    "sla_bonus_amount",
    "first_premium_bonus",
    "exclusivity_bonus",
    "large_deal_threshold",
    "large_deal_bonus",
    "is_active",
)


class CommissionRuleIn(BaseModel):
    """Director input for a month's commission rule."""

    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)

    standard_commission_pct: Decimal = Field(..., ge=0, le=100)
    standard_volume_bonus_pct: Percent = Decimal("0")
    standard_volume_threshold: int = Field(default=0, ge=0)

    premium_commission_pct: Decimal = Field(..., ge=0, le=100)
    premium_volume_bonus_pct: Percent = Decimal("0")
    premium_volume_threshold: int = Field(default=0, ge=0)

    objective_amount: Decimal = Field(..., ge=0)
    bonus_100_110: Amount = Decimal("0")
    bonus_111_125: Amount = Decimal("0")
    bonus_above_125: Amount = Decimal("0")

    sla_threshold_pct: Percent = Decimal("0")
    sla_bonus_amount: Amount = Decimal("0")

    first_premium_bonus: Amount = Decimal("0")
    exclusivity_bonus: Amount = Decimal("0")
    large_deal_threshold: Amount = Decimal("0")
    large_deal_bonus: Amount = Decimal("0")

    is_active: bool = True


class CommissionRuleResponse(CommissionRuleIn):
    """Stored commission rule."""

    model_config = {"from_attributes": True}

    id: int
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class PayoutResponse(BaseModel):
    """Monthly payout of one seller."""

    model_config = {"from_attributes": True}

    id: int
    seller_id: int
    seller_name: Optional[str] = None
    month: int
    year: int
    rule_id: Optional[int]

    total_revenue_closed: Decimal
    nb_deals_standard: int
    nb_deals_premium: int

    commission_standard: Decimal
    commission_premium: Decimal
    bonus_volume: Decimal
    bonus_objective: Decimal
    bonus_sla: Decimal
    bonus_special: Decimal
    total_commission: Decimal

    status: PayoutStatus
    validated_by: Optional[int] = None
    validated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_payout(cls, payout) -> "PayoutResponse":
        """Build from a CommissionPayout row; the seller relation must be loaded to get a name."""
        response = cls.model_validate(payout)
        seller = payout.__dict__.get("seller")
        if seller is not None:
            response.seller_name = seller.full_name
        return response


class PayoutDetailResponse(BaseModel):
    """Base-rate commission line of one deal."""

    model_config = {"from_attributes": True}

    id: int
    payout_id: int
    prospect_id: int
    company_name: Optional[str] = None
    deal_number: str
    deal_value: Decimal
    deal_plan: PlanTier
    close_date: Optional[datetime]
    commission_rate: Decimal
    commission_amount: Decimal

    @classmethod
    def from_detail(cls, detail) -> "PayoutDetailResponse":
        """Build from a DealCommissionDetail row with its prospect loaded."""
        response = cls.model_validate(detail)
        prospect = detail.__dict__.get("prospect")
        if prospect is not None:
            response.company_name = prospect.company_name
        return response


class SellerFailure(BaseModel):
    """A seller whose payout could not be recomputed."""

    seller_id: int
    seller_name: str
    reason: str


class RecomputeResponse(BaseModel):
    """Outcome of a recompute pass."""

    month: int
    year: int
    processed: int
    total: int
    failures: List[SellerFailure] = []
    summary: str


class BulkValidationResponse(BaseModel):
    """Outcome of validating every ready payout of a month."""

    month: int
    year: int
    validated: int


class ProcessPaymentRequest(BaseModel):
    """Director input for a commission payment."""

    seller_id: int
    period_start: date
    period_end: date
    total_commission: Decimal = Field(..., ge=0)
    payment_method: str = Field(default="bank_transfer", min_length=1, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_period(self) -> "ProcessPaymentRequest":
        if self.period_start > self.period_end:
            raise ValueError("period_start must not be after period_end")
        return self


class PaymentResponse(BaseModel):
    """Recorded commission payment."""

    id: int
    seller_id: int
    period_start: date
    period_end: date
    total_sales: Decimal
    total_commission: Decimal
    payment_date: date
    payment_method: str
    sales_paid: int
    payouts_paid: int


# ── Sales ─────────────────────────────────────────────────


class SaleCreate(BaseModel):
    """Director input for registering a sale."""

    seller_id: int
    sale_amount: Amount
    commission_percentage: Percent
    sale_date: Optional[date] = None
    status: SaleStatus = SaleStatus.PENDING
    prospect_id: Optional[int] = None
    product_name: Optional[str] = Field(None, max_length=255)
    order_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)


class SaleStatusUpdate(BaseModel):
    status: SaleStatus


class SaleResponse(BaseModel):
    """Registered sale."""

    model_config = {"from_attributes": True}

    id: int
    seller_id: int
    prospect_id: Optional[int] = None
    product_name: Optional[str] = None
    order_number: Optional[str] = None
    sale_amount: Decimal
    commission_percentage: Decimal
    commission_amount: Decimal
    status: SaleStatus
    sale_date: date
    created_by: Optional[int] = None


class SalesStatsResponse(BaseModel):
    """Sale totals with commission split by status."""

    total_sales: Decimal
    total_commission: Decimal
    nb_sales: int
    average_sale: Decimal
    confirmed: Decimal
    pending: Decimal
    paid: Decimal


class SimulatedDeal(BaseModel):
    """Hypothetical won deal for a simulation."""

    id: int = 0
    chosen_plan: PlanTier
    final_deal_value: Decimal = Field(..., ge=0)
    close_date: Optional[datetime] = None


class SimulationRequest(BaseModel):
    """Rule and deals to run through the calculator without persisting."""

    rule: CommissionRuleIn
    deals: List[SimulatedDeal] = []


class BreakdownResponse(BaseModel):
    """Commission breakdown returned by a simulation."""

    total_revenue: Decimal
    nb_deals_standard: int
    nb_deals_premium: int
    commission_standard: Decimal
    commission_premium: Decimal
    bonus_volume: Decimal
    bonus_objective: Decimal
    bonus_sla: Decimal
    bonus_special: Decimal
    total_commission: Decimal
    objective_pct: Optional[Decimal] = None
