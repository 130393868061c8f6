"""Pydantic schemas for request/response validation."""

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
    SellerFailure,
    SimulatedDeal,
    SimulationRequest,
)

__all__ = [
    "BreakdownResponse",
    "BulkValidationResponse",
    "CommissionRuleIn",
    "CommissionRuleResponse",
    "PaymentResponse",
    "PayoutDetailResponse",
    "PayoutResponse",
    "ProcessPaymentRequest",
    "RecomputeResponse",
    "SellerFailure",
    "SimulatedDeal",
    "SimulationRequest",
]
