"""
Database models.

All models are exported here for convenient imports:
    from src.models import User, CommissionPayout, Sale, etc.
"""

from src.models.audit import AuditAction, AuditLog
from src.models.base import Base, TimestampMixin
from src.models.commission import (
    CommissionPayout,
    CommissionRule,
    DealCommissionDetail,
    PayoutStatus,
)
from src.models.prospect import PipelineStage, PlanTier, Prospect
from src.models.sale import CommissionPayment, PaymentStatus, Sale, SaleStatus
from src.models.user import User, UserRole

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # User
    "User",
    "UserRole",
    # Pipeline
    "Prospect",
    "PipelineStage",
    "PlanTier",
    # Commissions
    "CommissionRule",
    "CommissionPayout",
    "DealCommissionDetail",
    "PayoutStatus",
    # Sales
    "Sale",
    "SaleStatus",
    "CommissionPayment",
    "PaymentStatus",
    # Audit
    "AuditLog",
    "AuditAction",
]
