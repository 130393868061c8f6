"""
Commission rule, payout and per-deal detail models.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin
from src.models.prospect import PlanTier

if TYPE_CHECKING:
    from src.models.prospect import Prospect
    from src.models.user import User


def _money(**kwargs):
    return mapped_column(Numeric(12, 2), default=Decimal("0"), server_default="0", nullable=False, **kwargs)


def _pct(**kwargs):
    return mapped_column(Numeric(5, 2), default=Decimal("0"), server_default="0", nullable=False, **kwargs)


class PayoutStatus(str, Enum):
    """Lifecycle of a monthly payout. Forward-only."""
    COMPUTING = "computing"
    PENDING_VALIDATION = "pending_validation"
    VALIDATED = "validated"
    PAID = "paid"


class CommissionRule(Base, TimestampMixin):
    """
    Commission configuration for one calendar month.

    Percentages are whole-number scaled (12.00 means 12%).
    Edited by a director; read-only to the calculation once fetched.
    """

    __tablename__ = "commission_rules"
    __table_args__ = (
        UniqueConstraint("month", "year", name="uq_commission_rule_period"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    month: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    year: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    # Base rates (required)
    standard_commission_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    premium_commission_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    # Volume bonus
    standard_volume_bonus_pct: Mapped[Decimal] = _pct()
    standard_volume_threshold: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    premium_volume_bonus_pct: Mapped[Decimal] = _pct()
    premium_volume_threshold: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    # Objective bonus
    objective_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    bonus_100_110: Mapped[Decimal] = _money()
    bonus_111_125: Mapped[Decimal] = _money()
    bonus_above_125: Mapped[Decimal] = _money()

    # SLA bonus (not wired into the default calculation)
    sla_threshold_pct: Mapped[Decimal] = _pct()
    sla_bonus_amount: Mapped[Decimal] = _money()

    # Special bonuses
    first_premium_bonus: Mapped[Decimal] = _money()
    exclusivity_bonus: Mapped[Decimal] = _money()
    large_deal_threshold: Mapped[Decimal] = _money()
    large_deal_bonus: Mapped[Decimal] = _money()

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<CommissionRule(id={self.id}, period={self.month:02d}/{self.year})>"


class CommissionPayout(Base, TimestampMixin):
    """
    One seller's computed commission for one month.

    Numbers are overwritten on every recompute; the status only moves forward.
    """

    __tablename__ = "commission_payouts"
    __table_args__ = (
        UniqueConstraint("seller_id", "month", "year", name="uq_commission_payout_period"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    month: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    year: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    rule_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("commission_rules.id"),
        nullable=True,
    )

    total_revenue_closed: Mapped[Decimal] = _money()
    nb_deals_standard: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    nb_deals_premium: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    commission_standard: Mapped[Decimal] = _money()
    commission_premium: Mapped[Decimal] = _money()
    bonus_volume: Mapped[Decimal] = _money()
    bonus_objective: Mapped[Decimal] = _money()
    bonus_sla: Mapped[Decimal] = _money()
    bonus_special: Mapped[Decimal] = _money()
    total_commission: Mapped[Decimal] = _money()

    status: Mapped[PayoutStatus] = mapped_column(
        SQLAlchemyEnum(
            PayoutStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=PayoutStatus.COMPUTING,
        nullable=False,
        index=True,
    )
    validated_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )
    validated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    seller: Mapped["User"] = relationship("User", foreign_keys=[seller_id])
    rule: Mapped[Optional["CommissionRule"]] = relationship("CommissionRule")
    details: Mapped[List["DealCommissionDetail"]] = relationship(
        "DealCommissionDetail",
        back_populates="payout",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return (
            f"<CommissionPayout(id={self.id}, seller_id={self.seller_id}, "
            f"period={self.month:02d}/{self.year}, status={self.status})>"
        )


class DealCommissionDetail(Base):
    """
    Base-rate commission earned on one won deal.

    Period-level bonuses are not attributed per deal; they live on the payout.
    """

    __tablename__ = "deal_commission_details"

    id: Mapped[int] = mapped_column(primary_key=True)
    payout_id: Mapped[int] = mapped_column(
        ForeignKey("commission_payouts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    prospect_id: Mapped[int] = mapped_column(
        ForeignKey("prospects.id"),
        nullable=False,
    )
    deal_number: Mapped[str] = mapped_column(String(40), nullable=False)
    deal_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    deal_plan: Mapped[PlanTier] = mapped_column(
        SQLAlchemyEnum(
            PlanTier,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    close_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Relationships
    payout: Mapped["CommissionPayout"] = relationship(
        "CommissionPayout",
        back_populates="details",
    )
    prospect: Mapped["Prospect"] = relationship("Prospect")

    def __repr__(self) -> str:
        return f"<DealCommissionDetail(id={self.id}, payout_id={self.payout_id}, deal={self.deal_number})>"
