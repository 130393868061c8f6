"""
Sale-level commission records and payment events.

Sales carry their own status track (pending -> confirmed -> paid),
independent of the monthly payout status.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, ForeignKey, Numeric, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.prospect import Prospect
    from src.models.user import User


class SaleStatus(str, Enum):
    """Status of a sale's commission."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Status of a commission payment event."""
    PENDING = "pending"
    PAID = "paid"


class Sale(Base, TimestampMixin):
    """A registered sale with its commission amount."""

    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(primary_key=True)
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    prospect_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("prospects.id"),
        nullable=True,
    )
    product_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    order_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    sale_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    status: Mapped[SaleStatus] = mapped_column(
        SQLAlchemyEnum(
            SaleStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=SaleStatus.PENDING,
        nullable=False,
        index=True,
    )
    sale_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )

    # Relationships
    seller: Mapped["User"] = relationship("User", foreign_keys=[seller_id])
    prospect: Mapped[Optional["Prospect"]] = relationship("Prospect")

    def __repr__(self) -> str:
        return f"<Sale(id={self.id}, seller_id={self.seller_id}, status={self.status})>"


class CommissionPayment(Base, TimestampMixin):
    """A commission payment made to a seller for a period."""

    __tablename__ = "commission_payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_commission: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SQLAlchemyEnum(
            PaymentStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=PaymentStatus.PAID,
        nullable=False,
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<CommissionPayment(id={self.id}, seller_id={self.seller_id}, "
            f"total={self.total_commission})>"
        )
