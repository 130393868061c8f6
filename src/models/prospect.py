"""
Prospect model: a lead moving through the sales pipeline.

Won prospects are the deal source of the commission engine.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.user import User


class PipelineStage(str, Enum):
    """Stage of the prospect in the pipeline."""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    WON = "won"                        # Counted for commissions
    LOST = "lost"


class PlanTier(str, Enum):
    """Plan chosen by the client when the deal closes."""
    STANDARD = "standard"
    PREMIUM = "premium"


class Prospect(Base, TimestampMixin):
    """A partner lead owned by one seller."""

    __tablename__ = "prospects"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    assigned_to: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        index=True,
    )

    pipeline_stage: Mapped[PipelineStage] = mapped_column(
        SQLAlchemyEnum(
            PipelineStage,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=PipelineStage.NEW,
        nullable=False,
        index=True,
    )

    # Closing
    chosen_plan: Mapped[Optional[PlanTier]] = mapped_column(
        SQLAlchemyEnum(
            PlanTier,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=True,
    )
    final_deal_value: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
    )
    close_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    # Relationships
    seller: Mapped[Optional["User"]] = relationship(
        "User",
        back_populates="assigned_prospects",
        foreign_keys=[assigned_to],
    )

    def __repr__(self) -> str:
        return f"<Prospect(id={self.id}, company='{self.company_name}', stage={self.pipeline_stage})>"
