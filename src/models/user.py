"""
User profile model.

Accounts are created and authenticated by the external auth provider;
this table only mirrors the profile fields the commission workflow needs.
"""

from enum import Enum
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.audit import AuditLog
    from src.models.prospect import Prospect


class UserRole(str, Enum):
    """User roles for access control."""
    DIRECTOR = "director"
    SALES_REP = "sales_rep"
    SELLER = "seller"
    COLLABORATOR = "collaborator"
    ACADEMY = "academy"


class User(Base, TimestampMixin):
    """
    User profile.

    - director: configures rules, recomputes, validates and pays commissions
    - sales_rep / seller: receives a monthly payout and sees only their own
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        SQLAlchemyEnum(
            UserRole,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Relationships
    assigned_prospects: Mapped[List["Prospect"]] = relationship(
        "Prospect",
        back_populates="seller",
        foreign_keys="Prospect.assigned_to",
    )
    audit_logs: Mapped[List["AuditLog"]] = relationship(
        "AuditLog",
        back_populates="user",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
