"""Initial database schema

Revision ID: 000_initial_schema
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "000_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), server_default="0", nullable=False)


def _pct(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(5, 2), server_default="0", nullable=False)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create all initial tables."""

    plan_tier = sa.Enum("standard", "premium", name="plantier")

    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column(
            "role",
            sa.Enum("director", "sales_rep", "seller", "collaborator", "academy", name="userrole"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    # Prospects table
    op.create_table(
        "prospects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("assigned_to", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column(
            "pipeline_stage",
            sa.Enum(
                "new", "contacted", "qualified", "proposal", "negotiation", "won", "lost",
                name="pipelinestage",
            ),
            nullable=False,
        ),
        sa.Column("chosen_plan", plan_tier, nullable=True),
        sa.Column("final_deal_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("close_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_prospects_assigned_to", "prospects", ["assigned_to"])
    op.create_index("ix_prospects_pipeline_stage", "prospects", ["pipeline_stage"])
    op.create_index("ix_prospects_close_date", "prospects", ["close_date"])

    # Commission rules table
    op.create_table(
        "commission_rules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("month", sa.SmallInteger(), nullable=False),
        sa.Column("year", sa.SmallInteger(), nullable=False),
        sa.Column("standard_commission_pct", sa.Numeric(5, 2), nullable=False),
        sa.Column("premium_commission_pct", sa.Numeric(5, 2), nullable=False),
        _pct("standard_volume_bonus_pct"),
        sa.Column("standard_volume_threshold", sa.Integer(), server_default="0", nullable=False),
        _pct("premium_volume_bonus_pct"),
        sa.Column("premium_volume_threshold", sa.Integer(), server_default="0", nullable=False),
        sa.Column("objective_amount", sa.Numeric(12, 2), nullable=False),
        _money("bonus_100_110"),
        _money("bonus_111_125"),
        _money("bonus_above_125"),
        _pct("sla_threshold_pct"),
        _money("sla_bonus_amount"),
        _money("first_premium_bonus"),
        _money("exclusivity_bonus"),
        _money("large_deal_threshold"),
        _money("large_deal_bonus"),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("month", "year", name="uq_commission_rule_period"),
    )

    # Commission payouts table
    op.create_table(
        "commission_payouts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("month", sa.SmallInteger(), nullable=False),
        sa.Column("year", sa.SmallInteger(), nullable=False),
        sa.Column("rule_id", sa.Integer(), sa.ForeignKey("commission_rules.id"), nullable=True),
        _money("total_revenue_closed"),
        sa.Column("nb_deals_standard", sa.Integer(), server_default="0", nullable=False),
        sa.Column("nb_deals_premium", sa.Integer(), server_default="0", nullable=False),
        _money("commission_standard"),
        _money("commission_premium"),
        _money("bonus_volume"),
        _money("bonus_objective"),
        _money("bonus_sla"),
        _money("bonus_special"),
        _money("total_commission"),
        sa.Column(
            "status",
            sa.Enum("computing", "pending_validation", "validated", "paid", name="payoutstatus"),
            nullable=False,
        ),
        sa.Column("validated_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("seller_id", "month", "year", name="uq_commission_payout_period"),
    )
    op.create_index("ix_commission_payouts_seller_id", "commission_payouts", ["seller_id"])
    op.create_index("ix_commission_payouts_status", "commission_payouts", ["status"])

    # Per-deal commission details
    op.create_table(
        "deal_commission_details",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "payout_id",
            sa.Integer(),
            sa.ForeignKey("commission_payouts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("prospect_id", sa.Integer(), sa.ForeignKey("prospects.id"), nullable=False),
        sa.Column("deal_number", sa.String(40), nullable=False),
        sa.Column("deal_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("deal_plan", plan_tier, nullable=False),
        sa.Column("close_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("commission_amount", sa.Numeric(12, 2), nullable=False),
    )
    op.create_index("ix_deal_commission_details_payout_id", "deal_commission_details", ["payout_id"])

    # Sales table
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("prospect_id", sa.Integer(), sa.ForeignKey("prospects.id"), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=True),
        sa.Column("order_number", sa.String(100), nullable=True),
        sa.Column("sale_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("commission_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "confirmed", "paid", "cancelled", name="salestatus"),
            nullable=False,
        ),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_sales_seller_id", "sales", ["seller_id"])
    op.create_index("ix_sales_status", "sales", ["status"])
    op.create_index("ix_sales_sale_date", "sales", ["sale_date"])

    # Commission payments table
    op.create_table(
        "commission_payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("total_sales", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_commission", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.Enum("pending", "paid", name="paymentstatus"), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("payment_method", sa.String(100), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_commission_payments_seller_id", "commission_payments", ["seller_id"])

    # Audit logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "save_rule",
                "duplicate_rule",
                "recompute_payouts",
                "mark_pending_validation",
                "validate_payout",
                "validate_all_payouts",
                "process_payment",
                "create_sale",
                "update_sale_status",
                name="auditaction",
            ),
            nullable=False,
        ),
        sa.Column("target_type", sa.String(50), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("action_metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("audit_logs")
    op.drop_table("commission_payments")
    op.drop_table("sales")
    op.drop_table("deal_commission_details")
    op.drop_table("commission_payouts")
    op.drop_table("commission_rules")
    op.drop_table("prospects")
    op.drop_table("users")

    for enum_name in (
        "auditaction",
        "paymentstatus",
        "salestatus",
        "payoutstatus",
        "pipelinestage",
        "plantier",
        "userrole",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
