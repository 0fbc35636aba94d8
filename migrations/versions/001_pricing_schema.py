"""Pricing configuration schema: plans, overrides, rules, promotions.

Revision ID: 001
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── pricing_plans ─────────────────────────────────────────────────
    op.create_table(
        "pricing_plans",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("daily_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("weekly_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("monthly_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("minimum_hours", sa.Integer, nullable=False, server_default="1"),
        sa.Column("discount", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("conditions", sa.JSON, nullable=False, server_default="[]"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("minimum_hours >= 1", name="ck_plans_minimum_hours"),
        sa.CheckConstraint(
            "discount >= 0 AND discount <= 100", name="ck_plans_discount"
        ),
    )
    op.create_index("idx_plans_active", "pricing_plans", ["is_active"])

    # ── plan_overrides ────────────────────────────────────────────────
    op.create_table(
        "plan_overrides",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "plan_id",
            sa.String(36),
            sa.ForeignKey("pricing_plans.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        sa.Column(
            "overtime_type",
            sa.Enum("FIXED_PRICE", "PERCENTAGE_REDUCTION", name="overtimetype"),
            nullable=False,
        ),
        sa.Column("overtime_value", sa.Numeric(12, 2), nullable=False),
        *[
            sa.Column(f"{tier}_{edge}_hour", sa.Integer, nullable=True)
            for tier in ("hourly", "daily", "weekly", "monthly")
            for edge in ("start", "end")
        ],
    )

    # ── pricing_rules ─────────────────────────────────────────────────
    op.create_table(
        "pricing_rules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("day_of_week", sa.Integer, nullable=True),
        sa.Column("start_hour", sa.Integer, nullable=True),
        sa.Column("end_hour", sa.Integer, nullable=True),
        sa.Column("multiplier", sa.Numeric(6, 3), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("multiplier > 0", name="ck_rules_multiplier"),
    )
    op.create_index("idx_rules_active", "pricing_rules", ["is_active"])

    # ── promotions ────────────────────────────────────────────────────
    op.create_table(
        "promotions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column(
            "discount_type",
            sa.Enum("PERCENTAGE", "FIXED_AMOUNT", name="discounttype"),
            nullable=False,
        ),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("usage_limit", sa.Integer, nullable=True),
        sa.Column("usage_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("end_date > start_date", name="ck_promotions_dates"),
        sa.CheckConstraint(
            "usage_limit IS NULL OR usage_count <= usage_limit",
            name="ck_promotions_usage",
        ),
    )
    op.create_index("idx_promotions_active", "promotions", ["is_active"])

    # ── promotion_plans ───────────────────────────────────────────────
    op.create_table(
        "promotion_plans",
        sa.Column(
            "promotion_id",
            sa.String(36),
            sa.ForeignKey("promotions.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "plan_id",
            sa.String(36),
            sa.ForeignKey("pricing_plans.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    # ── promotion_usages ──────────────────────────────────────────────
    op.create_table(
        "promotion_usages",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "promotion_id",
            sa.String(36),
            sa.ForeignKey("promotions.id"),
            nullable=False,
        ),
        sa.Column("ride_id", sa.String(64), nullable=False),
        sa.Column(
            "consumed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_usages_promotion", "promotion_usages", ["promotion_id"])
    op.create_index("idx_usages_ride", "promotion_usages", ["ride_id"])


def downgrade() -> None:
    op.drop_table("promotion_usages")
    op.drop_table("promotion_plans")
    op.drop_table("promotions")
    op.drop_table("pricing_rules")
    op.drop_table("plan_overrides")
    op.drop_table("pricing_plans")
    op.execute("DROP TYPE IF EXISTS discounttype")
    op.execute("DROP TYPE IF EXISTS overtimetype")
