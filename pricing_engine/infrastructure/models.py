"""
SQLAlchemy ORM models for the pricing configuration store.

Tables
------
* ``pricing_plans``     -- rate tiers, minimum duration, static discount
* ``plan_overrides``    -- 0..1 overtime override per plan (unique plan_id)
* ``pricing_rules``     -- plan-independent dynamic multipliers
* ``promotions``        -- time-bounded, usage-limited discounts
* ``promotion_plans``   -- promotion <-> plan association
* ``promotion_usages``  -- one row per successful consumption (reconciliation)

Plans are soft-deleted (``deleted_at``) so historical rides stay auditable.
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from pricing_engine.domain.enums import DiscountType, OverTimeType


def _uuid() -> str:
    return str(uuid.uuid4())


promotion_plans = Table(
    "promotion_plans",
    Base.metadata,
    Column(
        "promotion_id",
        String(36),
        ForeignKey("promotions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "plan_id",
        String(36),
        ForeignKey("pricing_plans.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class PricingPlanModel(Base):
    __tablename__ = "pricing_plans"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(120), nullable=False)
    hourly_rate = Column(Numeric(12, 2), nullable=False, default=0)
    daily_rate = Column(Numeric(12, 2), nullable=False, default=0)
    weekly_rate = Column(Numeric(12, 2), nullable=False, default=0)
    monthly_rate = Column(Numeric(12, 2), nullable=False, default=0)
    minimum_hours = Column(Integer, nullable=False, default=1)
    discount = Column(Numeric(5, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    conditions = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    override = relationship(
        "PlanOverrideModel",
        back_populates="plan",
        uselist=False,
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("minimum_hours >= 1", name="ck_plans_minimum_hours"),
        CheckConstraint("discount >= 0 AND discount <= 100", name="ck_plans_discount"),
        Index("idx_plans_active", "is_active"),
    )


class PlanOverrideModel(Base):
    __tablename__ = "plan_overrides"

    id = Column(String(36), primary_key=True, default=_uuid)
    plan_id = Column(
        String(36),
        ForeignKey("pricing_plans.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    overtime_type = Column(Enum(OverTimeType), nullable=False)
    overtime_value = Column(Numeric(12, 2), nullable=False)

    hourly_start_hour = Column(Integer, nullable=True)
    hourly_end_hour = Column(Integer, nullable=True)
    daily_start_hour = Column(Integer, nullable=True)
    daily_end_hour = Column(Integer, nullable=True)
    weekly_start_hour = Column(Integer, nullable=True)
    weekly_end_hour = Column(Integer, nullable=True)
    monthly_start_hour = Column(Integer, nullable=True)
    monthly_end_hour = Column(Integer, nullable=True)

    plan = relationship("PricingPlanModel", back_populates="override")


class PricingRuleModel(Base):
    __tablename__ = "pricing_rules"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(120), nullable=False)
    day_of_week = Column(Integer, nullable=True)
    start_hour = Column(Integer, nullable=True)
    end_hour = Column(Integer, nullable=True)
    multiplier = Column(Numeric(6, 3), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    priority = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("multiplier > 0", name="ck_rules_multiplier"),
        Index("idx_rules_active", "is_active"),
    )


class PromotionModel(Base):
    __tablename__ = "promotions"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=False, default="")
    discount_type = Column(Enum(DiscountType), nullable=False)
    discount_value = Column(Numeric(12, 2), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    plans = relationship(
        "PricingPlanModel", secondary=promotion_plans, lazy="selectin"
    )

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_promotions_dates"),
        CheckConstraint(
            "usage_limit IS NULL OR usage_count <= usage_limit",
            name="ck_promotions_usage",
        ),
        Index("idx_promotions_active", "is_active"),
    )


class PromotionUsageModel(Base):
    __tablename__ = "promotion_usages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    promotion_id = Column(
        String(36), ForeignKey("promotions.id"), nullable=False
    )
    ride_id = Column(String(64), nullable=False)
    consumed_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_usages_promotion", "promotion_id"),
        Index("idx_usages_ride", "ride_id"),
    )
