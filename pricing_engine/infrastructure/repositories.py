"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and returns
immutable domain entities, never ORM rows.
"""

from __future__ import annotations

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    PlanOverrideModel,
    PricingPlanModel,
    PricingRuleModel,
    PromotionModel,
    PromotionUsageModel,
)
from pricing_engine.domain.catalog import PricingSnapshot
from pricing_engine.domain.entities import (
    HourWindow,
    Override,
    PricingPlan,
    PricingRule,
    Promotion,
)
from pricing_engine.domain.enums import Tier


# ── Row -> entity mapping ─────────────────────────────────────────────


def to_override(row: PlanOverrideModel) -> Override:
    return Override.build(
        plan_id=row.plan_id,
        over_time_type=row.overtime_type,
        over_time_value=row.overtime_value,
        windows={
            Tier.HOURLY: HourWindow.optional(row.hourly_start_hour, row.hourly_end_hour),
            Tier.DAILY: HourWindow.optional(row.daily_start_hour, row.daily_end_hour),
            Tier.WEEKLY: HourWindow.optional(row.weekly_start_hour, row.weekly_end_hour),
            Tier.MONTHLY: HourWindow.optional(row.monthly_start_hour, row.monthly_end_hour),
        },
        id=row.id,
    )


def to_plan(row: PricingPlanModel) -> PricingPlan:
    return PricingPlan(
        id=row.id,
        name=row.name,
        hourly_rate=row.hourly_rate,
        daily_rate=row.daily_rate,
        weekly_rate=row.weekly_rate,
        monthly_rate=row.monthly_rate,
        minimum_hours=row.minimum_hours,
        discount=row.discount,
        is_active=row.is_active,
        conditions=tuple(row.conditions or ()),
        override=to_override(row.override) if row.override else None,
    )


def to_rule(row: PricingRuleModel) -> PricingRule:
    return PricingRule(
        id=row.id,
        name=row.name,
        multiplier=row.multiplier,
        day_of_week=row.day_of_week,
        start_hour=row.start_hour,
        end_hour=row.end_hour,
        is_active=row.is_active,
        priority=row.priority,
    )


def to_promotion(row: PromotionModel) -> Promotion:
    return Promotion.build(
        discount_type=row.discount_type,
        discount_value=row.discount_value,
        id=row.id,
        name=row.name,
        description=row.description or "",
        start_date=row.start_date,
        end_date=row.end_date,
        plan_ids=frozenset(p.id for p in row.plans),
        usage_limit=row.usage_limit,
        usage_count=row.usage_count,
        is_active=row.is_active,
    )


# ── Repositories ──────────────────────────────────────────────────────


class PlanRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_plans(self) -> list[PricingPlan]:
        """Every plan that is not deleted, inactive ones included."""
        result = await self.session.execute(
            select(PricingPlanModel)
            .where(PricingPlanModel.deleted_at.is_(None))
            .order_by(PricingPlanModel.name)
        )
        return [to_plan(row) for row in result.scalars().all()]

    async def get_active_plans(self) -> list[PricingPlan]:
        result = await self.session.execute(
            select(PricingPlanModel)
            .where(PricingPlanModel.deleted_at.is_(None))
            .where(PricingPlanModel.is_active.is_(True))
            .order_by(PricingPlanModel.name)
        )
        return [to_plan(row) for row in result.scalars().all()]


class RuleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_rules(self) -> list[PricingRule]:
        result = await self.session.execute(
            select(PricingRuleModel)
            .where(PricingRuleModel.is_active.is_(True))
            .order_by(PricingRuleModel.priority.desc(), PricingRuleModel.id)
        )
        return [to_rule(row) for row in result.scalars().all()]


class PromotionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_promotions(self) -> list[Promotion]:
        result = await self.session.execute(
            select(PromotionModel)
            .where(PromotionModel.is_active.is_(True))
            .order_by(PromotionModel.id)
        )
        return [to_promotion(row) for row in result.scalars().all()]

    async def increment_usage(self, promotion_id: str) -> bool:
        """Atomic compare-and-increment; True iff a slot was claimed."""
        result = await self.session.execute(
            update(PromotionModel)
            .where(PromotionModel.id == promotion_id)
            .where(
                or_(
                    PromotionModel.usage_limit.is_(None),
                    PromotionModel.usage_count < PromotionModel.usage_limit,
                )
            )
            .values(usage_count=PromotionModel.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def record_usage(self, promotion_id: str, ride_id: str) -> None:
        self.session.add(PromotionUsageModel(promotion_id=promotion_id, ride_id=ride_id))
        await self.session.flush()

    async def get_usage_count(self, promotion_id: str) -> int:
        row = await self.session.get(PromotionModel, promotion_id)
        return row.usage_count if row else 0


async def load_snapshot(session: AsyncSession) -> PricingSnapshot:
    """Read plans, rules and promotions into one immutable snapshot."""
    return PricingSnapshot.build(
        plans=await PlanRepository(session).get_plans(),
        rules=await RuleRepository(session).get_active_rules(),
        promotions=await PromotionRepository(session).get_active_promotions(),
    )
