"""
Shared test fixtures.

Domain tests build entities directly through the ``make_*`` factories.
Repository and API tests use an in-memory SQLite database (via aiosqlite)
so they run without Docker / PostgreSQL / Redis.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from pricing_engine.domain.entities import (
    HourWindow,
    Override,
    PricingPlan,
    PricingRule,
    Promotion,
)
from pricing_engine.domain.enums import DiscountType, OverTimeType, Tier
from pricing_engine.domain.pricing import PriceCalculator
from pricing_engine.domain.promotions import InMemoryUsageCounter, PromotionEngine
from pricing_engine.infrastructure.database import Base

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

UTC = timezone.utc
PROMO_START = datetime(2026, 1, 1, tzinfo=UTC)
PROMO_END = datetime(2027, 1, 1, tzinfo=UTC)


# ── Entity factories ──────────────────────────────────────────────────


def make_plan(
    id="plan-std",
    hourly=500,
    daily=3000,
    weekly=15000,
    monthly=45000,
    minimum_hours=1,
    discount=0,
    is_active=True,
    override=None,
    name="Standard",
) -> PricingPlan:
    return PricingPlan(
        id=id,
        name=name,
        hourly_rate=hourly,
        daily_rate=daily,
        weekly_rate=weekly,
        monthly_rate=monthly,
        minimum_hours=minimum_hours,
        discount=discount,
        is_active=is_active,
        override=override,
    )


def make_override(
    plan_id="plan-std",
    over_time_type=OverTimeType.FIXED_PRICE,
    value=2000,
    hourly=(8, 20),
    daily=None,
    weekly=None,
    monthly=None,
) -> Override:
    windows = {
        Tier.HOURLY: HourWindow(*hourly) if hourly else None,
        Tier.DAILY: HourWindow(*daily) if daily else None,
        Tier.WEEKLY: HourWindow(*weekly) if weekly else None,
        Tier.MONTHLY: HourWindow(*monthly) if monthly else None,
    }
    return Override.build(plan_id, over_time_type, value, windows)


def make_rule(
    id="rule-1",
    multiplier=1.5,
    day_of_week=None,
    start_hour=None,
    end_hour=None,
    priority=0,
    is_active=True,
    name=None,
) -> PricingRule:
    return PricingRule(
        id=id,
        name=name or id,
        multiplier=multiplier,
        day_of_week=day_of_week,
        start_hour=start_hour,
        end_hour=end_hour,
        is_active=is_active,
        priority=priority,
    )


def make_promotion(
    id="promo-1",
    discount_type=DiscountType.PERCENTAGE,
    value=20,
    plan_ids=("plan-std",),
    usage_limit=None,
    usage_count=0,
    is_active=True,
    start=PROMO_START,
    end=PROMO_END,
) -> Promotion:
    return Promotion.build(
        discount_type=discount_type,
        discount_value=value,
        id=id,
        name=id,
        start_date=start,
        end_date=end,
        plan_ids=frozenset(plan_ids),
        usage_limit=usage_limit,
        usage_count=usage_count,
        is_active=is_active,
    )


def at(day: int, hour: int, minute: int = 0) -> datetime:
    """A UTC moment in October 2026 (the 16th is a Friday)."""
    return datetime(2026, 10, day, hour, minute, tzinfo=UTC)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def counter() -> InMemoryUsageCounter:
    return InMemoryUsageCounter()


@pytest.fixture
def calculator(counter) -> PriceCalculator:
    return PriceCalculator(tz=UTC, promotion_engine=PromotionEngine(counter))


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create tables, yield a session factory, then drop everything."""
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
