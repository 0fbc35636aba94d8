"""
Seed script -- populates the configuration store with sample pricing data.

Run after migrations:
    python seed.py

Creates:
  - 4 pricing plans (one inactive, one with an overtime override)
  - 4 dynamic pricing rules (rush hours, Friday evening, night, weekend)
  - 3 promotions (percentage, flat amount, usage-limited)
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from pricing_engine.domain.enums import DiscountType, OverTimeType
from pricing_engine.infrastructure.database import async_session_factory, engine
from pricing_engine.infrastructure.models import (
    PlanOverrideModel,
    PricingPlanModel,
    PricingRuleModel,
    PromotionModel,
)


PLANS = [
    {
        "name": "Standard",
        "hourly_rate": 500, "daily_rate": 3000, "weekly_rate": 15000, "monthly_rate": 45000,
        "minimum_hours": 1, "discount": 0, "is_active": True,
        "conditions": ["Casque obligatoire"],
    },
    {
        "name": "Etudiant",
        "hourly_rate": 300, "daily_rate": 2000, "weekly_rate": 10000, "monthly_rate": 30000,
        "minimum_hours": 1, "discount": 10, "is_active": True,
        "conditions": ["Carte étudiant valide"],
    },
    {
        "name": "Journée",
        "hourly_rate": 1000, "daily_rate": 5000, "weekly_rate": 25000, "monthly_rate": 80000,
        "minimum_hours": 2, "discount": 0, "is_active": True,
        "conditions": [],
    },
    {
        "name": "Ancien tarif",
        "hourly_rate": 400, "daily_rate": 2500, "weekly_rate": 12000, "monthly_rate": 40000,
        "minimum_hours": 1, "discount": 0, "is_active": False,
        "conditions": [],
    },
]

RULES = [
    {"name": "Heure de pointe matin", "day_of_week": None, "start_hour": 7, "end_hour": 9, "multiplier": 1.2, "priority": 5},
    {"name": "Vendredi soir", "day_of_week": 5, "start_hour": 18, "end_hour": 23, "multiplier": 1.5, "priority": 10},
    {"name": "Nuit", "day_of_week": None, "start_hour": 22, "end_hour": 2, "multiplier": 1.3, "priority": 5},
    {"name": "Dimanche", "day_of_week": 0, "start_hour": None, "end_hour": None, "multiplier": 0.8, "priority": 1},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM pricing_plans"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Plans ─────────────────────────────────────────────────────
        plan_models = []
        for p in PLANS:
            m = PricingPlanModel(**p)
            session.add(m)
            plan_models.append(m)
        await session.flush()
        print(f"  Created {len(plan_models)} plans")

        # ── Override on the day plan: hourly 8h-20h, daily 6h-22h ────
        session.add(
            PlanOverrideModel(
                plan_id=plan_models[2].id,
                overtime_type=OverTimeType.FIXED_PRICE,
                overtime_value=2000,
                hourly_start_hour=8,
                hourly_end_hour=20,
                daily_start_hour=6,
                daily_end_hour=22,
            )
        )
        print("  Created 1 plan override")

        # ── Rules ─────────────────────────────────────────────────────
        for r in RULES:
            session.add(PricingRuleModel(is_active=True, **r))
        print(f"  Created {len(RULES)} rules")

        # ── Promotions ────────────────────────────────────────────────
        now = datetime.now(timezone.utc)
        promotions = [
            PromotionModel(
                name="Bienvenue -20%",
                description="20% sur toutes les courses du mois",
                discount_type=DiscountType.PERCENTAGE,
                discount_value=20,
                start_date=now - timedelta(days=1),
                end_date=now + timedelta(days=30),
                plans=plan_models[:2],
            ),
            PromotionModel(
                name="300 offerts",
                description="300 XAF de réduction",
                discount_type=DiscountType.FIXED_AMOUNT,
                discount_value=300,
                start_date=now - timedelta(days=1),
                end_date=now + timedelta(days=7),
                plans=[plan_models[0]],
            ),
            PromotionModel(
                name="100 premiers trajets",
                description="50% pour les 100 premiers trajets",
                discount_type=DiscountType.PERCENTAGE,
                discount_value=50,
                start_date=now - timedelta(days=1),
                end_date=now + timedelta(days=90),
                usage_limit=100,
                plans=plan_models[:3],
            ),
        ]
        session.add_all(promotions)
        await session.flush()
        print(f"  Created {len(promotions)} promotions")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
