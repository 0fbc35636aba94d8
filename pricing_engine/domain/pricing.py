"""
Pricing Resolution Engine
=========================

Formula
-------
Total = round_half_up(
    ((Tier_Rate' x Units) x Rule_Multiplier + Unlock_Fee)
    x (1 - Plan_Discount) -> best promotion
)

* **Tier** -- monthly if the billable duration is at least 30 days, else
  weekly if at least 7 days, else daily if at least 1 day, else hourly.
  A ride shorter than ``minimum_hours`` is billed as ``minimum_hours``.
* **Tier_Rate'** -- the plan's tier rate, or the override's adjustment of
  it when ``start_time`` falls in overtime for that tier.
* **Rule_Multiplier** -- the dynamic rule matching ``start_time``, else 1.
* **Promotion** -- at most one, the one producing the lowest price.

Everything is computed in ``Decimal`` and rounded once, to whole currency
units, at the end.  ``calculate`` is pure; ``settle`` is ``calculate`` plus
the atomic promotion claim, retried with the next-best promotion on
conflict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from .catalog import PlanCatalog
from .entities import (
    HUNDRED,
    PriceResult,
    PricingPlan,
    PricingRule,
    Promotion,
    to_decimal,
)
from .enums import TIER_SELECTION_ORDER, Tier
from .errors import (
    InvalidDurationError,
    PlanInactiveError,
    PromotionConsumptionConflict,
)
from .overrides import OverrideResolver
from .promotions import InMemoryUsageCounter, PromotionEngine
from .rules import NEUTRAL_MULTIPLIER, RuleMatcher

logger = logging.getLogger(__name__)

WHOLE_UNIT = Decimal("1")
ZERO = Decimal("0")
ONE_HOUR = timedelta(hours=1)
ZERO_DURATION = timedelta(0)


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def _ceil_div(duration: timedelta, period: timedelta) -> int:
    whole, remainder = divmod(duration, period)
    return whole + (1 if remainder else 0)


def select_tier(billable: timedelta) -> Tier:
    for tier in TIER_SELECTION_ORDER:
        if billable >= tier.length:
            return tier
    return Tier.HOURLY


# ── Calculator ────────────────────────────────────────────────────────


class PriceCalculator:
    """Composes override, rule and promotion resolution into one price."""

    def __init__(
        self,
        tz: tzinfo = timezone.utc,
        unlock_fee=ZERO,
        rule_matcher: Optional[RuleMatcher] = None,
        override_resolver: Optional[OverrideResolver] = None,
        promotion_engine: Optional[PromotionEngine] = None,
    ):
        self.tz = tz
        self.unlock_fee = to_decimal(unlock_fee)
        self.rule_matcher = rule_matcher or RuleMatcher()
        self.override_resolver = override_resolver or OverrideResolver()
        self.promotion_engine = promotion_engine or PromotionEngine(
            InMemoryUsageCounter()
        )

    def localize(self, timestamp: datetime) -> datetime:
        """Naive timestamps are taken as local time; aware ones are converted."""
        if timestamp.tzinfo is None:
            return timestamp.replace(tzinfo=self.tz)
        return timestamp.astimezone(self.tz)

    def calculate(
        self,
        plan: PricingPlan,
        start_time: datetime,
        end_time: datetime,
        promotions: Iterable[Promotion] = (),
        rules: Iterable[PricingRule] = (),
        now: Optional[datetime] = None,
        exclude: Iterable[str] = (),
    ) -> PriceResult:
        if not plan.is_active:
            raise PlanInactiveError(plan.id)
        start = self.localize(start_time)
        end = self.localize(end_time)
        elapsed = end.astimezone(timezone.utc) - start.astimezone(timezone.utc)
        if elapsed <= ZERO_DURATION:
            raise InvalidDurationError(
                f"end_time {end.isoformat()} is not after start_time {start.isoformat()}"
            )
        now = self.localize(now) if now is not None else end

        # 1. Tier and billable units, measured in real time across DST changes
        billable = max(elapsed, plan.minimum_hours * ONE_HOUR)
        tier = select_tier(billable)
        units = _ceil_div(billable, tier.length)

        # 2. Overtime override, evaluated at the start of the ride
        rate, override_applied = self.override_resolver.effective_rate(
            plan, tier, start
        )
        base = rate * units

        # 3. Dynamic multiplier, always on top of the (possibly overridden) base
        rule = self.rule_matcher.select_rule(rules, start)
        multiplier = rule.multiplier if rule else NEUTRAL_MULTIPLIER
        subtotal = base * multiplier + self.unlock_fee

        # 4. Static plan discount
        after_plan = subtotal * (1 - plan.discount / HUNDRED)

        # 5. Single best promotion
        promotion = self.promotion_engine.select_best_promotion(
            promotions, plan, now, after_plan, exclude=exclude
        )
        final = promotion.discount.apply(after_plan) if promotion else after_plan

        # 6. Whole units, never negative
        subtotal_rounded = round_money(subtotal)
        after_plan_rounded = round_money(after_plan)
        total = max(ZERO, round_money(final))

        return PriceResult(
            plan_id=plan.id,
            tier=tier,
            units=units,
            billable_hours=_ceil_div(billable, ONE_HOUR),
            tier_rate=rate,
            base=round_money(base),
            override_applied=override_applied,
            rule_multiplier=multiplier,
            unlock_fee=self.unlock_fee,
            subtotal=subtotal_rounded,
            plan_discount=subtotal_rounded - after_plan_rounded,
            promotion_discount=max(ZERO, after_plan_rounded - total),
            discount=subtotal_rounded - total,
            total=total,
            rule_id=rule.id if rule else None,
            rule_name=rule.name if rule else None,
            promotion_id=promotion.id if promotion else None,
        )

    async def settle(
        self,
        plan: PricingPlan,
        start_time: datetime,
        end_time: datetime,
        ride_id: str,
        promotions: Iterable[Promotion] = (),
        rules: Iterable[PricingRule] = (),
        now: Optional[datetime] = None,
    ) -> PriceResult:
        """Calculate and claim the chosen promotion for *ride_id*.

        When the claim loses a race the promotion is excluded and the whole
        calculation is redone; with no promotion left the ride is priced
        without one.
        """
        promotions = tuple(promotions)
        rules = tuple(rules)
        by_id = {p.id: p for p in promotions}
        excluded: set[str] = set()
        while True:
            result = self.calculate(
                plan, start_time, end_time, promotions, rules, now=now, exclude=excluded
            )
            if result.promotion_id is None:
                return result
            try:
                await self.promotion_engine.consume(by_id[result.promotion_id], ride_id)
            except PromotionConsumptionConflict:
                logger.warning(
                    "Promotion %s conflict for ride %s, retrying without it",
                    result.promotion_id,
                    ride_id,
                )
                excluded.add(result.promotion_id)
                continue
            return result


# ── Engine facade ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class PlanPricing:
    """A plan as shown on the public pricing page at a given moment."""

    plan: PricingPlan
    original_hourly_rate: Decimal
    hourly_rate: Decimal
    multiplier: Decimal
    applied_rule: Optional[str]
    promotions: tuple[Promotion, ...]


class PricingEngine:
    """High-level API used by the ride/booking service and the HTTP layer.

    Every call reads one snapshot from the catalog, so a reload in the
    middle of a calculation cannot mix two configurations.
    """

    def __init__(self, catalog: PlanCatalog, calculator: PriceCalculator):
        self.catalog = catalog
        self.calculator = calculator

    def quote(
        self,
        plan_id: str,
        start_time: datetime,
        end_time: datetime,
        now: Optional[datetime] = None,
    ) -> PriceResult:
        snapshot = self.catalog.snapshot
        return self.calculator.calculate(
            snapshot.get_plan(plan_id),
            start_time,
            end_time,
            snapshot.promotions,
            snapshot.rules,
            now=now,
        )

    async def charge(
        self,
        plan_id: str,
        start_time: datetime,
        end_time: datetime,
        ride_id: str,
        now: Optional[datetime] = None,
    ) -> PriceResult:
        snapshot = self.catalog.snapshot
        return await self.calculator.settle(
            snapshot.get_plan(plan_id),
            start_time,
            end_time,
            ride_id,
            snapshot.promotions,
            snapshot.rules,
            now=now,
        )

    def public_pricing(self, at: datetime) -> list[PlanPricing]:
        snapshot = self.catalog.snapshot
        moment = self.calculator.localize(at)
        rule = self.calculator.rule_matcher.select_rule(snapshot.rules, moment)
        multiplier = rule.multiplier if rule else NEUTRAL_MULTIPLIER
        result: list[PlanPricing] = []
        for plan in sorted(snapshot.active_plans(), key=lambda p: p.name):
            result.append(
                PlanPricing(
                    plan=plan,
                    original_hourly_rate=plan.hourly_rate,
                    hourly_rate=round_money(plan.hourly_rate * multiplier),
                    multiplier=multiplier,
                    applied_rule=rule.name if rule else None,
                    promotions=tuple(
                        self.calculator.promotion_engine.eligible(
                            snapshot.promotions, plan, moment
                        )
                    ),
                )
            )
        return result

