"""Overtime detection for a plan's per-tier override windows."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from .entities import PricingPlan
from .enums import Tier


class OverrideResolver:
    def is_overtime(self, plan: PricingPlan, tier: Tier, timestamp: datetime) -> bool:
        """True when *timestamp*'s local hour falls outside the tier's window.

        Plans without an override, and tiers without a window, never
        go into overtime.
        """
        if plan.override is None:
            return False
        window = plan.override.window_for(tier)
        if window is None:
            return False
        return not window.contains(timestamp.hour)

    def effective_rate(
        self, plan: PricingPlan, tier: Tier, timestamp: datetime
    ) -> tuple[Decimal, bool]:
        """Return the tier rate to bill and whether overtime replaced it."""
        rate = plan.rate_for(tier)
        if not self.is_overtime(plan, tier, timestamp):
            return rate, False
        return plan.override.adjustment.apply(rate), True
