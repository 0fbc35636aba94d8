"""
Dynamic multiplier rule selection.

Among active rules matching the weekday and local hour, the winner is
decided by, in order:

1. highest ``priority``
2. most specific (day + hours, day only, hours only, always)
3. smallest id

Complexity: O(R) per lookup.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from .entities import PricingRule

NEUTRAL_MULTIPLIER = Decimal("1")


def day_of_week(timestamp: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return timestamp.isoweekday() % 7


class RuleMatcher:
    @staticmethod
    def _rank(rule: PricingRule) -> tuple:
        return (-rule.priority, rule.specificity, rule.id)

    def matching_rules(
        self, rules: Iterable[PricingRule], timestamp: datetime
    ) -> list[PricingRule]:
        weekday = day_of_week(timestamp)
        return [r for r in rules if r.matches(weekday, timestamp.hour)]

    def select_rule(
        self, rules: Iterable[PricingRule], timestamp: datetime
    ) -> Optional[PricingRule]:
        """Return the applicable rule for *timestamp* (already in local time)."""
        candidates = self.matching_rules(rules, timestamp)
        if not candidates:
            return None
        return min(candidates, key=self._rank)

    def multiplier_at(
        self, rules: Iterable[PricingRule], timestamp: datetime
    ) -> Decimal:
        rule = self.select_rule(rules, timestamp)
        return rule.multiplier if rule else NEUTRAL_MULTIPLIER
