"""
Promotion selection and usage-limited consumption.

Selection is pure: it filters eligible promotions and keeps the one that
yields the lowest price.  Consumption is the only mutation in the whole
engine and goes through a ``UsageCounter``, whose ``try_consume`` must be
an atomic compare-and-increment against ``usage_limit``.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from .entities import PricingPlan, Promotion, PromotionConsumed
from .errors import PromotionConsumptionConflict

logger = logging.getLogger(__name__)


class UsageCounter(Protocol):
    async def try_consume(self, promotion: Promotion, ride_id: str) -> bool:
        """Claim one use of *promotion*; False if the limit is already reached."""
        ...


class AuditSink(Protocol):
    async def record(self, event: PromotionConsumed) -> None: ...


class InMemoryUsageCounter:
    """Process-local counter guarded by a lock.

    The first claim for a promotion starts from the snapshot's
    ``usage_count``; later claims only trust the counter.
    """

    def __init__(self):
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def increment_if_below(
        self, promotion_id: str, limit: Optional[int], baseline: int = 0
    ) -> bool:
        with self._lock:
            current = self._counts.get(promotion_id, baseline)
            if limit is not None and current >= limit:
                return False
            self._counts[promotion_id] = current + 1
            return True

    def count(self, promotion_id: str) -> Optional[int]:
        with self._lock:
            return self._counts.get(promotion_id)

    async def try_consume(self, promotion: Promotion, ride_id: str) -> bool:
        return self.increment_if_below(
            promotion.id, promotion.usage_limit, promotion.usage_count
        )


class PromotionEngine:
    def __init__(self, counter: UsageCounter, audit: Optional[AuditSink] = None):
        self.counter = counter
        self.audit = audit

    @staticmethod
    def eligible(
        promotions: Iterable[Promotion], plan: PricingPlan, now: datetime
    ) -> list[Promotion]:
        return [p for p in promotions if p.is_eligible(plan.id, now)]

    def select_best_promotion(
        self,
        promotions: Iterable[Promotion],
        plan: PricingPlan,
        now: datetime,
        price: Decimal,
        exclude: Iterable[str] = (),
    ) -> Optional[Promotion]:
        """Pick the eligible promotion giving the lowest price on *price*.

        Promotions that would not lower the price are skipped, so a free
        ride never claims a limited slot. Ties go to the smallest id.
        """
        excluded = set(exclude)
        candidates = [
            p
            for p in self.eligible(promotions, plan, now)
            if p.id not in excluded and p.discount.apply(price) < price
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda p: (p.discount.apply(price), p.id))

    async def consume(self, promotion: Promotion, ride_id: str) -> None:
        """Claim one use or raise ``PromotionConsumptionConflict``."""
        if not await self.counter.try_consume(promotion, ride_id):
            raise PromotionConsumptionConflict(promotion.id)
        if self.audit is None:
            return
        # The claim is committed; an audit failure must not fail the charge.
        try:
            await self.audit.record(
                PromotionConsumed(promotion_id=promotion.id, ride_id=ride_id)
            )
        except Exception:
            logger.exception(
                "Audit of promotion %s for ride %s failed", promotion.id, ride_id
            )

    async def try_consume(self, promotion: Promotion, ride_id: str) -> bool:
        try:
            await self.consume(promotion, ride_id)
        except PromotionConsumptionConflict:
            logger.info("Promotion %s exhausted for ride %s", promotion.id, ride_id)
            return False
        return True
