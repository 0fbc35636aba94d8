"""
Plan catalog backed by an immutable, versioned configuration snapshot.

The snapshot is built once per reload and then only read.  ``PlanCatalog``
holds the current snapshot; swapping the reference in ``replace`` is its
only mutation, so readers never need a lock.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Iterable, Mapping

from .entities import PricingPlan, PricingRule, Promotion
from .errors import PlanNotFoundError


@dataclass(frozen=True)
class PricingSnapshot:
    plans: Mapping[str, PricingPlan]
    rules: tuple[PricingRule, ...] = ()
    promotions: tuple[Promotion, ...] = ()
    version: int = 0
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(
        cls,
        plans: Iterable[PricingPlan] = (),
        rules: Iterable[PricingRule] = (),
        promotions: Iterable[Promotion] = (),
        version: int = 0,
    ) -> "PricingSnapshot":
        return cls(
            plans=MappingProxyType({p.id: p for p in plans}),
            rules=tuple(rules),
            promotions=tuple(promotions),
            version=version,
        )

    def get_plan(self, plan_id: str) -> PricingPlan:
        plan = self.plans.get(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return plan

    def active_plans(self) -> list[PricingPlan]:
        return [p for p in self.plans.values() if p.is_active]

    def with_version(self, version: int) -> "PricingSnapshot":
        return PricingSnapshot(
            plans=self.plans,
            rules=self.rules,
            promotions=self.promotions,
            version=version,
            loaded_at=self.loaded_at,
        )


class PlanCatalog:
    def __init__(self, snapshot: PricingSnapshot | None = None):
        self._snapshot = snapshot or PricingSnapshot.build()
        self._swap_lock = threading.Lock()

    @property
    def snapshot(self) -> PricingSnapshot:
        return self._snapshot

    def replace(self, snapshot: PricingSnapshot) -> PricingSnapshot:
        """Install *snapshot* as the next version and return it."""
        with self._swap_lock:
            installed = snapshot.with_version(self._snapshot.version + 1)
            self._snapshot = installed
        return installed

    def get_plan(self, plan_id: str) -> PricingPlan:
        """Return the plan, active or not; unknown ids raise."""
        return self._snapshot.get_plan(plan_id)

    def active_plans(self) -> list[PricingPlan]:
        return self._snapshot.active_plans()
