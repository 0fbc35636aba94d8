"""
Pricing configuration entities and the price breakdown.

All entities are immutable: a calculation only ever reads them from a
snapshot.  Values the configuration store should have rejected raise
``InvalidConfigurationError`` at construction time.

Closed variants
---------------
* Overtime adjustment: ``FixedPrice`` | ``PercentageReduction``
* Promotion discount:  ``PercentageDiscount`` | ``FixedAmountDiscount``
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar, Optional, Union

from .enums import DiscountType, OverTimeType, Tier
from .errors import InvalidConfigurationError

HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise InvalidConfigurationError(message)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps coming back from the store are UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class HourWindow:
    """Half-open ``[start_hour, end_hour)`` range of local hours.

    ``start_hour > end_hour`` wraps past midnight (22-2 covers 22, 23, 0, 1);
    ``start_hour == end_hour`` covers the whole day.
    """

    start_hour: int
    end_hour: int

    def __post_init__(self):
        _check(0 <= self.start_hour <= 23, f"start_hour out of range: {self.start_hour}")
        _check(0 <= self.end_hour <= 23, f"end_hour out of range: {self.end_hour}")

    def contains(self, hour: int) -> bool:
        if self.start_hour == self.end_hour:
            return True
        if self.start_hour < self.end_hour:
            return self.start_hour <= hour < self.end_hour
        return hour >= self.start_hour or hour < self.end_hour

    @classmethod
    def optional(
        cls, start_hour: Optional[int], end_hour: Optional[int]
    ) -> Optional["HourWindow"]:
        """Build a window from two nullable columns; both or neither must be set."""
        if start_hour is None and end_hour is None:
            return None
        _check(
            start_hour is not None and end_hour is not None,
            f"Half-configured hour window: start={start_hour} end={end_hour}",
        )
        return cls(start_hour, end_hour)


@dataclass(frozen=True)
class FixedPrice:
    """Overtime replaces the tier rate with an absolute amount."""

    value: Decimal
    kind: ClassVar[OverTimeType] = OverTimeType.FIXED_PRICE

    def __post_init__(self):
        object.__setattr__(self, "value", to_decimal(self.value))
        _check(self.value >= 0, f"Negative overtime price: {self.value}")

    def apply(self, rate: Decimal) -> Decimal:
        return self.value


@dataclass(frozen=True)
class PercentageReduction:
    """Overtime scales the tier rate by ``1 - value/100``."""

    value: Decimal
    kind: ClassVar[OverTimeType] = OverTimeType.PERCENTAGE_REDUCTION

    def __post_init__(self):
        object.__setattr__(self, "value", to_decimal(self.value))
        _check(
            0 <= self.value <= HUNDRED,
            f"Overtime percentage out of range: {self.value}",
        )

    def apply(self, rate: Decimal) -> Decimal:
        return rate * (1 - self.value / HUNDRED)


OvertimeAdjustment = Union[FixedPrice, PercentageReduction]

_OVERTIME_VARIANTS: dict[OverTimeType, type] = {
    OverTimeType.FIXED_PRICE: FixedPrice,
    OverTimeType.PERCENTAGE_REDUCTION: PercentageReduction,
}


@dataclass(frozen=True)
class PercentageDiscount:
    value: Decimal
    kind: ClassVar[DiscountType] = DiscountType.PERCENTAGE

    def __post_init__(self):
        object.__setattr__(self, "value", to_decimal(self.value))
        _check(
            0 < self.value <= HUNDRED,
            f"Promotion percentage out of range: {self.value}",
        )

    def apply(self, price: Decimal) -> Decimal:
        return price * (1 - self.value / HUNDRED)


@dataclass(frozen=True)
class FixedAmountDiscount:
    value: Decimal
    kind: ClassVar[DiscountType] = DiscountType.FIXED_AMOUNT

    def __post_init__(self):
        object.__setattr__(self, "value", to_decimal(self.value))
        _check(self.value > 0, f"Promotion amount must be positive: {self.value}")

    def apply(self, price: Decimal) -> Decimal:
        return max(Decimal(0), price - self.value)


PromotionDiscount = Union[PercentageDiscount, FixedAmountDiscount]

_DISCOUNT_VARIANTS: dict[DiscountType, type] = {
    DiscountType.PERCENTAGE: PercentageDiscount,
    DiscountType.FIXED_AMOUNT: FixedAmountDiscount,
}


# ── Entities ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Override:
    """Overtime pricing for one plan, with an optional window per tier.

    A tier without a window has no overtime concept at all.
    """

    plan_id: str
    adjustment: OvertimeAdjustment
    hourly: Optional[HourWindow] = None
    daily: Optional[HourWindow] = None
    weekly: Optional[HourWindow] = None
    monthly: Optional[HourWindow] = None
    id: Optional[str] = None

    @classmethod
    def build(
        cls,
        plan_id: str,
        over_time_type: OverTimeType | str,
        over_time_value,
        windows: Optional[dict[Tier, Optional[HourWindow]]] = None,
        id: Optional[str] = None,
    ) -> "Override":
        try:
            variant = _OVERTIME_VARIANTS[OverTimeType(over_time_type)]
        except ValueError as exc:
            raise InvalidConfigurationError(
                f"Unknown overtime type: {over_time_type}"
            ) from exc
        windows = windows or {}
        return cls(
            plan_id=plan_id,
            adjustment=variant(over_time_value),
            hourly=windows.get(Tier.HOURLY),
            daily=windows.get(Tier.DAILY),
            weekly=windows.get(Tier.WEEKLY),
            monthly=windows.get(Tier.MONTHLY),
            id=id,
        )

    @property
    def over_time_type(self) -> OverTimeType:
        return self.adjustment.kind

    @property
    def over_time_value(self) -> Decimal:
        return self.adjustment.value

    def window_for(self, tier: Tier) -> Optional[HourWindow]:
        return {
            Tier.HOURLY: self.hourly,
            Tier.DAILY: self.daily,
            Tier.WEEKLY: self.weekly,
            Tier.MONTHLY: self.monthly,
        }[tier]


@dataclass(frozen=True)
class PricingPlan:
    id: str
    name: str
    hourly_rate: Decimal
    daily_rate: Decimal
    weekly_rate: Decimal
    monthly_rate: Decimal
    minimum_hours: int = 1
    discount: Decimal = Decimal(0)
    is_active: bool = True
    conditions: tuple[str, ...] = ()
    override: Optional[Override] = None

    def __post_init__(self):
        for name in ("hourly_rate", "daily_rate", "weekly_rate", "monthly_rate", "discount"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        object.__setattr__(self, "conditions", tuple(self.conditions))
        for tier in Tier:
            _check(self.rate_for(tier) >= 0, f"Negative {tier.value} rate on plan {self.id}")
        _check(self.minimum_hours >= 1, f"minimum_hours must be >= 1 on plan {self.id}")
        _check(
            0 <= self.discount <= HUNDRED,
            f"Plan discount out of range on plan {self.id}: {self.discount}",
        )
        if self.override is not None:
            _check(
                self.override.plan_id == self.id,
                f"Override of plan {self.override.plan_id} attached to plan {self.id}",
            )

    def rate_for(self, tier: Tier) -> Decimal:
        return {
            Tier.HOURLY: self.hourly_rate,
            Tier.DAILY: self.daily_rate,
            Tier.WEEKLY: self.weekly_rate,
            Tier.MONTHLY: self.monthly_rate,
        }[tier]


@dataclass(frozen=True)
class PricingRule:
    """Time-of-day / day-of-week multiplier, independent of plans.

    ``day_of_week`` uses 0 = Sunday ... 6 = Saturday.
    """

    id: str
    name: str
    multiplier: Decimal
    day_of_week: Optional[int] = None
    start_hour: Optional[int] = None
    end_hour: Optional[int] = None
    is_active: bool = True
    priority: int = 0

    def __post_init__(self):
        object.__setattr__(self, "multiplier", to_decimal(self.multiplier))
        _check(self.multiplier > 0, f"Rule {self.id} multiplier must be > 0")
        if self.day_of_week is not None:
            _check(0 <= self.day_of_week <= 6, f"Rule {self.id} day_of_week out of range")
        # validates both-or-neither and the hour range
        HourWindow.optional(self.start_hour, self.end_hour)

    @property
    def window(self) -> Optional[HourWindow]:
        return HourWindow.optional(self.start_hour, self.end_hour)

    @property
    def specificity(self) -> int:
        """0 = day and hours, 1 = day only, 2 = hours only, 3 = always."""
        has_day = self.day_of_week is not None
        has_window = self.start_hour is not None
        if has_day and has_window:
            return 0
        if has_day:
            return 1
        if has_window:
            return 2
        return 3

    def matches(self, day_of_week: int, hour: int) -> bool:
        if not self.is_active:
            return False
        if self.day_of_week is not None and self.day_of_week != day_of_week:
            return False
        window = self.window
        return window is None or window.contains(hour)


@dataclass(frozen=True)
class Promotion:
    id: str
    name: str
    discount: PromotionDiscount
    start_date: datetime
    end_date: datetime
    plan_ids: frozenset[str] = frozenset()
    usage_limit: Optional[int] = None
    usage_count: int = 0
    is_active: bool = True
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "start_date", _as_utc(self.start_date))
        object.__setattr__(self, "end_date", _as_utc(self.end_date))
        object.__setattr__(self, "plan_ids", frozenset(self.plan_ids))
        _check(self.end_date > self.start_date, f"Promotion {self.id} ends before it starts")
        _check(self.usage_count >= 0, f"Promotion {self.id} has negative usage_count")
        if self.usage_limit is not None:
            _check(self.usage_limit >= 1, f"Promotion {self.id} usage_limit must be >= 1")
            _check(
                self.usage_count <= self.usage_limit,
                f"Promotion {self.id} usage_count exceeds usage_limit",
            )

    @classmethod
    def build(
        cls, *, discount_type: DiscountType | str, discount_value, **kwargs
    ) -> "Promotion":
        try:
            variant = _DISCOUNT_VARIANTS[DiscountType(discount_type)]
        except ValueError as exc:
            raise InvalidConfigurationError(
                f"Unknown discount type: {discount_type}"
            ) from exc
        return cls(discount=variant(discount_value), **kwargs)

    @property
    def discount_type(self) -> DiscountType:
        return self.discount.kind

    @property
    def discount_value(self) -> Decimal:
        return self.discount.value

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def is_eligible(self, plan_id: str, now: datetime) -> bool:
        return (
            self.is_active
            and self.start_date <= now < self.end_date
            and plan_id in self.plan_ids
            and not self.is_exhausted
        )


# ── Results & events ──────────────────────────────────────────────────


@dataclass(frozen=True)
class PriceResult:
    """Breakdown of one calculation.  Monetary fields are whole units."""

    plan_id: str
    tier: Tier
    units: int
    billable_hours: int
    tier_rate: Decimal
    base: Decimal
    override_applied: bool
    rule_multiplier: Decimal
    unlock_fee: Decimal
    subtotal: Decimal
    plan_discount: Decimal
    promotion_discount: Decimal
    discount: Decimal
    total: Decimal
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    promotion_id: Optional[str] = None


@dataclass(frozen=True)
class PromotionConsumed:
    promotion_id: str
    ride_id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
