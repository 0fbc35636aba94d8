"""Domain enumerations shared by the pricing components."""

import enum
from datetime import timedelta


class Tier(str, enum.Enum):
    HOURLY = "HOURLY"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"

    @property
    def length(self) -> timedelta:
        return TIER_LENGTHS[self]


# Billing period covered by one unit of each tier.
TIER_LENGTHS: dict[Tier, timedelta] = {
    Tier.HOURLY: timedelta(hours=1),
    Tier.DAILY: timedelta(days=1),
    Tier.WEEKLY: timedelta(weeks=1),
    Tier.MONTHLY: timedelta(days=30),
}

# Largest first: the first tier whose length fits the duration wins.
TIER_SELECTION_ORDER: tuple[Tier, ...] = (
    Tier.MONTHLY,
    Tier.WEEKLY,
    Tier.DAILY,
    Tier.HOURLY,
)


class OverTimeType(str, enum.Enum):
    FIXED_PRICE = "FIXED_PRICE"
    PERCENTAGE_REDUCTION = "PERCENTAGE_REDUCTION"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
