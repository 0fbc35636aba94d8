"""Pricing error taxonomy.

Everything except ``PromotionConsumptionConflict`` is surfaced to the
caller; a consumption conflict is resolved inside the calculator by
retrying with the next-best promotion.
"""


class PricingError(Exception):
    """Base class for every error raised by the pricing engine."""


class PlanNotFoundError(PricingError):
    def __init__(self, plan_id: str):
        super().__init__(f"Pricing plan not found: {plan_id}")
        self.plan_id = plan_id


class PlanInactiveError(PricingError):
    def __init__(self, plan_id: str):
        super().__init__(f"Pricing plan is inactive: {plan_id}")
        self.plan_id = plan_id


class InvalidDurationError(PricingError):
    """Raised when ``end_time`` is not strictly after ``start_time``."""


class PromotionConsumptionConflict(PricingError):
    """The promotion's usage limit was reached before this ride claimed it."""

    def __init__(self, promotion_id: str):
        super().__init__(f"Promotion usage limit reached: {promotion_id}")
        self.promotion_id = promotion_id


class InvalidConfigurationError(PricingError):
    """A configuration value the store should never have accepted."""
