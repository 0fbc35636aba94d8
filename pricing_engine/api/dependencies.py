"""FastAPI dependency injection helpers."""

from pricing_engine import state
from pricing_engine.domain.catalog import PlanCatalog
from pricing_engine.domain.pricing import PricingEngine


def get_catalog() -> PlanCatalog:
    return state.catalog


def get_pricing_engine() -> PricingEngine:
    return state.engine
