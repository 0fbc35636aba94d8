"""
Process-wide pricing state: the plan catalog and the engine built on it.

The catalog starts empty and is filled by the snapshot refresher; the
engine always reads whatever snapshot the catalog currently holds.
"""

from __future__ import annotations

from zoneinfo import ZoneInfo

import redis.asyncio as aioredis

from pricing_engine.config import Settings, settings
from pricing_engine.domain.catalog import PlanCatalog
from pricing_engine.domain.pricing import PriceCalculator, PricingEngine
from pricing_engine.domain.promotions import InMemoryUsageCounter, PromotionEngine
from pricing_engine.infrastructure.audit import LoggingAuditSink, RedisStreamAuditSink
from pricing_engine.infrastructure.counters import RedisUsageCounter, SqlUsageCounter
from pricing_engine.infrastructure.database import async_session_factory


def build_engine(config: Settings, catalog: PlanCatalog) -> PricingEngine:
    if config.usage_counter_backend == "memory":
        counter = InMemoryUsageCounter()
        audit = LoggingAuditSink()
    else:
        client = aioredis.Redis.from_url(config.redis_url, decode_responses=True)
        audit = RedisStreamAuditSink(client, config.audit_stream_key)
        if config.usage_counter_backend == "redis":
            counter = RedisUsageCounter(client)
        elif config.usage_counter_backend == "database":
            counter = SqlUsageCounter(async_session_factory)
        else:
            raise ValueError(
                f"Unknown usage_counter_backend: {config.usage_counter_backend}"
            )
    calculator = PriceCalculator(
        tz=ZoneInfo(config.timezone),
        unlock_fee=config.unlock_fee,
        promotion_engine=PromotionEngine(counter, audit),
    )
    return PricingEngine(catalog, calculator)


catalog = PlanCatalog()
engine = build_engine(settings, catalog)
