"""
Audit sinks for promotion consumption.

The consumption is already committed when an event reaches a sink, so a
failing sink is logged and never fails the ride's price calculation.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from pricing_engine.domain.entities import PromotionConsumed

logger = logging.getLogger(__name__)


class LoggingAuditSink:
    async def record(self, event: PromotionConsumed) -> None:
        logger.info(
            "Promotion %s consumed by ride %s at %s",
            event.promotion_id,
            event.ride_id,
            event.timestamp.isoformat(),
        )


class RedisStreamAuditSink:
    """Appends ``{promotion_id, ride_id, timestamp}`` to a Redis stream."""

    def __init__(self, client: aioredis.Redis, stream_key: str):
        self.redis = client
        self.stream_key = stream_key

    async def record(self, event: PromotionConsumed) -> None:
        try:
            await self.redis.xadd(
                self.stream_key,
                {
                    "promotion_id": event.promotion_id,
                    "ride_id": event.ride_id,
                    "timestamp": event.timestamp.isoformat(),
                },
            )
        except RedisError:
            logger.exception(
                "Could not publish usage of promotion %s by ride %s",
                event.promotion_id,
                event.ride_id,
            )
