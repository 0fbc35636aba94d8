"""
Shared-state promotion usage counters.

Both implementations are a single atomic compare-and-increment against
``usage_limit``, so two rides can never both claim the last slot:

* ``SqlUsageCounter``   -- conditional ``UPDATE ... WHERE usage_count < usage_limit``
* ``RedisUsageCounter`` -- Lua script executed atomically by Redis
"""

from __future__ import annotations

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .repositories import PromotionRepository
from pricing_engine.domain.entities import Promotion


class SqlUsageCounter:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def try_consume(self, promotion: Promotion, ride_id: str) -> bool:
        async with self.session_factory() as session:
            async with session.begin():
                repo = PromotionRepository(session)
                if not await repo.increment_usage(promotion.id):
                    return False
                await repo.record_usage(promotion.id, ride_id)
        return True


class RedisUsageCounter:
    """Counter keyed ``promotion:usage:<id>``, seeded from the snapshot."""

    LUA = """
    local current = tonumber(redis.call("get", KEYS[1]) or ARGV[2])
    local limit = tonumber(ARGV[1])
    if limit and current >= limit then
        return 0
    end
    redis.call("set", KEYS[1], current + 1)
    return 1
    """

    def __init__(self, client: aioredis.Redis, prefix: str = "promotion:usage"):
        self.redis = client
        self.prefix = prefix

    def key(self, promotion_id: str) -> str:
        return f"{self.prefix}:{promotion_id}"

    async def try_consume(self, promotion: Promotion, ride_id: str) -> bool:
        limit = "" if promotion.usage_limit is None else str(promotion.usage_limit)
        claimed = await self.redis.eval(
            self.LUA, 1, self.key(promotion.id), limit, str(promotion.usage_count)
        )
        return bool(int(claimed))
