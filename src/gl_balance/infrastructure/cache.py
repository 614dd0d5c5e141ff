"""Read-through Redis cache for LedgerTotals.

  - Cache key: f"gold:ledger:{user_id}", TTL BALANCE_CACHE_TTL_SECONDS
  - Write path: DB commit first, then invalidate the user's key
  - Read path: cache-aside (cache → DB on miss → populate)

Every invalidation also bumps f"gold:ledger:gen:{user_id}". A reader takes
the generation before its DB read and populates only if it is unchanged, so
a slow read that started before a transfer committed can never put the
pre-transfer totals back after the transfer invalidated them.

Only the grams/locked-price part of a snapshot is cached; USD valuation is
recomputed with the spot price at call time. Redis failures degrade to a
direct DB read and are logged, the ledger never depends on them.
"""

import json
import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings
from src.gl_balance.domain.snapshot import LedgerTotals
from src.gl_common.redis_client import get_redis

logger = logging.getLogger(__name__)

_KEY_PREFIX = "gold:ledger:"
_GENERATION_PREFIX = "gold:ledger:gen:"
# Outlives any in-flight read by a wide margin
_GENERATION_TTL_SECONDS = 86_400

# KEYS[1]=generation key, KEYS[2]=totals key
# ARGV[1]=generation seen before the DB read, ARGV[2]=payload, ARGV[3]=ttl
_SET_IF_GENERATION_LUA = """
if (redis.call('GET', KEYS[1]) or '0') == ARGV[1] then
    redis.call('SET', KEYS[2], ARGV[2], 'EX', ARGV[3])
    return 1
end
return 0
"""


def cache_key(user_id: str) -> str:
    return f"{_KEY_PREFIX}{user_id}"


def generation_key(user_id: str) -> str:
    return f"{_GENERATION_PREFIX}{user_id}"


class BalanceCache:
    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        ttl_seconds: int | None = None,
    ) -> None:
        self._redis_factory = redis_factory
        self._ttl = settings.BALANCE_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    async def get(self, user_id: str) -> LedgerTotals | None:
        if not self.enabled:
            return None
        try:
            client = await self._redis_factory()
            raw = await client.get(cache_key(user_id))
        except (RedisError, OSError) as exc:
            logger.warning("Balance cache read failed for %s, reading DB: %s", user_id, exc)
            return None
        if raw is None:
            return None
        try:
            return LedgerTotals.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, ArithmeticError):
            logger.warning("Discarding malformed balance cache entry for %s", user_id)
            return None

    async def generation(self, user_id: str) -> int | None:
        """Current invalidation count for the user; None means do not populate."""
        if not self.enabled:
            return None
        try:
            client = await self._redis_factory()
            raw = await client.get(generation_key(user_id))
            return int(raw or 0)
        except (RedisError, OSError, ValueError) as exc:
            logger.warning("Balance cache generation read failed for %s: %s", user_id, exc)
            return None

    async def set(self, totals: LedgerTotals, generation: int | None) -> bool:
        """Populate unless the user was invalidated since `generation` was read."""
        if not self.enabled or generation is None:
            return False
        try:
            client = await self._redis_factory()
            written = await client.eval(
                _SET_IF_GENERATION_LUA,
                2,
                generation_key(totals.user_id),
                cache_key(totals.user_id),
                str(generation),
                json.dumps(totals.to_dict()),
                self._ttl,
            )
        except (RedisError, OSError) as exc:
            logger.warning("Balance cache write failed for %s: %s", totals.user_id, exc)
            return False
        if not written:
            logger.debug("Balance cache write skipped for %s: invalidated mid-read", totals.user_id)
        return bool(written)

    async def invalidate(self, *user_ids: str) -> None:
        if not self.enabled or not user_ids:
            return
        try:
            client = await self._redis_factory()
            await client.delete(*(cache_key(u) for u in user_ids))
            for user_id in user_ids:
                await client.incr(generation_key(user_id))
                await client.expire(generation_key(user_id), _GENERATION_TTL_SECONDS)
        except (RedisError, OSError) as exc:
            # Stale entries expire after the TTL
            logger.warning("Balance cache invalidation failed for %s: %s", user_ids, exc)
