"""
Redis cache for relationship lookups and per-user rate limits.
Every helper degrades to a no-op when Redis is not connected.
"""
import json
from typing import Any, Optional, Dict
from . import core
import logging

logger = logging.getLogger(__name__)

class CacheManager:
    """
    Thin JSON cache over the shared Redis connection
    """

    def __init__(self):
        self.default_ttl = 3600  # 1 hour default TTL

    def _make_key(self, key: str, prefix: str = "") -> str:
        """Generate cache key with prefix"""
        if prefix:
            return f"{prefix}:{key}"
        return key

    async def set(self, key: str, value: Any, ttl: int = None, prefix: str = "") -> bool:
        """Set cache value with TTL"""
        if not core.REDIS:
            return False

        cache_key = self._make_key(key, prefix)
        ttl = ttl or self.default_ttl

        try:
            await core.REDIS.setex(cache_key, ttl, json.dumps(value))
            return True
        except Exception as e:
            logger.error(f"Cache set failed for key {cache_key}: {str(e)}")
            return False

    async def get(self, key: str, prefix: str = "") -> Optional[Any]:
        """Get cache value"""
        if not core.REDIS:
            return None

        cache_key = self._make_key(key, prefix)

        try:
            value = await core.REDIS.get(cache_key)
            if value is None:
                return None
            return json.loads(value)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Discarding undecodable cache entry {cache_key}: {e}")
            return None
        except Exception as e:
            logger.error(f"Cache get failed for key {cache_key}: {str(e)}")
            return None

    async def delete(self, *keys: str, prefix: str = "") -> bool:
        """Delete cache keys"""
        if not core.REDIS:
            return False

        cache_keys = [self._make_key(key, prefix) for key in keys]

        try:
            result = await core.REDIS.delete(*cache_keys)
            return result > 0
        except Exception as e:
            logger.error(f"Cache delete failed for keys {cache_keys}: {str(e)}")
            return False

# Global cache manager instance
cache = CacheManager()

# Relationship status between a viewer and another user
async def cache_relationship(viewer_id: int, user_id: int, data: Dict, ttl: int = 300):
    """Cache relationship status for 5 minutes"""
    return await cache.set(f"{viewer_id}:{user_id}", data, ttl, "relationship")

async def get_cached_relationship(viewer_id: int, user_id: int) -> Optional[Dict]:
    return await cache.get(f"{viewer_id}:{user_id}", "relationship")

async def invalidate_relationship(user_a: int, user_b: int):
    """A follow change alters the status seen from both sides"""
    await cache.delete(f"{user_a}:{user_b}", f"{user_b}:{user_a}", prefix="relationship")

# Rate limiting functions
async def check_rate_limit(user_id: int, action: str, limit: int = 100, window: int = 3600) -> bool:
    """
    Count one action against a fixed window and report whether it is allowed.
    INCR and EXPIRE go out in one MULTI block; NX leaves a running window alone
    and repairs a counter that somehow lost its TTL.
    """
    if not core.REDIS:
        return True

    key = cache._make_key(f"{user_id}:{action}", "rate")
    try:
        async with core.REDIS.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, window, nx=True)
            current, _ = await pipe.execute()
    except Exception as e:
        logger.error(f"Rate limit check failed for key {key}: {str(e)}")
        return True

    return int(current) <= limit
