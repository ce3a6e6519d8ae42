# services/cache_stats.py
from typing import Dict, Any
from redis.asyncio import Redis

HITS_HASH = "cache_stats:hits"
MISSES_HASH = "cache_stats:misses"

async def hit(r: Redis, namespace: str) -> None:
    await r.hincrby(HITS_HASH, namespace, 1)

async def miss(r: Redis, namespace: str) -> None:
    await r.hincrby(MISSES_HASH, namespace, 1)

async def _counters(r: Redis, name: str) -> Dict[str, int]:
    raw = await r.hgetall(name) or {}
    return {namespace: int(count) for namespace, count in raw.items()}

async def get_stats(r: Redis) -> Dict[str, Any]:
    """Hit/miss counters per cache namespace plus overall ratio (percent)."""
    hits = await _counters(r, HITS_HASH)
    misses = await _counters(r, MISSES_HASH)
    total_hits, total_misses = sum(hits.values()), sum(misses.values())
    lookups = total_hits + total_misses
    return {
        "hits": hits,
        "misses": misses,
        "totals": {
            "hits": total_hits,
            "misses": total_misses,
            "hit_ratio": round(total_hits / lookups * 100, 2) if lookups else 0.0,
        },
    }
