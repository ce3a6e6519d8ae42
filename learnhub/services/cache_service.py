# services/cache_service.py
import json
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional
from redis.asyncio import Redis

from learnhub.repos.helper import JSONEncoder
from learnhub.services.memory_cache import memory_cache
from learnhub.services.cache_keys import course_key, student_prefix
from learnhub.services.cache_stats import hit, miss, get_stats

logger = logging.getLogger(__name__)

# ---------------------------
# Read-through
# ---------------------------
async def get_or_load(
    r: Redis,
    key: str,
    ttl: int,
    namespace: str,
    loader: Callable[[], Awaitable[Optional[Any]]],
) -> Optional[Any]:
    """
    L1 -> L2 -> loader, with a per-key lock so concurrent misses load once.

    Payloads go through JSON on the way in, so L1 and L2 hand back the same
    shape (datetimes as ISO strings). A ttl of 0 bypasses caching.
    """
    if ttl <= 0:
        return await loader()

    cached = await memory_cache.get(key)
    if cached is not None:
        await hit(r, namespace)
        return cached

    lock = await memory_cache.get_lock(key)
    async with lock:
        cached = await memory_cache.get(key)
        if cached is not None:
            await hit(r, namespace)
            return cached

        cached_l2 = await r.get(key)
        if cached_l2:
            try:
                payload = json.loads(cached_l2)
                await memory_cache.set(key, payload, ttl=ttl)
                await hit(r, namespace)
                return payload
            except json.JSONDecodeError:
                logger.warning(f"Dropping corrupted cache entry {key}")
                await r.delete(key)

        await miss(r, namespace)
        data = await loader()
        if data is not None:
            serialized = json.dumps(data, cls=JSONEncoder)
            await r.set(key, serialized, ex=ttl)
            await memory_cache.set(key, json.loads(serialized), ttl=ttl)
        return data

# ---------------------------
# Invalidation
# ---------------------------
async def _delete_redis_pattern(r: Redis, pattern: str) -> int:
    cursor = 0
    deleted = 0
    while True:
        cursor, keys = await r.scan(cursor=cursor, match=pattern, count=500)
        if keys:
            deleted += await r.delete(*keys)
        if cursor == 0:
            break
    return deleted

async def invalidate_student_cache(r: Redis, student_id: str) -> Dict[str, Any]:
    """Drop every cached progress view of a student after one of their enrollments changed."""
    prefix = student_prefix(student_id)
    l1, l2 = await asyncio.gather(
        memory_cache.pattern_delete(prefix),
        _delete_redis_pattern(r, f"{prefix}*"),
    )
    logger.debug(f"Invalidated {l1} L1 / {l2} L2 keys for student {student_id}")
    return {"message": f"Cache cleared for student {student_id}", "memory_keys": l1, "redis_keys": l2}

async def invalidate_students_cache(r: Redis, student_ids: Iterable[str]) -> int:
    """Drop progress views of several students, e.g. everyone enrolled in a changed course."""
    results = await asyncio.gather(*(invalidate_student_cache(r, sid) for sid in student_ids))
    return len(results)

async def invalidate_course_cache(r: Redis, course_id: str) -> Dict[str, Any]:
    key = course_key(course_id)
    await asyncio.gather(
        memory_cache.delete(key),
        r.delete(key),
        memory_cache.pattern_delete("courses_list:"),
        _delete_redis_pattern(r, "courses_list:*"),
    )
    logger.info(f"Cache cleared for course {course_id}")
    return {"message": f"Cache cleared for course {course_id}"}

# ---------------------------
# Cache Stats
# ---------------------------
async def get_cache_stats(r: Redis) -> Dict[str, Any]:
    try:
        info = await r.info()
        stats = await get_stats(r)
        return {
            "memory_cache_size": memory_cache.size(),
            "redis_keys": info.get("db0", {}).get("keys", 0) if "db0" in info else 0,
            "redis_memory_used": info.get("used_memory_human", "N/A"),
            "namespaces": stats,
        }
    except Exception as e:
        logger.error(f"Failed to get cache stats: {str(e)}")
        return {
            "memory_cache_size": memory_cache.size(),
            "redis_keys": 0,
            "redis_memory_used": "N/A",
            "error": "Failed to retrieve cache stats"
        }
