from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from learnhub.deps import get_redis
from learnhub.auth.dependencies import require_role
from learnhub.services import cache_service

router = APIRouter(prefix="/cache", tags=["cache"], dependencies=[Depends(require_role("admin"))])

@router.delete("/courses/{course_id}")
async def invalidate_course(course_id: str, r: Redis = Depends(get_redis)):
    return await cache_service.invalidate_course_cache(r, course_id)

@router.delete("/students/{student_id}")
async def invalidate_student(student_id: str, r: Redis = Depends(get_redis)):
    return await cache_service.invalidate_student_cache(r, student_id)

@router.get("/stats")
async def cache_stats(r: Redis = Depends(get_redis)):
    return await cache_service.get_cache_stats(r)
