from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from datetime import datetime, timezone
from learnhub import __version__
from learnhub.config import settings
from learnhub.deps import get_redis, get_db
from redis.asyncio import Redis
from pymongo.database import Database
from pymongo.errors import PyMongoError
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"], prefix="/api/v1")

@router.get("/health", summary="Health Check", description="Check the health status of the API, MongoDB and Redis")
async def health_check(r: Redis = Depends(get_redis), db: Database = Depends(get_db)):
    redis_status, redis_error = "disconnected", None
    mongo_status, mongo_error = "disconnected", None

    try:
        await r.ping()
        redis_status = "connected"
    except Exception as e:
        logger.warning(f"Redis health check failed: {str(e)}")
        redis_error = "Health check failed"

    try:
        await run_in_threadpool(db.command, "ping")
        mongo_status = "connected"
    except PyMongoError as e:
        logger.warning(f"MongoDB health check failed: {str(e)}")
        mongo_error = "Health check failed"

    # MongoDB is the system of record; without it nothing works
    if mongo_status == "connected" and redis_status == "connected":
        overall_status = "healthy"
    elif mongo_status == "connected":
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    response = {
        "status": overall_status,
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "redis": {"status": redis_status, "error": redis_error},
            "mongodb": {"status": mongo_status, "error": mongo_error},
        }
    }

    if overall_status == "unhealthy":
        raise HTTPException(status_code=503, detail=response)

    return response
