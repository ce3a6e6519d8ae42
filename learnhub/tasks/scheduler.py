# tasks/scheduler.py
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pymongo.database import Database
from redis.asyncio import Redis

from learnhub.config import settings
from learnhub.services import course_service

logger = logging.getLogger(__name__)

def create_scheduler() -> AsyncIOScheduler:
    return AsyncIOScheduler()

def schedule_jobs(scheduler: AsyncIOScheduler, db: Database, r: Redis) -> None:
    # Catalog listings and the most enrolled course pages
    scheduler.add_job(
        warm_courses,
        trigger=IntervalTrigger(minutes=settings.CACHE_WARM_INTERVAL_MINUTES),
        args=[db, r],
        id="warm_courses",
        replace_existing=True,
    )

async def warm_courses(db: Database, r: Redis):
    try:
        await course_service.warm_courses_cache(db, r)
    except Exception as e:
        # logged only, the job stays scheduled
        logger.error(f"Course cache warming failed: {str(e)}")
