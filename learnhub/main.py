# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.concurrency import run_in_threadpool
import inspect
import logging
import sys
from learnhub import __version__
from learnhub.config import settings
from learnhub.deps import create_mongo_client, create_redis_client
from learnhub.logging_config import setup_logging
from learnhub.middleware.error_handler import ErrorHandlerMiddleware
from learnhub.repos import courses as courses_repo
from learnhub.repos import lessons as lessons_repo
from learnhub.repos import quizzes as quizzes_repo
from learnhub.repos import enrollments as enrollments_repo
from learnhub.repos import users as users_repo
from learnhub.routers.health import router as health_router
from learnhub.routers.courses_route import courses
from learnhub.routers.enrollments_route import enrollments
from learnhub.routers.student_progress import progress_route
from learnhub.routers.cache_route import cache
from learnhub.tasks.scheduler import create_scheduler, schedule_jobs


# Setup logging
log_level = "DEBUG" if settings.DEBUG else "INFO"
log_file = "logs/app.log" if settings.is_production else None
setup_logging(log_level=log_level, log_file=log_file)

logger = logging.getLogger(__name__)

INDEX_BUILDERS = (
    users_repo.ensure_indexes,
    courses_repo.ensure_indexes,
    lessons_repo.ensure_indexes,
    quizzes_repo.ensure_indexes,
    enrollments_repo.ensure_indexes,
)


app = FastAPI(
    title="LearnHub API",
    description="Course catalog, enrollments, quizzes and progress tracking",
    version=__version__
)


@app.on_event("startup")
async def startup():
    logger.info("Starting application...")

    try:
        app.state.mongo_client = create_mongo_client(settings.MONGO_URI)
        app.state.db = app.state.mongo_client.get_default_database()
        logger.info("MongoDB connection established")
    except Exception as e:
        logger.critical(f"Failed to connect to MongoDB: {str(e)}")
        sys.exit(1)

    try:
        app.state.redis = create_redis_client(settings.REDIS_URL)
        await app.state.redis.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.critical(f"Failed to connect to Redis: {str(e)}")
        sys.exit(1)

    # the (student, course) unique index must exist before serving
    try:
        for ensure_indexes in INDEX_BUILDERS:
            await run_in_threadpool(ensure_indexes, app.state.db)
        logger.info("Database indexes ensured")
    except Exception as e:
        logger.critical(f"Failed to ensure database indexes: {str(e)}")
        sys.exit(1)

    try:
        app.state.scheduler = create_scheduler()
        schedule_jobs(app.state.scheduler, app.state.db, app.state.redis)
        app.state.scheduler.start()
        logger.info("Scheduler started")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {str(e)}")

    logger.info("Application startup completed successfully")

async def _release(name: str, close) -> None:
    try:
        result = close()
        if inspect.isawaitable(result):
            await result
        logger.info(f"{name} closed")
    except Exception as e:
        logger.error(f"Error closing {name}: {str(e)}")

@app.on_event("shutdown")
async def shutdown():
    logger.info("Starting application shutdown...")
    state = app.state
    if hasattr(state, 'scheduler'):
        await _release("Scheduler", lambda: state.scheduler.shutdown(wait=False))
    if hasattr(state, 'redis'):
        await _release("Redis connection", state.redis.aclose)
    if hasattr(state, 'mongo_client'):
        await _release("MongoDB connection", state.mongo_client.close)
    logger.info("Application shutdown completed")

# Error handling middleware (should be first)
app.add_middleware(ErrorHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if not settings.is_production else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health_router)
app.include_router(courses.router)
app.include_router(enrollments.router)
app.include_router(progress_route.router)
app.include_router(cache.router)
