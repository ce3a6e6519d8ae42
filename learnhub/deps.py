from fastapi import Request
from pymongo import MongoClient
from pymongo.database import Database
import redis.asyncio as aioredis
from redis.asyncio import Redis

from learnhub.config import settings


def create_mongo_client(uri: str) -> MongoClient:
    # blocking driver; services call it through run_in_threadpool
    return MongoClient(
        uri,
        maxPoolSize=settings.MONGO_MAX_POOL_SIZE,
        serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
        tz_aware=True,
        appname="learnhub",
    )

def create_redis_client(url: str) -> Redis:
    return aioredis.from_url(url, encoding="utf-8", decode_responses=True)

# Request-scoped accessors for the clients opened at startup

def get_db(request: Request) -> Database:
    return request.app.state.db

def get_redis(request: Request) -> Redis:
    return request.app.state.redis
