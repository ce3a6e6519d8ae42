# auth/dependencies.py
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from fastapi.concurrency import run_in_threadpool
from redis.asyncio import Redis
from pymongo.database import Database

from learnhub.deps import get_redis, get_db
from learnhub.auth.jwt import decode_token
from learnhub.repos import users
from learnhub.services.cache_keys import blacklisted_jti_key

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    r: Redis = Depends(get_redis),
    db: Database = Depends(get_db)
):
    try:
        payload = decode_token(token)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    jti = payload.get("jti")
    if jti and await r.get(blacklisted_jti_key(jti)):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token revoked")

    user = await run_in_threadpool(users.get_user_by_id, db, payload["sub"])
    if not user:
        logger.warning(f"Token subject {payload['sub']} has no user record")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    user["_id"] = str(user["_id"])
    user.setdefault("role", "student")
    return user

def require_role(*roles: str):
    async def role_checker(user=Depends(get_current_user)):
        if user["role"] not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user
    return role_checker
