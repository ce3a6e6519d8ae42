# auth/jwt.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from jwt import encode, decode, ExpiredSignatureError, InvalidTokenError
from uuid import uuid4
from learnhub.config import settings
import logging

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Mint an access token the way the identity service does.

    Tokens are issued elsewhere in production; this exists for tooling and
    tests that need a token signed with the shared secret.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "jti": str(uuid4()), "type": "access"})
    return encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)

def decode_token(token: str) -> dict:
    try:
        payload = decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.warning("Attempt to use expired token")
        raise ValueError("Token expired")
    except InvalidTokenError:
        logger.warning("Attempt to use invalid token")
        raise ValueError("Invalid token")

    if payload.get("type") != "access":
        raise ValueError("Invalid token type")
    if not payload.get("sub"):
        raise ValueError("Token missing subject")
    return payload
