from pydantic_settings import BaseSettings
from pydantic import Field, validator
from dotenv import load_dotenv
import logging
import sys

load_dotenv()
logger = logging.getLogger(__name__)

URL_SCHEMES = {
    "MONGO_URI": ("mongodb://", "mongodb+srv://"),
    "REDIS_URL": ("redis://", "rediss://"),
}

def _check_scheme(name: str, value: str) -> str:
    if not value.startswith(URL_SCHEMES[name]):
        raise ValueError(f'{name} must start with one of {", ".join(URL_SCHEMES[name])}')
    return value

class Settings(BaseSettings):
    # Connections
    MONGO_URI: str = Field(..., description="MongoDB connection URI, database name included")
    MONGO_MAX_POOL_SIZE: int = Field(default=100, ge=1)
    MONGO_TIMEOUT_MS: int = Field(default=5000, ge=100, description="Server selection timeout")
    REDIS_URL: str = Field(..., description="Redis connection URL")

    # Token verification
    JWT_SECRET: str = Field(..., min_length=32, description="Shared HS256 secret of the identity service")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=15, ge=1, le=1440)

    # Cache TTLs in seconds, 0 disables caching for that view
    PROGRESS_CACHE_TTL: int = Field(default=300, ge=0)
    ANALYTICS_CACHE_TTL: int = Field(default=600, ge=0)
    COURSE_CACHE_TTL: int = Field(default=300, ge=0)
    CACHE_WARM_INTERVAL_MINUTES: int = Field(default=30, ge=1)

    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    @validator('MONGO_URI')
    def validate_mongo_uri(cls, v):
        return _check_scheme('MONGO_URI', v)

    @validator('REDIS_URL')
    def validate_redis_url(cls, v):
        return _check_scheme('REDIS_URL', v)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

try:
    settings = Settings()
    logger.info(f"Configuration loaded for {settings.ENVIRONMENT}")
except Exception as e:
    logger.critical(f"Failed to load configuration: {str(e)}")
    sys.exit(1)
