from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings
import os
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # PostgreSQL Configuration
    postgres_user: str = Field(default="admin", env="POSTGRES_USER")
    postgres_password: str = Field(default="admin", env="POSTGRES_PASSWORD")
    postgres_db: str = Field(default="dealmatch", env="POSTGRES_DB")
    postgres_host: str = Field(default="db", env="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, env="POSTGRES_PORT")

    # Application Configuration
    app_env: str = Field(default="dev", env="APP_ENV")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    api_port: int = Field(default=8000, env="API_PORT")
    jwt_secret: str = Field(
        default="change-me-in-production-use-a-secure-random-string",
        env="JWT_SECRET"
    )

    # Redis (compatibility cache + optional realtime relay)
    redis_url: str = Field(default="redis://redis:6379/0", env="REDIS_URL")
    redis_pool_size: int = Field(default=10, env="REDIS_POOL_SIZE")
    compatibility_cache_ttl: int = Field(default=3600, env="COMPATIBILITY_CACHE_TTL")  # 1 hour

    # Every storage round-trip is bounded by this many seconds
    storage_timeout_seconds: float = Field(default=5.0, env="STORAGE_TIMEOUT_SECONDS")

    # Realtime chat
    realtime_backend: str = Field(default="memory", env="REALTIME_BACKEND")  # memory or redis
    websocket_auth_timeout: float = Field(default=10.0, env="WEBSOCKET_AUTH_TIMEOUT")
    websocket_heartbeat_interval: int = Field(default=30, env="WEBSOCKET_HEARTBEAT_INTERVAL")
    chat_max_message_length: int = Field(default=2000, env="CHAT_MAX_MESSAGE_LENGTH")

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # CORS - allow mobile/web client origins (filter out None values)
    allowed_origins: List[str] = [
        origin for origin in [
            "http://localhost:3000",
            "http://localhost:19006",  # Expo web
            "http://localhost:8081",   # Expo Metro
            "exp://localhost:19000",   # Expo development
            os.getenv("FRONTEND_URL")
        ] if origin is not None
    ]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
