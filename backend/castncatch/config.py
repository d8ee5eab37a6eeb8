from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "castncatch-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Cast N Catch")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/castncatch_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Challenges
    challenge_timezone: str = os.getenv("CHALLENGE_TIMEZONE", "UTC")  # end-of-day for hourly challenges
    pro_tournament_hours: int = int(os.getenv("PRO_TOURNAMENT_HOURS", "72"))
    friend_wager_escrow: bool = os.getenv("FRIEND_WAGER_ESCROW", "1") == "1"  # deduct-on-create variant

    # Economy
    loot_box_price: int = int(os.getenv("LOOT_BOX_PRICE", "100"))

    # Push (Firebase Cloud Messaging)
    fcm_enabled: bool = os.getenv("FCM_ENABLED", "0") == "1"

    # Timer-only and admin endpoints
    cron_token: str = os.getenv("CRON_TOKEN", "dev-cron-token")
    admin_token: str = os.getenv("ADMIN_TOKEN", "")

settings = Settings()
