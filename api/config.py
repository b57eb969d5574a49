import os
from functools import lru_cache

from pydantic import BaseModel


class Settings(BaseModel):
    database_url: str = os.getenv(
        "DATABASE_URL",
        "postgresql+asyncpg://fleetdesk:fleetdesk@db:5432/fleetdesk",
    )
    sql_echo: bool = os.getenv("SQL_ECHO", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Day/month windows for earnings are cut in this zone
    local_timezone: str = os.getenv("LOCAL_TIMEZONE", "Asia/Kolkata")

    default_daily_target: float = float(os.getenv("DEFAULT_DAILY_TARGET", "1250"))
    default_premium_multiplier: float = float(os.getenv("DEFAULT_PREMIUM_MULTIPLIER", "1.5"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
