# activity_stats/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values are read from environment variables (and a local .env file if present).
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"

    # --- Database URLs ---
    DATABASE_URL_LOCAL: str = "sqlite:///./activity_stats.db"
    DATABASE_URL_PROD: str = ""

    # Shared secret for the internal job/recompute endpoints
    INTERNAL_API_KEY: str = "change-me"

    # --- Stats scheduler ---
    STATS_SCHEDULER_ENABLED: bool = True
    STATS_HOST_JOB_INTERVAL_MINUTES: int = 60
    STATS_ACTIVITY_JOB_INTERVAL_MINUTES: int = 30
    STATS_DAILY_SNAPSHOT_HOUR: int = 1
    STATS_MONTHLY_SNAPSHOT_DAY: int = 1

    LOG_LEVEL: str = "INFO"

    # --- Dynamic Properties ---
    @property
    def DATABASE_URL(self) -> str:
        if self.ENV == "local" or not self.DATABASE_URL_PROD:
            return self.DATABASE_URL_LOCAL
        return self.DATABASE_URL_PROD


# Create a single instance of the settings
settings = Settings()
