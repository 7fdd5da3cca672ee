# hallpass/core/config.py

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values come from the process environment (Docker Compose passes the
    # root .env through); unknown variables are ignored.
    model_config = SettingsConfigDict(extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"

    # --- Production URLs (for inside Docker) ---
    DATABASE_URL_PROD: str = "postgresql://hallpass:hallpass@db:5432/hallpass"
    REDIS_URL_PROD: str = "redis://redis:6379/0"

    # --- Local Development URLs (for running locally) ---
    DATABASE_URL_LOCAL: str = "sqlite:///./hallpass.db"
    REDIS_URL_LOCAL: str = "redis://localhost:6379/0"

    JWT_SECRET: str = "change-me"

    # --- Admission engine ---
    # 'local' serializes per destination inside one process,
    # 'redis' serializes across processes.
    LOCK_BACKEND: str = "local"
    LOCK_TIMEOUT_SECONDS: float = 5.0

    # Waiting entries older than this are cancelled by the expiry sweep.
    # Unset means entries never expire.
    WAITLIST_ENTRY_TTL_MINUTES: Optional[int] = None

    ENABLE_SCHEDULER: bool = False
    EXPIRY_SWEEP_MINUTES: int = 1

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # --- Dynamic Properties ---
    # These return the correct URL based on the ENV
    @property
    def DATABASE_URL(self) -> str:
        return (
            self.DATABASE_URL_LOCAL if self.ENV == "local" else self.DATABASE_URL_PROD
        )

    @property
    def REDIS_URL(self) -> str:
        return self.REDIS_URL_LOCAL if self.ENV == "local" else self.REDIS_URL_PROD


# Create a single instance of the settings
settings = Settings()
