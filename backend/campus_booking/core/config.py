from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    PROJECT_NAME: str = "Campus Booking API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"
    # Keep the database in the project root so every entry point shares one file
    DATABASE_URL: str = "sqlite:///../campus_booking.db"
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Redis configuration
    REDIS_URL: str = "redis://localhost:6379/0"

    # Celery configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    # Reservation policy
    ROOM_MAX_DURATION_MINUTES: Optional[int] = None  # unbounded
    LAB_STATION_MAX_DURATION_MINUTES: Optional[int] = 240
    WARNING_WINDOW_MINUTES: int = 15
    EXPIRY_WATCH_INTERVAL_SECONDS: int = 60
    RESERVATION_PAST_START_TOLERANCE_SECONDS: int = 300

    # Critical section guarding create(): "memory" for a single process,
    # "redis" when several API workers share one database
    RESERVATION_LOCK_BACKEND: Literal["memory", "redis"] = "memory"
    RESERVATION_LOCK_TIMEOUT_SECONDS: float = 10.0

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: List[str] | str) -> List[str]:
        """Allow both comma-separated strings and list inputs."""
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator(
        "ROOM_MAX_DURATION_MINUTES", "LAB_STATION_MAX_DURATION_MINUTES", mode="before"
    )
    @classmethod
    def empty_cap_means_unbounded(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
