from functools import lru_cache
import json
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    # Resolve to backend/.env so the app starts the same way from any cwd.
    model_config = SettingsConfigDict(env_file=str(BACKEND_ENV_FILE), env_file_encoding="utf-8")

    project_name: str = "Attendance Tracker API"
    api_prefix: str = "/api"

    database_url: str = "sqlite:///./attendance_tracker.db"

    auto_mark_enabled: bool = True
    auto_mark_on_startup: bool = True
    auto_mark_after_hours: int = 6
    auto_mark_lookback_days: int = 7

    default_semester_weeks: int | None = None
    default_min_attendance: float = 0.8

    max_request_size_bytes: int = 2_500_000
    security_enable_hsts: bool = False
    security_hsts_max_age_seconds: int = 31536000

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8081",
        "http://127.0.0.1:8081",
        "http://localhost:19006",
        "http://127.0.0.1:19006",
    ]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("default_min_attendance")
    @classmethod
    def validate_min_attendance(cls, value: float) -> float:
        if not 0 <= value <= 1:
            raise ValueError("default_min_attendance must be between 0 and 1")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
