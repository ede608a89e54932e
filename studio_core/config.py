"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./studio.db"

    # Service
    service_name: str = "studio-core"
    log_level: str = "INFO"

    # Billing
    default_due_day: int = 10
    schedule_months: int = 12

    # Attendance
    sessions_per_week_limit: int = 4  # per weekly session: 1x -> 4/month, 2x -> 8/month
    enforce_pause_period: bool = False
    enforce_class_weekday: bool = False


settings = Settings()
