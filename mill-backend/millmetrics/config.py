from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "postgresql://localhost/millmetrics"
    db_schema: str = "public"
    pool_max_size: int = 10
    fiscal_year_start_month: int = 3
    default_window_months: int = 12
    report_timezone: Optional[str] = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("fiscal_year_start_month")
    @classmethod
    def _validate_fiscal_start(cls, value: int) -> int:
        if not 1 <= value <= 12:
            raise ValueError("fiscal_year_start_month must be between 1 and 12")
        return value

    @field_validator("default_window_months")
    @classmethod
    def _validate_window(cls, value: int) -> int:
        if value < 1:
            raise ValueError("default_window_months must be positive")
        return value

    @field_validator("report_timezone")
    @classmethod
    def _blank_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

settings = Settings()
