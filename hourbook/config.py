import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    env: str = Field(default="dev", description="Deployment environment")
    log_level: str = "INFO"
    currency: str = Field(default="EUR", description="Currency code printed next to amounts")
    default_report_title: str = "Hours Report"
    date_format: str = "%d.%m.%Y"
    rounding_interval_minutes: int = Field(default=1, ge=1, description="Billable rounding step, 1 disables rounding")
    tick_interval_seconds: float | None = Field(default=1.0, description="Timer tick period, None for manual ticks")
    data_path: Path = Path("data/store.json")
    database_url: str = Field(default="sqlite:///hourbook.db", description="Time entry database connection string")
    pdf_invariant: bool = Field(default=True, description="Strip timestamps from generated PDFs")

    model_config = SettingsConfigDict(env_prefix="HOURBOOK_", extra="ignore")

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return value.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=get_settings_env_file())


def get_settings_env_file() -> str | None:
    """Resolve environment-specific env file if it exists."""
    env = os.getenv("HOURBOOK_ENV", "dev")
    env_file = BASE_DIR / f".env.{env}"
    default_file = BASE_DIR / ".env"
    if env_file.exists():
        return str(env_file)
    if default_file.exists():
        return str(default_file)
    return None
