"""
Application configuration loaded from environment variables.

Uses Pydantic Settings to:
1. Read from .env file automatically
2. Validate values at startup
3. Provide type-safe access throughout the app

Usage:
    from healthreport.config import settings
    print(settings.REPORT_PAGE_SIZE)

Every key has a default, so the report pipeline runs (and the tests pass)
without any .env file present.
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All application configuration in one place."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @model_validator(mode="before")
    @classmethod
    def prefer_dotenv_over_empty_env(cls, data):
        """If an env var is set but empty, fall back to the .env value.

        Pydantic Settings gives real environment variables priority over
        the .env file, so `LOG_LEVEL=""` in the shell would otherwise
        shadow a real value configured in .env.
        """
        from dotenv import dotenv_values

        dotenv_vals = dotenv_values(".env")
        for key, dotenv_value in dotenv_vals.items():
            if dotenv_value and (key not in data or not data.get(key)):
                data[key] = dotenv_value
        return data

    # --- Application ---
    APP_ENV: str = "development"
    DEBUG: bool = True
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # --- Report layout ---
    REPORT_PAGE_SIZE: str = "A4"     # "A4" or "letter"
    REPORT_MARGIN_MM: float = 20.0

    # --- Charts ---
    CHART_WIDTH_PX: int = 400
    CHART_HEIGHT_PX: int = 250
    CHART_PIXEL_RATIO: int = 2
    # matplotlib is not thread-safe across shared state, so charts are
    # rasterized one worker at a time unless raised here.
    CHART_MAX_CONCURRENCY: int = 1

    @field_validator("REPORT_PAGE_SIZE")
    @classmethod
    def check_page_size(cls, value: str) -> str:
        if value.lower() not in ("a4", "letter"):
            raise ValueError("REPORT_PAGE_SIZE must be 'A4' or 'letter'")
        return value

    @field_validator("CHART_MAX_CONCURRENCY", "CHART_PIXEL_RATIO")
    @classmethod
    def check_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]


# Singleton instance, import this everywhere
settings = Settings()
