import json
from functools import lru_cache
from typing import Annotated, List, Any

from loguru import logger
from pydantic_settings import BaseSettings, NoDecode
from pydantic import field_validator, Field

ALL_CATEGORIES = ["hikes", "movies", "tv", "restaurants"]


class Settings(BaseSettings):
    """Application settings."""
    # General settings
    debug: bool = Field(default=False, alias="DEBUG")
    app_name: str = "SwipeMatch"

    # Logging
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")
    LOG_FILE: str = Field(default="", alias="LOG_FILE")  # empty disables the file sink
    DIAGNOSTICS_ENABLED: bool = Field(default=False, alias="DIAGNOSTICS_ENABLED")

    # Database settings
    db_url: str = Field(default="sqlite+aiosqlite:///./swipematch.db", alias="DATABASE_URL")

    # Store retry policy (only applied to idempotent operations)
    STORE_RETRY_ATTEMPTS: int = Field(default=3, alias="STORE_RETRY_ATTEMPTS")
    STORE_RETRY_BASE_DELAY: float = Field(default=0.2, alias="STORE_RETRY_BASE_DELAY")
    STORE_RETRY_MAX_DELAY: float = Field(default=2.0, alias="STORE_RETRY_MAX_DELAY")

    # Swipe categories
    ENABLED_CATEGORIES: Annotated[List[str], NoDecode] = Field(default=list(ALL_CATEGORIES), alias="ENABLED_CATEGORIES")

    @field_validator("ENABLED_CATEGORIES", mode="before")
    @classmethod
    def _parse_categories(cls, v: Any) -> List[str]:
        """Parse ENABLED_CATEGORIES from a list, a JSON array or a comma-separated string."""
        if isinstance(v, list):
            categories = [str(c).strip().lower() for c in v]
        elif not v:
            logger.warning("Empty ENABLED_CATEGORIES, enabling all categories")
            return list(ALL_CATEGORIES)
        elif isinstance(v, str) and v.strip().startswith("["):
            try:
                categories = [str(c).strip().lower() for c in json.loads(v)]
            except ValueError as e:
                raise ValueError(f"ENABLED_CATEGORIES is not a valid JSON array: {e}")
        elif isinstance(v, str):
            categories = [c.strip().lower() for c in v.split(",") if c.strip()]
        else:
            raise ValueError(f"Unsupported ENABLED_CATEGORIES value: {v!r}")

        unknown = [c for c in categories if c not in ALL_CATEGORIES]
        if unknown:
            raise ValueError(f"Unknown categories in ENABLED_CATEGORIES: {unknown}")
        return categories

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore any extra fields not defined above
        populate_by_name = True


@lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    # Clear cache if needed for testing: get_settings.cache_clear()
    return Settings()
