from __future__ import annotations
import os
from pydantic import BaseModel, Field

class Settings(BaseModel):
    """Centralized configuration for vault discovery."""

    morpho_graphql_url: str = Field(default="https://blue-api.morpho.org/graphql")
    timeout_seconds: float = Field(default=30.0, gt=0)
    default_limit: int = Field(default=100, gt=0)
    max_page_size: int = Field(default=1000, gt=0)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from MORPHO_* environment variables, falling back to defaults."""
        overrides = {
            "morpho_graphql_url": os.environ.get("MORPHO_GRAPHQL_URL"),
            "timeout_seconds": os.environ.get("MORPHO_TIMEOUT_SECONDS"),
            "default_limit": os.environ.get("MORPHO_DEFAULT_LIMIT"),
            "max_page_size": os.environ.get("MORPHO_MAX_PAGE_SIZE"),
        }
        return cls(**{key: value for key, value in overrides.items() if value})

SETTINGS = Settings()
