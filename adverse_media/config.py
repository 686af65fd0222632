"""Environment-driven settings for the screening service."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from the environment or a local .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = "development"

    # Firecrawl (search + scrape)
    firecrawl_api_key: str = ""
    firecrawl_base_url: str = "https://api.firecrawl.dev"
    firecrawl_timeout_seconds: float = 60.0

    # LLM used for entity-match and risk analysis
    analysis_model: str = "openai:gpt-4o"

    # Pipeline bounds
    search_result_limit: int = Field(default=5, ge=1, le=20)
    fallback_search_limit: int = Field(default=3, ge=1, le=20)
    partial_save_interval: int = Field(default=2, ge=1)

    # Record store: memory | supabase
    record_store: str = "memory"
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_relationships_table: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings for production code paths."""
    return Settings()
