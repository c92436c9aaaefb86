"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "NextAction Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://nextaction@localhost:5432/nextaction"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "nextaction"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"
    # Upper bound for a single model call; a timeout counts as a model failure.
    llm_timeout_seconds: float = 30.0
    generated_max_tokens: int = 350
    ranking_max_tokens: int = 300
    generated_daily_cap: int = 5
    ranking_daily_cap: int = 10


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
