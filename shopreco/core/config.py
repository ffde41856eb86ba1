from functools import lru_cache
from typing import Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "ShopReco"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo (optional: without it the tracker runs on the local tier only)
    MONGO_URI: Optional[str] = None
    MONGO_DB: str = "shopreco"

    # Redis (optional: response cache for trending/similar)
    REDIS_URL: Optional[str] = None

    # Cache config
    trending_cache_ttl: int = 5 * 60             # 5 minutes
    similar_cache_ttl: int = 24 * 3600           # 24 hours

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    openai_timeout_s: int = 30  # seconds
    llm_temperature: float = 0.2
    llm_max_tokens: int = 2048

    # Catalog
    CATALOG_PATH: Optional[str] = None           # JSON file, used when Mongo has no products

    # Interaction tracking
    local_history_limit: int = 1000              # local tier keeps the most recent N events
    breaker_failure_threshold: int = 3           # consecutive remote failures before opening
    breaker_reset_timeout_s: float = 30.0        # open -> half-open after this many seconds

    # API
    ALLOWED_ORIGINS: str = ""                    # CSV

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True, extra="ignore")

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
