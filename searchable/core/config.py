"""Runtime settings for article search.

Values come from the environment (or ``.env``); ``get_settings`` caches the
first instance for the process.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "searchable"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    ELASTICSEARCH_URL: str = "http://localhost:9200"
    ELASTICSEARCH_API_KEY: Optional[str] = None
    ELASTICSEARCH_USERNAME: Optional[str] = None
    ELASTICSEARCH_PASSWORD: Optional[str] = None
    ELASTICSEARCH_REQUEST_TIMEOUT: float = 10.0

    # Single shard, no replicas: the article index is small and rebuildable
    INDEX_NUMBER_OF_SHARDS: int = 1
    INDEX_NUMBER_OF_REPLICAS: int = 0

    # Index mutation jobs
    INDEX_QUEUE_NAME: str = "elasticsearch"
    INDEX_JOB_MAX_RETRIES: int = 0
    REDIS_URL: str = "redis://localhost:6379/0"

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    @property
    def index_name(self) -> str:
        return f"{self.APP_NAME}_{self.ENVIRONMENT}"


_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = Settings()
    return _settings_cache


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings_cache
    _settings_cache = None
