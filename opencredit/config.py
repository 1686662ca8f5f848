"""Configuration management using Pydantic Settings"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BUNDLED_CATALOG_PATH = Path(__file__).resolve().parent / "rules" / "scoring-rules.yaml"


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "opencredit-engine"
    log_level: str = "INFO"

    # Rule catalog: filesystem path or http(s) URL
    catalog_source: str = str(BUNDLED_CATALOG_PATH)
    strict_metric_keys: bool = False

    # Remote catalog fetch
    catalog_timeout_seconds: float = 5.0
    catalog_fetch_retries: int = 3
    catalog_backoff_base: float = 0.5  # Exponential backoff base in seconds

    # Batch re-scoring
    batch_max_workers: int = 8


settings = Settings()
