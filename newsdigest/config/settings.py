"""Configuration settings for the news digest pipeline."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load .env file
load_dotenv()


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Store
    store_backend: str = "redis"  # "redis" or "memory"
    redis_url: str = os.getenv("REDIS_URL", "")
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None

    # Oracle (generative text service)
    oracle_provider: str = "litellm"  # "litellm" or "anthropic"
    oracle_model: str = "gemini/gemini-2.0-flash-lite"
    oracle_max_tokens: int = 4096
    oracle_temperature: float = 0.3
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    anthropic_api_key: str = os.getenv("ANTHROPIC_API_KEY", "")

    # Sources
    newsapi_key: str = os.getenv("NEWSAPI_KEY", "")
    newsapi_page_size: int = 20
    newsapi_days_back: int = 7
    region_keywords: str = "Limerick"
    rss_feeds: str = ""
    min_article_length: int = 100
    feed_timeout_seconds: float = 15.0

    # Retention
    article_ttl_days: int = 30

    # Deduplication
    dedupe_batch_size: int = 100
    similarity_delay_ms: int = 500

    # Rewriting
    max_daily_rewrites: int = 20
    rewrite_delay_ms: int = 1000
    page_fetch_timeout_seconds: float = 10.0
    min_full_text_length: int = 100
    max_full_text_chars: int = 4000

    # Digests
    digest_article_limit: int = 50
    category_article_limit: int = 100
    category_top_stories: int = 8

    # Publication / triggers
    update_token: str = os.getenv("UPDATE_TOKEN", "")
    recent_articles_default_limit: int = 50
    host: str = "0.0.0.0"
    port: int = 3000

    # Paths
    project_root: Path = Path(__file__).parent.parent.parent
    config_dir: Path = Path(__file__).parent
    backup_dir: Path = project_root / "articles"

    # Config files
    feeds_file: Path = config_dir / "feeds.json"
    region_file: Path = config_dir / "default_region.yaml"
    categories_file: Path = config_dir / "categories.yaml"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def article_ttl_seconds(self) -> int:
        return self.article_ttl_days * 24 * 60 * 60

    @property
    def region_keyword_list(self) -> list[str]:
        return _split_csv(self.region_keywords)

    @property
    def rss_feed_list(self) -> list[str]:
        return _split_csv(self.rss_feeds)

    @property
    def resolved_redis_url(self) -> str:
        """REDIS_URL when set, otherwise a URL built from host/port/password."""
        if self.redis_url:
            return self.redis_url
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/0"


# Global settings instance
settings = Settings()
