"""Fetching candidate articles from every configured source.

A failing source contributes zero records and never aborts the batch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..config.settings import Settings
from ..exceptions import SourceUnavailable
from .feed_loader import get_feed_urls
from .models import RawArticle
from .sources import NewsAPISource, RSSSource, SourceAdapter

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Articles from one fetch plus per-source bookkeeping."""

    articles: list[RawArticle]
    total_found: int = 0
    too_short: int = 0
    failed_sources: list[str] = field(default_factory=list)


class NewsFetcher:
    """
    Fetches articles from all adapters and normalizes the batch.

    The batch is deduplicated by id (first occurrence wins), stripped of
    records whose description is shorter than ``min_article_length``, and
    sorted newest first.
    """

    def __init__(self, sources: list[SourceAdapter], min_article_length: int = 100):
        """
        Initialize news fetcher.

        Args:
            sources: Feed adapters, each bound to its own targets
            min_article_length: Minimum description length to keep a record
        """
        self.sources = sources
        self.min_article_length = min_article_length

    @classmethod
    def from_settings(cls, config: Settings) -> "NewsFetcher":
        """Build the adapter set; NewsAPI is only used when a key is configured."""
        sources: list[SourceAdapter] = []
        if config.newsapi_key:
            sources.append(
                NewsAPISource(
                    api_key=config.newsapi_key,
                    keywords=config.region_keyword_list,
                    page_size=config.newsapi_page_size,
                    days_back=config.newsapi_days_back,
                    timeout=config.feed_timeout_seconds,
                )
            )
        else:
            logger.info("[FETCHER] NewsAPI key not provided - using RSS feeds only")

        feed_urls = get_feed_urls(config.feeds_file, config.rss_feed_list)
        if feed_urls:
            sources.append(RSSSource(feed_urls, timeout=config.feed_timeout_seconds))

        return cls(sources, min_article_length=config.min_article_length)

    async def fetch(self) -> FetchResult:
        """
        Fetch from every target of every adapter concurrently.

        Returns:
            FetchResult with unique, long-enough articles sorted newest first
        """
        jobs = [(source, target) for source in self.sources for target in source.targets]
        if not jobs:
            logger.warning("[FETCHER] No sources configured")
            return FetchResult(articles=[])

        results = await asyncio.gather(
            *(self._fetch_one(source, target) for source, target in jobs)
        )

        collected: list[RawArticle] = []
        failed: list[str] = []
        for (source, target), result in zip(jobs, results):
            if result is None:
                failed.append(f"{source.name}:{target}")
            else:
                collected.extend(result)

        unique: dict[str, RawArticle] = {}
        too_short = 0
        for article in collected:
            if article.id in unique:
                continue
            if len(article.description) < self.min_article_length:
                too_short += 1
                continue
            unique[article.id] = article

        articles = sorted(unique.values(), key=lambda a: a.published_at, reverse=True)
        logger.info(
            "[FETCHER] %d articles found, %d unique kept, %d too short, %d/%d sources failed",
            len(collected),
            len(articles),
            too_short,
            len(failed),
            len(jobs),
        )
        return FetchResult(
            articles=articles,
            total_found=len(collected),
            too_short=too_short,
            failed_sources=failed,
        )

    async def _fetch_one(self, source: SourceAdapter, target: str) -> Optional[list[RawArticle]]:
        try:
            articles = await source.fetch_target(target)
        except SourceUnavailable as e:
            logger.warning("[FETCHER] Source unavailable - %s", e)
            return None
        except Exception:
            logger.exception("[FETCHER] Unexpected error fetching %s:%s", source.name, target)
            return None
        logger.info("[FETCHER] %s: %d articles from %s", source.name, len(articles), target)
        return articles
