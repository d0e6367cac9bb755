"""Component wiring shared by the CLI and the HTTP wrapper.

The store handle is opened here (or passed in) and handed to every
component; whoever calls ``build_services`` closes it via ``close()``.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from .agents.oracle import Oracle, build_oracle
from .agents.relevance import RelevanceJudge
from .agents.rewriter import Rewriter
from .agents.similarity import SimilarityJudge
from .config.settings import Settings
from .digest.aggregator import DigestAggregator
from .digest.categories import load_categories
from .exceptions import ConfigurationMissing
from .news.extractor import ArticleExtractor
from .news.fetcher import NewsFetcher
from .output.backup import BackupWriter
from .pipeline.maintenance import clear_rewrites
from .pipeline.orchestrator import PipelineOrchestrator, RunSummary, Sleep
from .publication import Publication
from .region.profile import load_default_region
from .store import open_store
from .store.base import Store
from .store.repository import ArticleRepository

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every long-lived component built over one store handle."""

    store: Store
    repository: ArticleRepository
    orchestrator: PipelineOrchestrator
    publication: Publication
    backup: BackupWriter
    aggregator: Optional[DigestAggregator] = None
    oracle: Optional[Oracle] = None
    disabled: list[str] = field(default_factory=list)

    async def run_pipeline(self) -> RunSummary:
        return await self.orchestrator.run()

    async def clear_rewrites(self, include_backup_files: bool = False) -> int:
        return await clear_rewrites(self.repository, self.backup, include_backup_files)

    async def close(self) -> None:
        await self.store.close()


def build_services(
    config: Settings,
    store: Optional[Store] = None,
    oracle: Optional[Oracle] = None,
    fetcher: Optional[NewsFetcher] = None,
    sleep: Sleep = asyncio.sleep,
) -> Services:
    """
    Build the component graph from settings.

    Without an oracle credential the pipeline runs degraded: scraping
    works, deduplication keeps everything and rewriting and digests are
    disabled.

    Args:
        config: Application settings
        store: Store handle (opened from settings if omitted)
        oracle: Oracle override (built from settings if omitted)
        fetcher: Fetcher override (built from settings if omitted)
        sleep: Awaitable sleep used for rate-limit delays
    """
    store = store or open_store(config)
    repository = ArticleRepository(store, ttl_seconds=config.article_ttl_seconds)
    backup = BackupWriter(config.backup_dir)
    fetcher = fetcher or NewsFetcher.from_settings(config)

    disabled: list[str] = []
    if oracle is None:
        try:
            oracle = build_oracle(config)
        except ConfigurationMissing as e:
            logger.warning("[CONFIG] %s - running in degraded mode (scrape only)", e)
            disabled = ["dedupe", "rewrite", "digest"]

    similarity = relevance = rewriter = aggregator = None
    if oracle is not None:
        region = load_default_region(config.region_file)
        extractor = ArticleExtractor(
            timeout=config.page_fetch_timeout_seconds,
            min_length=config.min_full_text_length,
            max_chars=config.max_full_text_chars,
        )
        similarity = SimilarityJudge(oracle)
        relevance = RelevanceJudge(oracle, region)
        rewriter = Rewriter(oracle, region, repository, extractor=extractor, backup=backup)
        aggregator = DigestAggregator(
            oracle,
            repository,
            region,
            load_categories(config.categories_file),
            article_limit=config.digest_article_limit,
            category_article_limit=config.category_article_limit,
            category_top_stories=config.category_top_stories,
        )

    orchestrator = PipelineOrchestrator(
        repository,
        fetcher,
        similarity=similarity,
        relevance=relevance,
        rewriter=rewriter,
        oracle=oracle,
        dedupe_batch_size=config.dedupe_batch_size,
        similarity_delay=config.similarity_delay_ms / 1000,
        max_rewrites=config.max_daily_rewrites,
        rewrite_delay=config.rewrite_delay_ms / 1000,
        sleep=sleep,
    )

    return Services(
        store=store,
        repository=repository,
        orchestrator=orchestrator,
        publication=Publication(repository),
        backup=backup,
        aggregator=aggregator,
        oracle=oracle,
        disabled=disabled,
    )
