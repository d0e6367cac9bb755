"""Read-only queries consumed by the presentation layer."""

import logging
from typing import Optional

from .news.models import ArticleId, Digest, RewrittenArticle, StatsSnapshot
from .store import keys
from .store.repository import ArticleRepository

logger = logging.getLogger(__name__)

SOURCE_SAMPLE_SIZE = 100


class Publication:
    """Queries over the store; never writes."""

    def __init__(self, repository: ArticleRepository):
        self.repository = repository

    async def latest_digest(self, scope: str = keys.CORPUS_SCOPE) -> Optional[Digest]:
        return await self.repository.latest_digest(scope)

    async def digest_history(self, scope: str = keys.CORPUS_SCOPE, limit: int = 10) -> list[str]:
        return await self.repository.digest_history(scope, limit)

    async def rewritten_article(self, article_id: str) -> Optional[RewrittenArticle]:
        return await self.repository.get_rewritten(ArticleId(article_id))

    async def recent_rewritten_articles(self, limit: int = 50) -> list[RewrittenArticle]:
        """
        Publishable rewrites among the ``limit`` most recent articles.

        Records without a local angle are left out, then later records
        repeating an earlier link or headline (case-insensitive) are dropped.
        """
        ids = await self.repository.recent_ids(limit)
        rewritten = await self.repository.rewritten_for(ids)

        seen_links: set[str] = set()
        seen_headlines: set[str] = set()
        articles = []
        for article in rewritten:
            if article is None or not article.is_publishable:
                continue
            link = article.original_link.strip()
            headline = article.headline.strip().lower()
            if (link and link in seen_links) or headline in seen_headlines:
                logger.debug("[PUBLICATION] Dropping repeated story %s", article.id)
                continue
            if link:
                seen_links.add(link)
            seen_headlines.add(headline)
            articles.append(article)
        return articles

    async def stats_snapshot(self) -> StatsSnapshot:
        last_scrape, total = await self.repository.last_scrape()
        recent = await self.repository.recent_raw(SOURCE_SAMPLE_SIZE)
        digest = await self.repository.latest_digest()
        return StatsSnapshot(
            total_articles=total,
            indexed_articles=await self.repository.index_size(),
            total_sources=len({a.source for a in recent}),
            last_scrape=last_scrape,
            has_digest=digest is not None,
            digest_generated=digest.timestamp if digest else None,
        )
