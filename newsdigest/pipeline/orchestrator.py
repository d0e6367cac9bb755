"""Pipeline orchestrator: Fetch -> Deduplicate -> Filter+Rewrite.

Stages run strictly one after another and items are handled one at a
time with fixed delays between oracle calls. Any single source, pair
comparison or item failure is logged and the batch carries on, so a run
always ends with a summary.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from ..agents.oracle import Oracle
from ..agents.relevance import RelevanceJudge
from ..agents.rewriter import Rewriter
from ..agents.similarity import SimilarityJudge
from ..exceptions import StoreUnavailable
from ..news.fetcher import NewsFetcher
from ..news.models import ArticleId, RawArticle
from ..store.repository import ArticleRepository
from ..utils.cost_tracker import PipelineCosts

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def pair_key(a: str, b: str) -> str:
    """Order-independent key for one unordered pair of ids."""
    return "|".join(sorted((a, b)))


@dataclass
class ScrapeResult:
    found: int = 0
    saved: int = 0
    skipped: int = 0
    errors: int = 0
    failed_sources: list[str] = field(default_factory=list)


@dataclass
class DedupeResult:
    checked: int = 0
    kept: list[RawArticle] = field(default_factory=list)
    removed: list[RawArticle] = field(default_factory=list)
    comparisons: int = 0


@dataclass
class RewriteResult:
    considered: int = 0
    rewritten: int = 0
    skipped: int = 0
    already_rewritten: int = 0
    irrelevant: int = 0
    failed: int = 0
    rewritten_ids: list[ArticleId] = field(default_factory=list)


@dataclass
class RunSummary:
    """Computed per-run counters; only status fields are persisted."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    found: int = 0
    saved: int = 0
    skipped: int = 0
    duplicates_removed: int = 0
    rewritten: int = 0
    rewrite_skipped: int = 0
    errors: list[str] = field(default_factory=list)
    costs: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "found": self.found,
            "saved": self.saved,
            "skipped": self.skipped,
            "duplicates_removed": self.duplicates_removed,
            "rewritten": self.rewritten,
            "rewrite_skipped": self.rewrite_skipped,
            "errors": self.errors,
            "costs": self.costs,
        }


class PipelineOrchestrator:
    """
    Drives one batch through the pipeline.

    Without an oracle (no credential configured) the judges and rewriter
    are None and only ``scrape`` does any work.
    """

    def __init__(
        self,
        repository: ArticleRepository,
        fetcher: NewsFetcher,
        similarity: Optional[SimilarityJudge] = None,
        relevance: Optional[RelevanceJudge] = None,
        rewriter: Optional[Rewriter] = None,
        oracle: Optional[Oracle] = None,
        dedupe_batch_size: int = 100,
        similarity_delay: float = 0.5,
        max_rewrites: int = 20,
        rewrite_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize orchestrator.

        Args:
            repository: Typed store access
            fetcher: Source fetcher
            similarity: Same-story judge (dedupe disabled if None)
            relevance: Regional relevance judge (rewrite disabled if None)
            rewriter: Rewriter (rewrite disabled if None)
            oracle: Shared oracle, used for per-run cost accounting
            dedupe_batch_size: Candidate set size for deduplication
            similarity_delay: Seconds between similarity oracle calls
            max_rewrites: Per-run cap on candidates considered for rewriting
            rewrite_delay: Seconds between rewrite items
            sleep: Awaitable sleep, replaceable in tests
        """
        self.repository = repository
        self.fetcher = fetcher
        self.similarity = similarity
        self.relevance = relevance
        self.rewriter = rewriter
        self.oracle = oracle
        self.dedupe_batch_size = dedupe_batch_size
        self.similarity_delay = similarity_delay
        self.max_rewrites = max_rewrites
        self.rewrite_delay = rewrite_delay
        self.sleep = sleep

    @property
    def oracle_enabled(self) -> bool:
        return self.similarity is not None and self.relevance is not None and self.rewriter is not None

    # --- Fetch ---

    async def scrape(self) -> ScrapeResult:
        """Fetch all sources and store articles not seen before."""
        fetched = await self.fetcher.fetch()
        result = ScrapeResult(found=len(fetched.articles), failed_sources=fetched.failed_sources)

        for article in fetched.articles:
            try:
                if await self.repository.raw_exists(article.id):
                    result.skipped += 1
                    continue
                await self.repository.save_raw(article)
                result.saved += 1
            except StoreUnavailable as e:
                # Unknown state: do not write
                logger.error("[SCRAPE] Store error for %s: %s", article.id, e)
                result.errors += 1

        try:
            await self.repository.record_scrape(datetime.now(timezone.utc), result.saved)
        except StoreUnavailable as e:
            logger.error("[SCRAPE] Could not record scrape status: %s", e)

        logger.info(
            "[SCRAPE] %d found, %d new saved, %d existing skipped, %d errors",
            result.found,
            result.saved,
            result.skipped,
            result.errors,
        )
        return result

    # --- Deduplicate ---

    async def deduplicate(self, candidates: Optional[list[RawArticle]] = None) -> DedupeResult:
        """
        Remove semantic duplicates from the most recent candidates.

        Candidates are walked newest first and each one is compared with
        the already-kept articles until a match is found. Candidates that
        already have a rewritten record were decided by an earlier run:
        they seed the kept list and are never compared with each other.
        Each unordered pair is judged at most once per call.
        """
        if candidates is None:
            candidates = await self.repository.recent_raw(self.dedupe_batch_size)
        result = DedupeResult(checked=len(candidates))

        if self.similarity is None:
            logger.warning("[DEDUPE] No oracle configured, keeping all %d candidates", len(candidates))
            result.kept = list(candidates)
            return result

        settled_flags = await self.repository.rewritten_for([a.id for a in candidates])
        settled = {a.id for a, r in zip(candidates, settled_flags) if r is not None}

        kept: list[RawArticle] = [a for a in candidates if a.id in settled]
        judged: dict[str, bool] = {}

        for article in candidates:
            if article.id in settled:
                continue

            duplicate_of = None
            for other in kept:
                key = pair_key(article.id, other.id)
                if key not in judged:
                    if result.comparisons > 0:
                        await self.sleep(self.similarity_delay)
                    logger.info("[DEDUPE] Comparing %r vs %r", article.title[:50], other.title[:50])
                    judged[key] = await self._judge_pair(article, other)
                    result.comparisons += 1
                if judged[key]:
                    duplicate_of = other
                    break

            if duplicate_of is not None:
                logger.info("[DEDUPE] Duplicate of %r - removing %r", duplicate_of.title[:50], article.title[:50])
                result.removed.append(article)
            else:
                kept.append(article)

        # Report kept articles in retrieval order
        kept_ids = {a.id for a in kept}
        result.kept = [a for a in candidates if a.id in kept_ids]

        for article in result.removed:
            try:
                await self.repository.delete_article(article.id)
            except StoreUnavailable as e:
                logger.error("[DEDUPE] Could not remove %s: %s", article.id, e)

        logger.info(
            "[DEDUPE] %d checked, %d kept, %d removed, %d oracle comparisons",
            result.checked,
            len(result.kept),
            len(result.removed),
            result.comparisons,
        )
        return result

    async def _judge_pair(self, a: RawArticle, b: RawArticle) -> bool:
        try:
            return await self.similarity.are_same_story(a, b)
        except Exception:
            logger.exception("[DEDUPE] Comparison failed for %s / %s, treating as different", a.id, b.id)
            return False

    # --- Filter + Rewrite ---

    async def rewrite_articles(
        self,
        candidates: Optional[list[RawArticle]] = None,
        limit: Optional[int] = None,
    ) -> RewriteResult:
        """
        Relevance-check and rewrite up to ``limit`` candidates in order.

        Already rewritten candidates are skipped without any oracle call.
        """
        limit = self.max_rewrites if limit is None else limit
        if candidates is None:
            candidates = await self.repository.recent_raw(limit)
        batch = candidates[:limit]
        result = RewriteResult(considered=len(batch))

        if not self.oracle_enabled:
            logger.warning("[REWRITE] No oracle configured, skipping %d candidates", len(batch))
            result.skipped = len(batch)
            return result

        worked = False
        for article in batch:
            try:
                if await self.repository.rewritten_exists(article.id):
                    logger.info("[REWRITE] Skipping (already rewritten): %s", article.title[:60])
                    result.already_rewritten += 1
                    result.skipped += 1
                    continue
            except StoreUnavailable as e:
                logger.error("[REWRITE] Store error checking %s, skipping: %s", article.id, e)
                result.failed += 1
                result.skipped += 1
                continue

            if worked:
                await self.sleep(self.rewrite_delay)
            worked = True

            try:
                outcome = await self._process_item(article)
            except Exception:
                logger.exception("[REWRITE] Unexpected failure on %s", article.id)
                outcome = "failed"

            if outcome == "rewritten":
                result.rewritten += 1
                result.rewritten_ids.append(article.id)
            else:
                result.skipped += 1
                if outcome == "irrelevant":
                    result.irrelevant += 1
                else:
                    result.failed += 1

        logger.info(
            "[REWRITE] %d considered, %d rewritten, %d skipped",
            result.considered,
            result.rewritten,
            result.skipped,
        )
        return result

    async def _process_item(self, article: RawArticle) -> str:
        full_text = await self.rewriter.fetch_full_text(article)

        if not await self.relevance.is_relevant(article, full_text):
            logger.info("[REWRITE] Skipping (no regional connection): %s", article.title[:60])
            return "irrelevant"

        rewritten = await self.rewriter.rewrite(article, full_text)
        return "rewritten" if rewritten is not None else "failed"

    # --- Full run ---

    async def run(self) -> RunSummary:
        """Scrape, deduplicate and rewrite; a failed stage never stops the next."""
        summary = RunSummary(started_at=datetime.now(timezone.utc))
        if self.oracle is not None:
            self.oracle.costs = PipelineCosts()

        try:
            scraped = await self.scrape()
            summary.found = scraped.found
            summary.saved = scraped.saved
            summary.skipped = scraped.skipped
        except Exception as e:
            logger.exception("[PIPELINE] Scrape stage failed")
            summary.errors.append(f"scrape: {e}")

        kept: Optional[list[RawArticle]] = None
        try:
            deduped = await self.deduplicate()
            summary.duplicates_removed = len(deduped.removed)
            kept = deduped.kept
        except Exception as e:
            logger.exception("[PIPELINE] Deduplication stage failed")
            summary.errors.append(f"dedupe: {e}")

        try:
            rewritten = await self.rewrite_articles(kept)
            summary.rewritten = rewritten.rewritten
            summary.rewrite_skipped = rewritten.skipped
        except Exception as e:
            logger.exception("[PIPELINE] Rewrite stage failed")
            summary.errors.append(f"rewrite: {e}")

        if self.oracle is not None:
            summary.costs = self.oracle.costs.to_dict()
        summary.finished_at = datetime.now(timezone.utc)
        logger.info(
            "[PIPELINE] Run complete: %d found, %d saved, %d skipped, %d duplicates, %d rewritten",
            summary.found,
            summary.saved,
            summary.skipped,
            summary.duplicates_removed,
            summary.rewritten,
        )
        return summary
