"""Rewriter: turns a raw article into a locally angled original story.

The oracle must return JSON with at least ``headline``, ``story`` and
``localAngle``; anything else is a hard failure for that item.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..exceptions import OracleError, OracleUnparsable, RewriteRejected, StoreUnavailable
from ..news.extractor import ArticleExtractor
from ..news.models import RawArticle, RewrittenArticle
from ..output.backup import BackupWriter
from ..prompts import render
from ..region.profile import RegionContext
from ..store.repository import ArticleRepository
from ..utils.json_extract import extract_json_object
from .oracle import Oracle

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("headline", "story", "localAngle")


class Rewriter:
    """
    Produces and persists RewrittenArticle records.

    Persistence goes to the store first and then to the file backup; a
    backup failure is logged but does not undo the rewrite.
    """

    def __init__(
        self,
        oracle: Oracle,
        region: RegionContext,
        repository: ArticleRepository,
        extractor: Optional[ArticleExtractor] = None,
        backup: Optional[BackupWriter] = None,
    ):
        """
        Initialize rewriter.

        Args:
            oracle: Generative text backend
            region: Region profile for the local angle
            repository: Store access for persisting results
            extractor: Full-text page extractor (enrichment disabled if None)
            backup: File backup writer (no backup if None)
        """
        self.oracle = oracle
        self.region = region
        self.repository = repository
        self.extractor = extractor
        self.backup = backup

    async def fetch_full_text(self, article: RawArticle) -> Optional[str]:
        """Enrichment step; None means full text is absent, never an error."""
        if self.extractor is None or not article.link:
            return None
        return await self.extractor.fetch_full_text(article.link)

    async def rewrite(self, article: RawArticle, full_text: Optional[str] = None) -> Optional[RewrittenArticle]:
        """
        Rewrite and persist one article.

        Returns:
            The persisted RewrittenArticle, or None if the item was rejected
        """
        logger.info("[REWRITE] Rewriting: %s", article.title[:60])
        try:
            rewritten = await self.generate(article, full_text)
        except RewriteRejected as e:
            logger.warning("[REWRITE] Rejected %s: %s", article.id, e)
            return None
        except OracleUnparsable as e:
            logger.error("[REWRITE] Unusable rewrite for %s: %s", article.id, e)
            return None
        except OracleError as e:
            logger.error("[REWRITE] Oracle failed for %s: %s", article.id, e)
            return None

        try:
            await self.repository.save_rewritten(rewritten)
        except StoreUnavailable as e:
            logger.error("[REWRITE] Could not persist %s: %s", article.id, e)
            return None

        if self.backup is not None:
            try:
                path = self.backup.save(rewritten)
                logger.info("[REWRITE] Saved to store and %s", path)
            except OSError as e:
                logger.error("[REWRITE] Backup write failed for %s: %s", article.id, e)

        return rewritten

    async def generate(self, article: RawArticle, full_text: Optional[str] = None) -> RewrittenArticle:
        """
        Ask the oracle for a rewrite without persisting it.

        Raises:
            OracleError: If the call fails
            OracleUnparsable: If the response lacks a required field
            RewriteRejected: If there is no text to rewrite
        """
        if not article.description.strip() and not full_text:
            raise RewriteRejected("Article has no description or full text")

        full_text_block = f"FULL CONTENT:\n{full_text}\n" if full_text else ""
        prompt = render(
            "rewrite",
            publication=self.region.publication,
            region_name=self.region.name,
            title=article.title,
            source=article.source,
            published=article.published_at.isoformat(),
            description=article.description,
            full_text_block=full_text_block,
        )
        response_text = await self.oracle.complete(prompt, step="rewrite")
        data = extract_json_object(response_text)
        if data is None:
            raise OracleUnparsable("No JSON found in rewrite response")

        missing = [f for f in REQUIRED_FIELDS if not isinstance(data.get(f), str) or not data[f].strip()]
        if missing:
            raise OracleUnparsable(f"Rewrite response missing {', '.join(missing)}")

        logger.info("[REWRITE] Generated %d characters", len(data["story"]))
        return RewrittenArticle(
            id=article.id,
            headline=data["headline"].strip(),
            subheadline=_optional_text(data.get("subheadline")),
            story=data["story"].strip(),
            pull_quote=_optional_text(data.get("pullQuote")),
            local_angle=data["localAngle"].strip(),
            original_title=article.title,
            original_source=article.source,
            original_link=article.link,
            published_at=article.published_at,
            image_url=article.image_url,
            rewritten_at=datetime.now(timezone.utc),
        )


def _optional_text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
