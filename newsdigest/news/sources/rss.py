"""RSS/Atom syndication source."""

import logging
from datetime import datetime, timezone
from typing import Optional

import feedparser
import httpx

from ...exceptions import SourceUnavailable
from ..models import ArticleId, RawArticle
from .base import _HEADERS, SourceAdapter, clean_html, source_name_from_url

logger = logging.getLogger(__name__)


class RSSSource(SourceAdapter):
    """Fetches feed URLs with httpx and parses them with feedparser."""

    name = "rss"

    def __init__(self, feed_urls: list[str], timeout: float = 15.0):
        """
        Initialize RSS source.

        Args:
            feed_urls: RSS or Atom feed URLs
            timeout: Per-feed HTTP timeout in seconds
        """
        super().__init__(feed_urls)
        self.timeout = timeout

    async def fetch_target(self, target: str) -> list[RawArticle]:
        try:
            async with httpx.AsyncClient(
                follow_redirects=True, timeout=self.timeout, headers=_HEADERS
            ) as client:
                resp = await client.get(target)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceUnavailable(target, str(e) or type(e).__name__) from e

        feed = feedparser.parse(resp.content)
        if feed.bozo and not feed.entries:
            raise SourceUnavailable(target, f"malformed feed: {feed.get('bozo_exception')}")

        source = source_name_from_url(target)
        articles = []
        for entry in feed.entries:
            article = self._to_article(entry, source)
            if article is not None:
                articles.append(article)
        return articles

    def _to_article(self, entry: feedparser.FeedParserDict, source: str) -> Optional[RawArticle]:
        article_id = entry.get("id") or entry.get("guid") or entry.get("link")
        if not article_id:
            logger.debug("[RSS] Skipping entry without guid or link in %s", source)
            return None

        description = entry.get("summary") or entry.get("description") or ""
        if not description and entry.get("content"):
            description = entry.content[0].get("value", "")

        return RawArticle(
            id=ArticleId(article_id),
            title=entry.get("title") or "Untitled",
            link=entry.get("link", ""),
            description=clean_html(description),
            published_at=self._parse_date(entry),
            author=entry.get("author") or "Unknown",
            source=source,
            image_url=self._image_url(entry),
        )

    def _parse_date(self, entry: feedparser.FeedParserDict) -> datetime:
        """Parse entry date from various RSS formats, defaulting to now."""
        for attr in ("published_parsed", "updated_parsed"):
            parsed = entry.get(attr)
            if parsed:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
        return datetime.now(timezone.utc)

    def _image_url(self, entry: feedparser.FeedParserDict) -> Optional[str]:
        for key in ("media_content", "media_thumbnail"):
            media = entry.get(key)
            if media and media[0].get("url"):
                return media[0]["url"]
        for enclosure in entry.get("enclosures", []):
            if enclosure.get("type", "").startswith("image/") and enclosure.get("href"):
                return enclosure["href"]
        return None
