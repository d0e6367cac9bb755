"""NewsAPI keyword-search source (https://newsapi.org/docs/endpoints/everything)."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from ...exceptions import SourceUnavailable
from ..models import ArticleId, RawArticle
from .base import SourceAdapter, clean_html

logger = logging.getLogger(__name__)

NEWSAPI_URL = "https://newsapi.org/v2/everything"


class NewsAPISource(SourceAdapter):
    """Searches NewsAPI once per keyword for recent English-language articles."""

    name = "newsapi"

    def __init__(
        self,
        api_key: str,
        keywords: list[str],
        page_size: int = 20,
        days_back: int = 7,
        timeout: float = 15.0,
    ):
        """
        Initialize NewsAPI source.

        Args:
            api_key: NewsAPI key
            keywords: Search queries, one request each
            page_size: Articles requested per keyword
            days_back: How far back to search
            timeout: HTTP timeout in seconds
        """
        super().__init__(keywords)
        self.api_key = api_key
        self.page_size = page_size
        self.days_back = days_back
        self.timeout = timeout

    async def fetch_target(self, target: str) -> list[RawArticle]:
        since = datetime.now(timezone.utc) - timedelta(days=self.days_back)
        params = {
            "q": target,
            "language": "en",
            "sortBy": "publishedAt",
            "pageSize": self.page_size,
            "from": since.isoformat(timespec="seconds"),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(NEWSAPI_URL, params=params, headers={"X-Api-Key": self.api_key})
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"newsapi:{target}", str(e) or type(e).__name__) from e
        except ValueError as e:
            raise SourceUnavailable(f"newsapi:{target}", f"invalid JSON: {e}") from e

        if data.get("status") != "ok":
            raise SourceUnavailable(f"newsapi:{target}", data.get("message", "unexpected status"))

        articles = []
        for item in data.get("articles", []):
            article = self._to_article(item)
            if article is not None:
                articles.append(article)
        logger.info("[NEWSAPI] Found %d articles for %r", len(articles), target)
        return articles

    def _to_article(self, item: dict) -> Optional[RawArticle]:
        url = item.get("url")
        if not url:
            return None
        source_name = (item.get("source") or {}).get("name") or "NewsAPI"
        return RawArticle(
            id=ArticleId(url),
            title=item.get("title") or "Untitled",
            link=url,
            description=clean_html(item.get("description") or item.get("content") or ""),
            published_at=self._parse_date(item.get("publishedAt")),
            author=item.get("author") or source_name,
            source=source_name,
            image_url=item.get("urlToImage"),
        )

    @staticmethod
    def _parse_date(value: Optional[str]) -> datetime:
        if value:
            try:
                return datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                pass
        return datetime.now(timezone.utc)
