"""Record shapes shared by every pipeline stage.

All persisted records are pydantic models so the same definition drives
validation, JSON serialization to the store and the public API responses.
"""

from datetime import datetime, timezone
from typing import NewType, Optional

from pydantic import BaseModel, Field

# Stable external identifier of a raw article (source URL or feed GUID).
ArticleId = NewType("ArticleId", str)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RawArticle(BaseModel):
    """Canonical normalized article as ingested from a feed or API."""

    id: ArticleId
    title: str
    link: str = ""
    description: str = ""
    published_at: datetime
    author: str = "Unknown"
    source: str
    image_url: Optional[str] = None
    scraped_at: datetime = Field(default_factory=utcnow)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> "RawArticle":
        return cls.model_validate_json(data)


class RewrittenArticle(BaseModel):
    """AI-rewritten, locally angled derivative of a RawArticle.

    ``local_angle`` is the only signal that the original passed the
    relevance filter; a record without it is never publishable.
    """

    id: ArticleId  # originating raw article id
    headline: str
    subheadline: Optional[str] = None
    story: str
    pull_quote: Optional[str] = None
    local_angle: Optional[str] = None

    # Back-references to the originating raw record
    original_title: str
    original_source: str
    original_link: str = ""
    published_at: datetime
    image_url: Optional[str] = None
    rewritten_at: datetime = Field(default_factory=utcnow)

    @property
    def is_publishable(self) -> bool:
        return bool(self.local_angle and self.local_angle.strip())

    @property
    def paragraphs(self) -> list[str]:
        return [p.strip() for p in self.story.split("\n\n") if p.strip()]

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> "RewrittenArticle":
        return cls.model_validate_json(data)


class TopStory(BaseModel):
    """One ranked entry of a digest."""

    rank: int
    article_index: int  # 1-based index into Digest.article_ids
    article_id: Optional[ArticleId] = None
    headline: str
    summary: str = ""
    significance: str = ""


class QuoteHighlight(BaseModel):
    quote: str
    speaker: str = ""
    context: str = ""


class Digest(BaseModel):
    """Timestamped ranking snapshot over a scope of articles."""

    timestamp: datetime = Field(default_factory=utcnow)
    scope: str  # "all" or a category slug
    article_ids: list[ArticleId] = Field(default_factory=list)
    top_stories: list[TopStory] = Field(default_factory=list)
    overview: str
    trends: list[str] = Field(default_factory=list)
    quote: Optional[QuoteHighlight] = None
    looking_ahead: Optional[str] = None
    categories: dict[str, list[ArticleId]] = Field(default_factory=dict)
    model: str = ""

    @property
    def article_count(self) -> int:
        return len(self.article_ids)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> "Digest":
        return cls.model_validate_json(data)


class StatsSnapshot(BaseModel):
    """Process-wide status fields read by the publication layer."""

    total_articles: int = 0
    indexed_articles: int = 0
    total_sources: int = 0
    last_scrape: Optional[datetime] = None
    has_digest: bool = False
    digest_generated: Optional[datetime] = None
