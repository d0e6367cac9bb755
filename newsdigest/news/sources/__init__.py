"""Feed backends producing RawArticle records."""

from .base import SourceAdapter
from .newsapi import NewsAPISource
from .rss import RSSSource

__all__ = ["NewsAPISource", "RSSSource", "SourceAdapter"]
