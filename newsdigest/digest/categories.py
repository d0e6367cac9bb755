"""Category predicate table.

A category is a keyword list matched case-insensitively as substrings of
an article's title and description. The table lives in
``config/categories.yaml`` and is independent of the oracle ranking step.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, TypeVar, Union

import yaml

from ..news.models import RawArticle, RewrittenArticle

logger = logging.getLogger(__name__)

Record = TypeVar("Record", RawArticle, RewrittenArticle)


@dataclass
class Category:
    """One themed section of the publication."""

    slug: str
    title: str
    description: str = ""
    keywords: list[str] = field(default_factory=list)

    def matches(self, article: Union[RawArticle, RewrittenArticle]) -> bool:
        text = searchable_text(article).lower()
        return any(keyword.lower() in text for keyword in self.keywords)

    def filter(self, articles: Iterable[Record]) -> list[Record]:
        return [a for a in articles if self.matches(a)]


def searchable_text(article: Union[RawArticle, RewrittenArticle]) -> str:
    """Title plus description (original title plus story for rewrites)."""
    if isinstance(article, RewrittenArticle):
        return f"{article.original_title} {article.headline} {article.story}"
    return f"{article.title} {article.description}"


def load_categories(config_path: Optional[Path] = None) -> list[Category]:
    """
    Load the category table from YAML, preserving file order.

    Args:
        config_path: Path to categories YAML (default: config/categories.yaml)

    Returns:
        List of Category; empty if the file is missing
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent / "config" / "categories.yaml"

    if not config_path.exists():
        logger.warning("[DIGEST] Categories config not found at %s", config_path)
        return []

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    categories = []
    for slug, entry in (data.get("categories") or {}).items():
        categories.append(
            Category(
                slug=slug,
                title=entry.get("title", slug.title()),
                description=entry.get("description", ""),
                keywords=[str(k) for k in entry.get("keywords", [])],
            )
        )
    return categories


def categorize(articles: Iterable[Record], categories: list[Category]) -> dict[str, list[Record]]:
    """Members of every category; an article may belong to several."""
    articles = list(articles)
    return {c.slug: c.filter(articles) for c in categories}
