"""Regional feed list (config/feeds.json)."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class FeedEntry:
    name: str
    xml_url: str
    category: str = "local"  # "local" or "national"
    enabled: bool = True
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, entry: dict) -> "FeedEntry":
        return cls(
            name=entry.get("name") or entry["xml_url"],
            xml_url=entry["xml_url"],
            category=entry.get("category", "local"),
            enabled=bool(entry.get("enabled", True)),
            description=entry.get("description"),
        )


def load_feeds(path: Path) -> list[FeedEntry]:
    """
    Enabled feeds listed in ``path``.

    A missing file yields an empty list; entries without an ``xml_url``
    are logged and skipped.
    """
    if not path.exists():
        logger.warning("[FEEDS] Feed file not found: %s", path)
        return []

    with open(path) as f:
        entries = json.load(f).get("feeds", [])

    feeds = []
    for entry in entries:
        if not entry.get("xml_url"):
            logger.warning("[FEEDS] Skipping feed without xml_url: %s", entry.get("name", "?"))
            continue
        feed = FeedEntry.from_dict(entry)
        if feed.enabled:
            feeds.append(feed)

    logger.info("[FEEDS] %d of %d feeds enabled in %s", len(feeds), len(entries), path.name)
    return feeds


def get_feed_urls(path: Path, extra: Optional[list[str]] = None) -> list[str]:
    """Enabled feed URLs from ``path`` then ``extra`` (RSS_FEEDS), first occurrence wins."""
    urls = [f.xml_url for f in load_feeds(path)] + list(extra or [])
    return list(dict.fromkeys(urls))
