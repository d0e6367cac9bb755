"""Pluggable feed backends."""

import re
from abc import ABC, abstractmethod
from urllib.parse import urlparse

from ..models import RawArticle

_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
}


class SourceAdapter(ABC):
    """
    A feed backend bound to a list of targets (keyword queries or feed URLs).

    ``fetch_target`` raises SourceUnavailable on timeout, non-2xx or a
    malformed payload; the fetcher isolates each target's failure.
    """

    name: str = "source"

    def __init__(self, targets: list[str]):
        self.targets = targets

    @abstractmethod
    async def fetch_target(self, target: str) -> list[RawArticle]:
        """Fetch and normalize every item for one query or feed URL."""


def clean_html(text: str) -> str:
    """Strip tags and collapse whitespace."""
    clean = re.sub(r"<[^>]+>", "", text or "")
    return re.sub(r"\s+", " ", clean).strip()


def source_name_from_url(url: str) -> str:
    """``https://www.rte.ie/feeds/...`` -> ``rte``."""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return "unknown"
    host = host.removeprefix("www.")
    return host.split(".")[0] if host else "unknown"
