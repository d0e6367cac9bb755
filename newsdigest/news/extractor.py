"""Full article text extraction from the source page."""

import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from .sources.base import _HEADERS

logger = logging.getLogger(__name__)

# Tried in order; the first selector that matches wins
CONTENT_SELECTORS = [
    "article",
    '[role="main"]',
    ".article-content",
    ".post-content",
    ".entry-content",
    "main",
]

NOISE_SELECTORS = "script, style, nav, header, footer, aside, .ads, .advertisement, .social-share"


class ArticleExtractor:
    """
    Fetches an article page and extracts its body text.

    Extraction never raises: any network or parse problem, or text shorter
    than ``min_length``, yields None (full text treated as absent).
    """

    def __init__(
        self,
        timeout: float = 10.0,
        min_length: int = 100,
        max_chars: int = 4000,
        fallback_threshold: int = 200,
        min_paragraph_length: int = 50,
    ):
        """
        Initialize extractor.

        Args:
            timeout: Hard per-page timeout in seconds
            min_length: Extracted text below this is discarded
            max_chars: Text is truncated to this many characters
            fallback_threshold: Structural matches shorter than this fall back to paragraphs
            min_paragraph_length: Paragraphs shorter than this are ignored by the fallback
        """
        self.timeout = timeout
        self.min_length = min_length
        self.max_chars = max_chars
        self.fallback_threshold = fallback_threshold
        self.min_paragraph_length = min_paragraph_length

    async def fetch_full_text(self, url: str) -> Optional[str]:
        """Download ``url`` and return cleaned body text, or None."""
        if not url:
            return None

        try:
            async with httpx.AsyncClient(
                follow_redirects=True, timeout=self.timeout, headers=_HEADERS
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
            text = self.extract_text(resp.text)
        except Exception as e:
            # Includes httpx.InvalidURL, which is not an HTTPError
            logger.warning("[EXTRACT] Could not fetch %s: %s", url, str(e) or type(e).__name__)
            return None

        if len(text) < self.min_length:
            logger.info("[EXTRACT] Content too short (%d chars), using description only", len(text))
            return None

        logger.info("[EXTRACT] Extracted %d characters from %s", len(text), url)
        return text[: self.max_chars]

    def extract_text(self, html: str) -> str:
        """Extract body text from raw HTML using the selector chain."""
        soup = BeautifulSoup(html, "html.parser")
        for element in soup.select(NOISE_SELECTORS):
            element.decompose()

        content = ""
        for selector in CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is not None:
                content = element.get_text(" ")
                break

        if len(content.strip()) < self.fallback_threshold:
            paragraphs = [p.get_text(" ").strip() for p in soup.find_all("p")]
            content = "\n\n".join(p for p in paragraphs if len(p) > self.min_paragraph_length)

        return re.sub(r"\s+", " ", content).strip()
