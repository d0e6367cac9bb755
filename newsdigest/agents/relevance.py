"""Relevance judge: does an article connect to the region?"""

import logging
import re
from typing import Optional

from ..exceptions import OracleError
from ..news.models import RawArticle
from ..prompts import render
from ..region.profile import RegionContext
from .oracle import Oracle

logger = logging.getLogger(__name__)

_ANSWER = re.compile(r"\b(YES|NO)\b")


class RelevanceJudge:
    """
    Oracle-backed regional relevance predicate.

    Fails open: a failed or unparsable call answers True, since an extra
    rewrite costs less than losing a real story.
    """

    def __init__(
        self,
        oracle: Oracle,
        region: RegionContext,
        description_chars: int = 500,
        full_text_chars: int = 1000,
    ):
        self.oracle = oracle
        self.region = region
        self.description_chars = description_chars
        self.full_text_chars = full_text_chars

    async def is_relevant(self, article: RawArticle, full_text: Optional[str] = None) -> bool:
        full_text_block = f"Content: {full_text[: self.full_text_chars]}\n" if full_text else ""
        prompt = render(
            "relevance",
            region_name=self.region.name,
            region_country=self.region.country,
            connections=self.region.to_connections_prompt(),
            title=article.title,
            source=article.source,
            description=article.description[: self.description_chars],
            full_text_block=full_text_block,
        )
        try:
            answer = await self.oracle.complete(prompt, step="relevance")
        except OracleError as e:
            logger.error("[REWRITE] Error checking %s connection: %s", self.region.name, e)
            return True
        return self.parse_answer(answer)

    @staticmethod
    def parse_answer(answer: str) -> bool:
        match = _ANSWER.search((answer or "").upper())
        if match is None:
            logger.warning("[REWRITE] Unparsable relevance answer %r, treating as relevant", answer)
            return True
        return match.group(1) == "YES"
